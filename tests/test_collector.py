"""Tests for the declaration collector."""

import time

import pytest

from py_gen.collector import DeclarationCollector, unwrap_callable, collect_sources
from py_gen.ir import QualifiedName, HeaderReference
from py_gen.sightings import (
    KIND_STRUCT, KIND_ENUM, KIND_FUNC,
    SourceLocation, DeclarationSighting, FieldSighting, EnumeratorSighting, ParamSighting,
)

USER_LOC = SourceLocation('/src/a.h', 3)


def sighting(kind: str, qualified: str, **kwargs) -> DeclarationSighting:
    kwargs.setdefault('location', USER_LOC)
    plain = qualified.split('::')[-1] if qualified else ''
    return DeclarationSighting(kind=kind, name=QualifiedName(plain, qualified), **kwargs)


def spelled(text: str) -> QualifiedName:
    return QualifiedName(text, text)


@pytest.mark.parametrize('excluded', [
    sighting(KIND_STRUCT, 'std::vector'),
    sighting(KIND_STRUCT, '__gnu_cxx::thing'),
    sighting(KIND_STRUCT, ''),
    sighting(KIND_STRUCT, 'n1::alpha', is_implicit=True),
    sighting(KIND_STRUCT, 'n1::alpha', is_first_decl=False),
    sighting(KIND_STRUCT, 'n1::alpha', location=SourceLocation()),
    sighting(KIND_STRUCT, 'n1::alpha', location=SourceLocation('/src/a.h', 0)),
    sighting(KIND_FUNC, 'printf', location=SourceLocation('/usr/include/stdio.h', 10, True)),
])
def test_non_user_declarations_are_discarded(excluded):
    collector = DeclarationCollector()
    assert not collector.visit(excluded)
    model = collector.finalize()
    assert model.types == []
    assert model.functions == []


def test_struct_fields_carry_flags():
    """Test that field flags derive from the type spelling."""
    collector = DeclarationCollector()
    collector.visit(sighting(KIND_STRUCT, 'n1::alpha', fields=[
        FieldSighting('count', 'n1::alpha::count', spelled('int')),
        FieldSighting('data', 'n1::alpha::data', spelled('const int *')),
        FieldSighting('name', 'n1::alpha::name', spelled('const std::string &')),
        FieldSighting('secret', 'n1::alpha::secret', spelled('int'), access='private'),
    ]))
    (alpha,) = collector.finalize().types

    assert not alpha.is_enum
    assert [m.name.plain for m in alpha.members] == ['count', 'data', 'name', 'secret']
    count, data, name, secret = alpha.members
    assert count.is_public and not count.is_const and not count.is_pointer
    assert data.is_pointer and not data.is_const
    assert name.is_const and name.is_reference
    assert not secret.is_public


def test_enum_preserves_signed_values():
    """Test that enumerators keep exact values and the underlying type."""
    collector = DeclarationCollector()
    collector.visit(sighting(KIND_ENUM, 'n1::Color', enumerators=[
        EnumeratorSighting('A', 'n1::Color::A', -1),
        EnumeratorSighting('B', 'n1::Color::B', 0),
        EnumeratorSighting('C', 'n1::Color::C', 1),
    ], underlying_type=spelled('short')))
    (color,) = collector.finalize().types

    assert color.is_enum
    assert [(m.name.plain, m.value) for m in color.members] == [('A', -1), ('B', 0), ('C', 1)]
    assert all(m.type.plain == 'short' for m in color.members)
    assert color.members[0].name.qualified == 'n1::Color::A'


def test_enum_defaults_to_int():
    collector = DeclarationCollector()
    collector.visit(sighting(KIND_ENUM, 'E', enumerators=[EnumeratorSighting('X', 'E::X', 7)]))
    (entity,) = collector.finalize().types
    assert entity.members[0].type == QualifiedName('int', 'int')


def test_member_function_and_callable_parameter():
    """Test method ownership and std::function parameter unwrapping."""
    owner = QualifiedName('alpha', 'n1::alpha', 'n1')
    collector = DeclarationCollector()
    collector.visit(sighting(
        KIND_FUNC, 'n1::alpha::each',
        return_type=spelled('void'),
        owner=owner,
        is_static=True,
        params=[
            ParamSighting('fn', 'fn', spelled('const std::function<int (struct Foo, double)> &')),
            ParamSighting('', '', spelled('int')),
        ],
    ))
    (func,) = collector.finalize().functions

    assert func.is_member_function
    assert func.owner == owner
    assert func.is_static
    assert func.is_void
    fn, unnamed = func.parameters
    assert fn.is_functional and fn.is_const and fn.is_reference
    (signature,) = fn.signatures
    assert signature.return_type.plain == 'int'
    assert [p.type.plain for p in signature.parameters] == ['Foo', 'double']
    assert not unnamed.is_functional
    assert unnamed.signatures == ()


def test_free_function_defaults():
    collector = DeclarationCollector()
    collector.visit(sighting(KIND_FUNC, 'n1::print'))
    (func,) = collector.finalize().functions
    assert not func.is_member_function
    assert func.owner is None
    assert func.return_type.plain == 'void'


def test_unwrap_callable_is_one_level_deep():
    """Test that nested callables stay as spellings."""
    signature = unwrap_callable(spelled('std::function<void (std::function<int (int)>)>'))
    assert signature is not None
    (param,) = signature.parameters
    assert param.type.plain == 'std::function<int (int)>'
    assert not param.is_functional
    assert unwrap_callable(spelled('int')) is None


def test_unknown_kind_raises():
    collector = DeclarationCollector()
    with pytest.raises(ValueError):
        collector.visit(sighting('typedef', 'n1::size'))


def test_finalize_closes_the_collector():
    """Test that a finalized collector rejects further input."""
    collector = DeclarationCollector()
    collector.visit(sighting(KIND_STRUCT, 'a'))
    collector.add_headers([HeaderReference('a.h', '/src/a.h')])
    model = collector.finalize()
    assert len(model.types) == 1
    assert len(model.headers) == 1

    with pytest.raises(RuntimeError):
        collector.visit(sighting(KIND_STRUCT, 'b'))
    with pytest.raises(RuntimeError):
        collector.finalize()


def test_collect_sources_keeps_source_order(monkeypatch):
    """Test that parallel collection merges units in source order."""
    delays = {'first.h': 0.2, 'second.h': 0.0, 'third.h': 0.1}

    def fake_parse_unit(source, clang_args):
        time.sleep(delays[source])
        stem = source.split('.')[0]
        return [sighting(KIND_STRUCT, stem)], [HeaderReference(source, f'/src/{source}')]

    monkeypatch.setattr('py_gen.collector.parse_unit', fake_parse_unit)
    model = collect_sources(list(delays), ['-DX'], jobs=3)

    assert [t.name.plain for t in model.types] == ['first', 'second', 'third']
    assert [h.name for h in model.headers] == ['first.h', 'second.h', 'third.h']


def test_collect_sources_applies_duplicate_policy(monkeypatch):
    def fake_parse_unit(source, clang_args):
        return [sighting(KIND_STRUCT, 'shared'), sighting(KIND_STRUCT, source)], []

    monkeypatch.setattr('py_gen.collector.parse_unit', fake_parse_unit)
    kept = collect_sources(['a', 'b'], [])
    first = collect_sources(['a', 'b'], [], duplicates='first')

    assert [t.name.plain for t in kept.types] == ['shared', 'a', 'shared', 'b']
    assert [t.name.plain for t in first.types] == ['shared', 'a', 'b']
