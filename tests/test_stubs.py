"""Tests for .pyi type stub generation."""

import ast

from py_gen.clang_ast import ClangAstWalker
from py_gen.collector import DeclarationCollector
from py_gen.ir import Model, QualifiedName, Member, TypeEntity
from py_gen.stubs import StubGenerator, exported_names
from py_gen.types import TypeMapper


def stub_lines(model: Model) -> list[str]:
    return StubGenerator(model, TypeMapper(), 'mymod').generate().split('\n')


def test_stub_header(sample_model):
    lines = stub_lines(sample_model)
    assert 'from __future__ import annotations' in lines
    assert 'import enum' in lines
    assert 'from typing import Callable, Optional' in lines


def test_all_lists_types_then_functions(sample_model):
    assert exported_names(sample_model) == ['Color', 'alpha', 'print']
    lines = stub_lines(sample_model)
    start = lines.index('__all__ = [')
    assert lines[start:start + 5] == ['__all__ = [', "    'Color',", "    'alpha',", "    'print',", ']']


def test_enum_values_are_exact(sample_model):
    """Test that enumerators {A=-1, B, C} keep -1, 0, 1."""
    lines = stub_lines(sample_model)
    start = lines.index('class Color(enum.IntEnum):')
    assert lines[start:start + 4] == [
        'class Color(enum.IntEnum):',
        '    A = -1',
        '    B = 0',
        '    C = 1',
    ]


def test_struct_stub(sample_model):
    lines = stub_lines(sample_model)
    start = lines.index('class alpha:')
    assert lines[start:start + 7] == [
        'class alpha:',
        '    def __init__(self) -> None: ...',
        '    x: int',
        '    values: list[int]',
        '    def get(self, imag: int) -> int: ...',
        '    @staticmethod',
        '    def make() -> alpha: ...',
    ]
    nested = lines.index('class alpha:', start + 1)
    assert lines[nested + 1] == '    def __init__(self) -> None: ...'


def test_free_function_stub(sample_model):
    lines = stub_lines(sample_model)
    assert 'def print(imag: int, callback: Callable[[str, float], int]) -> str: ...' in lines
    assert not any('run' in line for line in lines if line.startswith(('def', '    def')))


def test_void_and_keywords():
    """Test that void maps to None and keywords get a trailing underscore."""
    entity = TypeEntity(
        name=QualifiedName('Flags', 'Flags'),
        is_enum=True,
        members=(Member(type=QualifiedName('int'), name=QualifiedName('None', 'Flags::None'),
                        value=0),),
    )
    lines = stub_lines(Model(types=[entity]))
    assert '    None_ = 0' in lines


def test_short_name_collision_warns(sample_model, warnings):
    stub_lines(sample_model)
    assert any('share the stub name alpha' in message for message in warnings)


def test_stub_is_deterministic(sample_model):
    generator = StubGenerator(sample_model, TypeMapper(), 'mymod')
    assert generator.generate() == generator.generate()


def test_stub_parses_as_python(sample_model):
    ast.parse(StubGenerator(sample_model, TypeMapper(), 'mymod').generate())


def test_written_std_spellings_map_to_python():
    """Test fields spelled after `using namespace std`, as clang writes them."""
    unit = {'kind': 'TranslationUnitDecl', 'inner': [
        {'id': '0x1', 'kind': 'CXXRecordDecl', 'loc': {'file': '/src/v.h', 'line': 3, 'col': 8},
         'name': 'Bag', 'tagUsed': 'struct', 'completeDefinition': True, 'inner': [
             {'id': '0x2', 'kind': 'FieldDecl', 'loc': {'line': 4, 'col': 17}, 'name': 'v',
              'type': {'qualType': 'vector<int>', 'desugaredQualType': 'std::vector<int>'}},
             {'id': '0x3', 'kind': 'FieldDecl', 'loc': {'line': 5, 'col': 22}, 'name': 'names',
              'type': {'qualType': 'map<string, double>',
                       'desugaredQualType': 'std::map<std::string, double>'}},
             {'id': '0x4', 'kind': 'FieldDecl', 'loc': {'line': 6, 'col': 12}, 'name': 'box',
              'type': {'qualType': 'Box<int>'}},
         ]},
    ]}
    collector = DeclarationCollector()
    collector.visit_all(ClangAstWalker(['/src']).walk(unit))
    source = StubGenerator(collector.finalize(), TypeMapper(), 'mymod').generate()
    lines = source.split('\n')
    start = lines.index('class Bag:')
    assert lines[start + 2:start + 5] == [
        '    v: list[int]',
        '    names: dict[str, float]',
        '    box: Box',
    ]
    ast.parse(source)


def test_member_operators_become_special_methods(operator_model):
    """Test that bound operators get dunder names and unbindable ones are left out."""
    source = StubGenerator(operator_model, TypeMapper(), 'mymod').generate()
    lines = source.split('\n')
    start = lines.index('class Foo:')
    assert lines[start:start + 4] == [
        'class Foo:',
        '    def __init__(self) -> None: ...',
        '    def __eq__(self, o: Foo) -> bool: ...',
        '    def __neg__(self) -> Foo: ...',
    ]
    assert 'operator' not in source
    assert exported_names(operator_model) == ['Foo']
    ast.parse(source)
