"""Fixtures and configuration for pytest."""

import pytest
from loguru import logger

from py_gen.ir import (
    QualifiedName, Member, CallableSignature, TypeEntity, Function, HeaderReference, Model,
)


def name(qualified: str, namespace=None) -> QualifiedName:
    """Build a QualifiedName whose plain part is the last scope component."""
    return QualifiedName(qualified.split('::')[-1], qualified, namespace)


def type_name(spelling: str) -> QualifiedName:
    return QualifiedName(spelling, spelling)


@pytest.fixture
def sample_model() -> Model:
    """A model with an enum, two same-named structs, methods and a free function."""
    color = TypeEntity(
        name=name('n1::Color', 'n1'),
        is_enum=True,
        members=(
            Member(type=type_name('int'), name=name('n1::Color::A'), value=-1),
            Member(type=type_name('int'), name=name('n1::Color::B'), value=0),
            Member(type=type_name('int'), name=name('n1::Color::C'), value=1),
        ),
    )
    alpha = TypeEntity(
        name=name('n1::alpha', 'n1'),
        members=(
            Member(type=type_name('int'), name=name('n1::alpha::x'), is_public=True),
            Member(type=type_name('std::vector<int>'), name=name('n1::alpha::values'),
                   is_public=True),
        ),
    )
    nested_alpha = TypeEntity(name=name('n1::n2::alpha', 'n2'))

    get = Function(
        name=name('n1::alpha::get'),
        return_type=type_name('int'),
        is_member_function=True,
        owner=alpha.name,
        parameters=(Member(type=type_name('int'), name=QualifiedName('imag', 'imag')),),
    )
    make = Function(
        name=name('n1::alpha::make'),
        return_type=type_name('n1::alpha'),
        is_member_function=True,
        is_static=True,
        owner=alpha.name,
    )
    orphan = Function(
        name=name('ghost::run'),
        return_type=type_name('void'),
        is_member_function=True,
        owner=name('ghost'),
    )
    callback_type = 'const std::function<int (std::string, double)> &'
    print_func = Function(
        name=name('n1::print', 'n1'),
        return_type=type_name('std::string'),
        namespace='n1',
        parameters=(
            Member(type=type_name('int'), name=QualifiedName('imag', 'imag')),
            Member(
                type=type_name(callback_type),
                name=QualifiedName('callback', 'callback'),
                is_const=True,
                is_reference=True,
                is_functional=True,
                signatures=(CallableSignature(
                    return_type=type_name('int'),
                    parameters=(
                        Member(type=type_name('std::string'), name=QualifiedName('')),
                        Member(type=type_name('double'), name=QualifiedName('')),
                    ),
                ),),
            ),
        ),
    )
    headers = [
        HeaderReference('a.h', '/src/a.h'),
        HeaderReference('vector', '', is_system=True),
        HeaderReference('a.h', '/src/a.h'),
    ]
    return Model(
        types=[color, alpha, nested_alpha],
        functions=[get, make, orphan, print_func],
        headers=headers,
    )


@pytest.fixture
def operator_model() -> Model:
    """A struct with comparison, negation and assignment operators, plus a free operator."""
    foo = TypeEntity(name=name('ns::Foo', 'ns'))
    other = Member(type=type_name('const ns::Foo &'), name=QualifiedName('o', 'o'),
                   is_const=True, is_reference=True)

    def method(op: str, result: str, *params: Member) -> Function:
        return Function(name=name(f'ns::Foo::operator{op}'), return_type=type_name(result),
                        is_member_function=True, owner=foo.name, parameters=params)

    free_eq = Function(
        name=name('ns::operator==', 'ns'),
        return_type=type_name('bool'),
        namespace='ns',
        parameters=(other, other),
    )
    return Model(
        types=[foo],
        functions=[method('==', 'bool', other), method('-', 'ns::Foo'),
                   method('=', 'ns::Foo &', other), free_eq],
    )


@pytest.fixture
def warnings():
    """Collect loguru warning messages emitted during a test."""
    messages = []
    handler_id = logger.add(lambda m: messages.append(m.record['message']), level='WARNING')
    yield messages
    logger.remove(handler_id)
