"""
Struct binding generation module

Generates py::class_ placeholders, constructors, field properties and
method bindings for struct and class types.
"""

from typing import TYPE_CHECKING

from .codegen import CodeGen, as_identifier, as_handle

if TYPE_CHECKING:
    from .ir import TypeEntity, Function
    from .func import FuncGenerator


class StructGenerator:
    """Generates struct bindings in two passes

    declare() registers every class before any definition refers to it,
    define() then chains the members onto the registered handle.
    """

    def __init__(self, func_gen: 'FuncGenerator'):
        self.func_gen = func_gen

    def handle_name(self, struct: 'TypeEntity') -> str:
        return as_handle(struct.name.full)

    def declare(self, struct: 'TypeEntity', gen: CodeGen):
        """Generate the named py::class_ placeholder"""
        gen.line(f'py::class_<{struct.name.full}> {self.handle_name(struct)}'
                 f'(m, "{as_identifier(struct.name.plain)}");')

    def define(self, struct: 'TypeEntity', methods: list['Function'], gen: CodeGen):
        """Generate constructor, properties and methods on the placeholder"""
        full_name = struct.name.full
        gen.line(self.handle_name(struct))
        gen.indent()
        gen.line('.def(py::init<>())')
        for member in struct.members:
            gen.line(f'.def_readwrite("{as_identifier(member.name.plain)}", '
                     f'&{full_name}::{member.name.plain})')
        for method in methods:
            self.func_gen.generate_method(method, full_name, gen)
        gen.terminate(';')
        gen.dedent()
        gen.line()
