"""
Enum binding generation module

Generates py::enum_ registrations.
"""

from typing import TYPE_CHECKING

from .codegen import CodeGen, as_identifier

if TYPE_CHECKING:
    from .ir import TypeEntity


class EnumGenerator:
    """Generates enum bindings

    Enumerations have no forward-reference hazard, so the whole value list
    is emitted in the declaration pass.
    """

    def generate(self, enum: 'TypeEntity', gen: CodeGen):
        """Generate py::enum_ registration with all values"""
        full_name = enum.name.full
        gen.line(f'py::enum_<{full_name}>(m, "{as_identifier(enum.name.plain)}", py::arithmetic())')
        gen.indent()
        for item in enum.members:
            value_ref = item.name.qualified or f'{full_name}::{item.name.plain}'
            gen.line(f'.value("{as_identifier(item.name.plain)}", {value_ref})')
        gen.line('.export_values();')
        gen.dedent()
        gen.line()
