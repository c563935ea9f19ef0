"""
Type stub generation module

Generates the .pyi description of a binding module for IDE autocompletion
and type checkers.
"""

from typing import TYPE_CHECKING

from loguru import logger

from .codegen import as_identifier, python_function_name
from .func import FuncGenerator

if TYPE_CHECKING:
    from .ir import Model, TypeEntity, Function
    from .types import TypeMapper


def exported_names(model: 'Model') -> list[str]:
    """Names a binding module exports: types then free functions, in encounter order"""
    names = [as_identifier(t.name.plain) for t in model.types]
    for func in model.free_functions():
        name = python_function_name(func.name.plain, len(func.parameters), False)
        if name is not None:
            names.append(name)
    return list(dict.fromkeys(names))


class StubGenerator:
    """Generates .pyi type stub files"""

    def __init__(self, model: 'Model', mapper: 'TypeMapper', module_name: str):
        self.model = model
        self.mapper = mapper
        self.module_name = module_name
        self.func_gen = FuncGenerator(mapper)

    def generate(self) -> str:
        """Generate complete stub file"""
        self._check_collisions()

        lines = []
        lines.append(f'"""Type stubs for {self.module_name} (auto-generated, do not edit)"""')
        lines.append('')
        lines.append('from __future__ import annotations')
        lines.append('')
        lines.append('import enum')
        lines.append('from typing import Callable, Optional')
        lines.append('')
        lines.append('__all__ = [')
        for name in exported_names(self.model):
            lines.append(f"    '{name}',")
        lines.append(']')
        lines.append('')

        for entity in self.model.types:
            lines.append('')
            if entity.is_enum:
                lines.extend(self._gen_enum(entity))
            else:
                lines.extend(self._gen_struct(entity))

        for func in self.model.free_functions():
            if self.func_gen.python_name(func) is None:
                continue
            lines.append('')
            lines.append(self._gen_def(func, with_self=False))

        return '\n'.join(lines) + '\n'

    def _check_collisions(self):
        seen: dict[str, str] = {}
        for entity in self.model.types:
            short = entity.name.plain
            if short in seen and seen[short] != entity.name.full:
                logger.warning(f'{entity.name.full} and {seen[short]} share the stub name {short}')
            seen.setdefault(short, entity.name.full)

    def _gen_enum(self, enum: 'TypeEntity') -> list[str]:
        lines = [f'class {as_identifier(enum.name.plain)}(enum.IntEnum):']
        for item in enum.members:
            lines.append(f'    {as_identifier(item.name.plain)} = {item.value}')
        if not enum.members:
            lines.append('    pass')
        return lines

    def _gen_struct(self, struct: 'TypeEntity') -> list[str]:
        lines = [f'class {as_identifier(struct.name.plain)}:']
        lines.append('    def __init__(self) -> None: ...')
        for member in struct.members:
            lines.append(f'    {as_identifier(member.name.plain)}: {self.mapper.map_name(member.type)}')
        for method in self.model.methods_of(struct):
            if self.func_gen.python_name(method) is None:
                continue
            if method.is_static:
                lines.append('    @staticmethod')
            lines.append('    ' + self._gen_def(method, with_self=not method.is_static))
        return lines

    def _gen_def(self, func: 'Function', with_self: bool) -> str:
        params = [f'{name}: {self.func_gen.param_type(p)}'
                  for name, p in zip(self.func_gen.param_names(func), func.parameters)]
        if with_self:
            params.insert(0, 'self')
        return_type = 'None' if func.is_void else self.mapper.map_name(func.return_type)
        return f'def {self.func_gen.python_name(func)}({", ".join(params)}) -> {return_type}: ...'
