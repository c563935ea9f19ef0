"""
Function binding generation module

Generates .def()/m.def() bindings for member and free functions, with
keyword-argument names and a typed description docstring.
"""

from typing import TYPE_CHECKING, Optional

from .codegen import CodeGen, as_identifier, escape_cpp_string, python_function_name

if TYPE_CHECKING:
    from .ir import Function, Member
    from .types import TypeMapper


class FuncGenerator:
    """Generates function bindings"""

    def __init__(self, type_mapper: 'TypeMapper'):
        self.type_mapper = type_mapper

    def python_name(self, func: 'Function') -> Optional[str]:
        """Python-visible name, None for functions that are not bound"""
        return python_function_name(func.name.plain, len(func.parameters), func.is_member_function)

    def param_names(self, func: 'Function') -> list[str]:
        """Python-visible parameter names, unnamed parameters become argN"""
        return [as_identifier(p.name.plain) if p.name.plain else f'arg{i}'
                for i, p in enumerate(func.parameters)]

    def param_type(self, param: 'Member') -> str:
        """Python type of a parameter, functional ones from their signature"""
        if param.is_functional and param.signatures:
            signature = param.signatures[0]
            args = ', '.join(self.type_mapper.map_name(p.type) for p in signature.parameters)
            return f'Callable[[{args}], {self.type_mapper.map_name(signature.return_type)}]'
        return self.type_mapper.map_name(param.type)

    def describe(self, func: 'Function') -> str:
        """Synthesize the description string

        Example: print(imag: int) -> str
        """
        params = ', '.join(f'{name}: {self.param_type(p)}'
                           for name, p in zip(self.param_names(func), func.parameters))
        text = f'{self.python_name(func)}({params})'
        if not func.is_void:
            text += f' -> {self.type_mapper.map_name(func.return_type)}'
        return text

    def _extras(self, func: 'Function') -> str:
        args = ''.join(f', py::arg("{name}")' for name in self.param_names(func))
        return f'{args}, "{escape_cpp_string(self.describe(func))}"'

    def generate_method(self, func: 'Function', owner_name: str, gen: CodeGen):
        """Generate one chained .def() for a member function"""
        name = self.python_name(func)
        if name is None:
            return
        method = 'def_static' if func.is_static else 'def'
        gen.line(f'.{method}("{name}", &{owner_name}::{func.name.plain}'
                 f'{self._extras(func)})')

    def generate_free(self, func: 'Function', gen: CodeGen):
        """Generate m.def() for a free function"""
        name = self.python_name(func)
        if name is None:
            return
        target = func.name.qualified or func.name.plain
        gen.line(f'm.def("{name}", &{target}{self._extras(func)});')
