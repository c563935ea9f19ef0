"""
Type mapping module

Maps C++ type spellings to Python typing expressions for stubs and
binding docstrings. Mapping is a pure function of the spelling and the
registered handlers.
"""

from abc import ABC, abstractmethod
import re
from typing import TYPE_CHECKING, Optional

from .codegen import (
    normalize_std, strip_qualifiers, is_string_ptr, is_pointer_type,
    split_template, split_scope, parse_function_type,
)

if TYPE_CHECKING:
    from .ir import QualifiedName

INT_TYPES = {
    'char', 'signed char', 'unsigned char', 'wchar_t', 'char8_t', 'char16_t', 'char32_t',
    'short', 'short int', 'unsigned short', 'unsigned short int', 'signed short',
    'int', 'signed', 'signed int', 'unsigned', 'unsigned int',
    'long', 'long int', 'unsigned long', 'unsigned long int', 'signed long',
    'long long', 'long long int', 'unsigned long long', 'unsigned long long int',
    'size_t', 'ssize_t', 'ptrdiff_t', 'intptr_t', 'uintptr_t',
    'int8_t', 'uint8_t', 'int16_t', 'uint16_t',
    'int32_t', 'uint32_t', 'int64_t', 'uint64_t',
}

FLOAT_TYPES = {'float', 'double', 'long double'}

STRING_TYPES = {
    'std::string', 'std::basic_string<char>', 'std::string_view',
    'std::basic_string_view<char>', 'std::wstring', 'std::basic_string<wchar_t>',
    'std::basic_string<char, std::char_traits<char>, std::allocator<char>>',
    'std::basic_string<char, std::char_traits<char>, std::allocator<char> >',
}

SEQUENCE_TYPES = {'std::vector', 'std::list', 'std::deque', 'std::array', 'std::span'}
SET_TYPES = {'std::set', 'std::unordered_set'}
MAP_TYPES = {'std::map', 'std::unordered_map'}
TUPLE_TYPES = {'std::pair', 'std::tuple'}
CALLABLE_TYPES = {'std::function'}

ARRAY_RE = re.compile(r'^(.*?)\s*\[\d*\]$')
TEMPLATE_ARGS_RE = re.compile(r'\s*<[^<>]*>')
SCOPE_PREFIX_RE = re.compile(r'\b(?:\w+::)+')
# C++ punctuation that cannot appear in a Python type expression
NON_PYTHON_RE = re.compile(r'[<>:&*()]')

# Standard library names as written after `using namespace std`
UNQUALIFIED_STD = {
    name[len('std::'):]
    for name in SEQUENCE_TYPES | SET_TYPES | MAP_TYPES | TUPLE_TYPES | CALLABLE_TYPES
} | {
    'string', 'string_view', 'wstring', 'basic_string', 'basic_string_view', 'complex',
    'optional', 'unique_ptr', 'shared_ptr', 'reference_wrapper',
}

# Template arguments that only configure the container
ALLOCATOR_PREFIXES = ('std::allocator<', 'std::less<', 'std::hash<', 'std::equal_to<',
                      'std::char_traits<')


class TypeHandler(ABC):
    """Base class for custom type mappings"""

    @abstractmethod
    def stub_type(self, type_str: str, mapper: 'TypeMapper') -> str:
        """Return the Python type expression for a C++ type"""
        pass


class AliasHandler(TypeHandler):
    """Maps a C++ type to a fixed Python type expression"""

    def __init__(self, python_type: str):
        self.python_type = python_type

    def stub_type(self, type_str: str, mapper: 'TypeMapper') -> str:
        return self.python_type


class TypeMapper:
    """Maps C++ types to Python typing expressions"""

    def __init__(self):
        self._handlers: dict[str, TypeHandler] = {}

    def register(self, type_name: str, handler: TypeHandler):
        """Register a handler for an exact type name (cv, ref and pointer stripped)"""
        self._handlers[type_name] = handler

    def has_handler(self, type_name: str) -> bool:
        return type_name in self._handlers

    def map(self, type_str: str) -> str:
        """Get the Python type for a C++ type spelling

        Examples:
            std::vector<std::vector<int>> -> list[list[int]]
            std::optional<std::string> -> Optional[str]
            std::function<int(std::string, double)> -> Callable[[str, float], int]
            vector<int> -> list[int]
            n1::n2::alpha -> alpha
        """
        if is_string_ptr(type_str):
            return 'str'
        base = normalize_std(strip_qualifiers(type_str))
        if not base:
            return 'None'

        handler = self._handlers.get(base)
        if handler is None and split_template(base)[0] in UNQUALIFIED_STD:
            base = 'std::' + base
            handler = self._handlers.get(base)
        if handler is not None:
            return handler.stub_type(base, self)

        if base == 'void':
            # void * is an opaque handle, plain void is no value
            return 'object' if is_pointer_type(type_str) else 'None'
        if base == 'bool':
            return 'bool'
        if base in INT_TYPES or base.startswith('std::') and base[5:] in INT_TYPES:
            return 'int'
        if base in FLOAT_TYPES:
            return 'float'
        if base in STRING_TYPES:
            return 'str'

        array = ARRAY_RE.match(base)
        if array:
            return f'list[{self.map(array.group(1))}]'

        mapped = self._map_template(base)
        if mapped is not None:
            return mapped

        signature = parse_function_type(base)
        if signature is not None:
            return self._callable(*signature)

        _, short = split_scope(base)
        return short

    def map_name(self, name: 'QualifiedName') -> str:
        """Map a declared type, retrying with its canonical spelling

        The written spelling keeps typedefs and `using` shortcuts; when it
        does not map to a Python expression the canonical one is tried, and
        any C++ syntax left over is reduced to the bare type name.
        """
        mapped = self.map(name.plain)
        if not is_python_type(mapped) and name.qualified and name.qualified != name.plain:
            mapped = self.map(name.qualified)
        if is_python_type(mapped):
            return mapped
        return python_fallback(mapped)

    def _map_template(self, base: str) -> Optional[str]:
        name, args = split_template(base)
        if not args:
            return None
        args = [a for a in args if not a.startswith(ALLOCATOR_PREFIXES)]

        if name in ('std::basic_string', 'std::basic_string_view'):
            return 'str'
        if name == 'std::complex':
            return 'complex'
        if name in SEQUENCE_TYPES:
            return f'list[{self.map(args[0])}]'
        if name in SET_TYPES:
            return f'set[{self.map(args[0])}]'
        if name == 'std::optional':
            return f'Optional[{self.map(args[0])}]'
        if name in MAP_TYPES and len(args) >= 2:
            return f'dict[{self.map(args[0])}, {self.map(args[1])}]'
        if name in TUPLE_TYPES:
            return f'tuple[{", ".join(self.map(a) for a in args)}]'
        if name in CALLABLE_TYPES and len(args) == 1:
            signature = parse_function_type(args[0])
            if signature is not None:
                return self._callable(*signature)
        if name in ('std::unique_ptr', 'std::shared_ptr', 'std::reference_wrapper'):
            return self.map(args[0])
        return None

    def _callable(self, result_type: str, args: list[str]) -> str:
        mapped_args = ', '.join(self.map(a) for a in args)
        return f'Callable[[{mapped_args}], {self.map(result_type)}]'


_default_mapper = TypeMapper()


def map_type(type_str: str) -> str:
    """Map a C++ type with the default, handler-free mapper"""
    return _default_mapper.map(type_str)


def is_python_type(expr: str) -> bool:
    """Whether a mapped expression is free of C++ syntax"""
    return bool(expr) and not NON_PYTHON_RE.search(expr)


def python_fallback(expr: str) -> str:
    """Reduce leftover C++ syntax to the bare type name

    Examples:
        Box<int> -> Box
        ns::Box<ns::Item<int>> -> Box
        list[Box<int>] -> list[Box]
    """
    text = expr
    while True:
        stripped = TEMPLATE_ARGS_RE.sub('', text)
        if stripped == text:
            break
        text = stripped
    text = SCOPE_PREFIX_RE.sub('', text).strip()
    if not is_python_type(text):
        return 'object'
    return text
