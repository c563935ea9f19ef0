"""
Code generation utilities

Provides a line builder for generated sources and helpers for picking
apart C++ type spellings as clang prints them.
"""

import keyword
import re
from typing import Optional

ELABORATED_RE = re.compile(r'\b(?:struct|class|enum|union)\s+')
INLINE_NS_RE = re.compile(r'\bstd::(?:__\w+::)+')
OUTER_PREFIX_RE = re.compile(r'^(?:(?:const|volatile)\s+)+')
OUTER_SUFFIX_RE = re.compile(r'(?:\s*(?:&&|&|\bconst\b|\bvolatile\b))+\s*$')

CALLABLE_WRAPPERS = ('std::function', 'function')

OPERATOR_RE = re.compile(r'^operator\s*([^\w\s].*)$')

BINARY_OPERATORS = {
    '==': '__eq__', '!=': '__ne__', '<': '__lt__', '<=': '__le__', '>': '__gt__', '>=': '__ge__',
    '+': '__add__', '-': '__sub__', '*': '__mul__', '/': '__truediv__', '%': '__mod__',
    '&': '__and__', '|': '__or__', '^': '__xor__', '<<': '__lshift__', '>>': '__rshift__',
    '+=': '__iadd__', '-=': '__isub__', '*=': '__imul__', '/=': '__itruediv__',
}
UNARY_OPERATORS = {'-': '__neg__', '+': '__pos__', '~': '__invert__'}
CALL_OPERATORS = {'[]': '__getitem__', '()': '__call__'}


class CodeGen:
    """Code generation helper with indentation support"""

    def __init__(self, indent_str: str = '    '):
        self._lines: list[str] = []
        self._indent: int = 0
        self._indent_str = indent_str

    def line(self, text: str = ''):
        """Add a line with current indentation"""
        if text:
            self._lines.append(self._indent_str * self._indent + text)
        else:
            self._lines.append('')

    def lines(self, *texts: str):
        """Add multiple lines"""
        for text in texts:
            self.line(text)

    def indent(self):
        """Increase indentation"""
        self._indent += 1

    def dedent(self):
        """Decrease indentation"""
        if self._indent > 0:
            self._indent -= 1

    def terminate(self, suffix: str = ';'):
        """Append a suffix to the last emitted line (closes a call chain)"""
        if self._lines:
            self._lines[-1] += suffix

    def block(self, header: str, footer: str = '}'):
        """Context manager for code blocks"""
        return _BlockContext(self, header, footer)

    def output(self) -> str:
        """Get generated code as string, always newline terminated"""
        return '\n'.join(self._lines) + '\n'


class _BlockContext:
    """Context manager for indented code blocks"""

    def __init__(self, gen: CodeGen, header: str, footer: str):
        self._gen = gen
        self._header = header
        self._footer = footer

    def __enter__(self):
        self._gen.line(self._header)
        self._gen.indent()
        return self

    def __exit__(self, *args):
        self._gen.dedent()
        if self._footer:
            self._gen.line(self._footer)


def split_top_level(text: str, sep: str = ',') -> list[str]:
    """Split on a separator that is not nested inside <>, () or []

    Examples:
        "int, std::map<int, float>" -> ["int", "std::map<int, float>"]
        "" -> []
    """
    parts = []
    depth = 0
    current = ''
    for ch in text:
        if ch in '<([':
            depth += 1
        elif ch in '>)]':
            depth -= 1
        if ch == sep and depth == 0:
            parts.append(current.strip())
            current = ''
        else:
            current += ch
    if current.strip():
        parts.append(current.strip())
    return parts


def strip_elaborated(type_str: str) -> str:
    """Remove struct/class/enum/union keywords from a type spelling"""
    return ELABORATED_RE.sub('', type_str).strip()


def normalize_std(type_str: str) -> str:
    """Fold standard library inline namespaces back into std::

    Examples:
        std::__1::vector<int> -> std::vector<int>
        std::__cxx11::basic_string<char> -> std::basic_string<char>
    """
    return INLINE_NS_RE.sub('std::', type_str)


def strip_qualifiers(type_str: str, pointers: bool = True) -> str:
    """Remove outer cv-qualifiers, references, pointers and elaborated keywords

    Template arguments keep their own qualifiers.

    Examples:
        "const struct Foo &" -> "Foo"
        "volatile int *" -> "int"
        "const std::vector<const int *> &" -> "std::vector<const int *>"
    """
    text = strip_elaborated(type_str)
    previous = None
    while previous != text:
        previous = text
        text = OUTER_PREFIX_RE.sub('', text)
        text = OUTER_SUFFIX_RE.sub('', text)
        if pointers and text.endswith('*'):
            text = text[:-1].rstrip()
    return ' '.join(text.split())


def is_const_type(type_str: str) -> bool:
    """Check if the outermost type (or referenced type) is const"""
    text = type_str.strip()
    if text.endswith('*'):
        return False
    return 'const' in text.split('<')[0].split()


def is_pointer_type(type_str: str) -> bool:
    """Check if type is a pointer"""
    text = type_str.strip()
    if text.endswith('const'):
        text = text[:-5].strip()
    return text.endswith('*')


def is_reference_type(type_str: str) -> bool:
    """Check if type is an lvalue or rvalue reference"""
    return type_str.strip().endswith('&')


def is_string_ptr(type_str: str) -> bool:
    """Check if type is a C string"""
    return ' '.join(type_str.replace('*', ' * ').split()) in ('char *', 'const char *', 'char const *')


def split_template(type_str: str) -> tuple[str, list[str]]:
    """Split a template spelling into its name and top-level arguments

    Examples:
        "std::vector<int>" -> ("std::vector", ["int"])
        "std::map<int, std::vector<int> >" -> ("std::map", ["int", "std::vector<int>"])
        "Foo" -> ("Foo", [])
    """
    text = type_str.strip()
    if not text.endswith('>') or '<' not in text:
        return text, []
    open_idx = text.index('<')
    return text[:open_idx].strip(), split_top_level(text[open_idx + 1:-1])


def split_scope(name: str) -> tuple[str, str]:
    """Split a name at its final top-level scope separator

    Examples:
        "n1::n2::alpha" -> ("n1::n2", "alpha")
        "ns::Box<ns::Item>" -> ("ns", "Box<ns::Item>")
        "alpha" -> ("", "alpha")
    """
    depth = 0
    last = -1
    for i, ch in enumerate(name):
        if ch in '<(':
            depth += 1
        elif ch in '>)':
            depth -= 1
        elif depth == 0 and name.startswith('::', i):
            last = i
    if last < 0:
        return '', name
    return name[:last], name[last + 2:]


def parse_function_type(type_str: str) -> Optional[tuple[str, list[str]]]:
    """Parse a function-shaped type into return type and parameter types

    Returns None if the spelling is not function shaped.
    Example: "int (std::string, double)" -> ("int", ["std::string", "double"])
    """
    text = type_str.strip()
    if not text.endswith(')'):
        return None
    depth = 0
    for i in range(len(text) - 1, -1, -1):
        ch = text[i]
        if ch in ')>':
            depth += 1
        elif ch in '(<':
            depth -= 1
            if depth == 0:
                result_type = text[:i].strip()
                if not result_type:
                    return None
                args = split_top_level(text[i + 1:-1])
                if args == ['void']:
                    args = []
                return result_type, args
    return None


def parse_callable_wrapper(type_str: str) -> Optional[tuple[str, list[str]]]:
    """Decompose a std::function spelling into its signature

    Accepts cv/ref qualified and elaborated spellings:
        "const std::function<void (int)> &" -> ("void", ["int"])
        "class std::function<int (class Foo)>" -> ("int", ["Foo"])
    """
    text = strip_qualifiers(normalize_std(type_str), pointers=False)
    name, args = split_template(text)
    if name not in CALLABLE_WRAPPERS or len(args) != 1:
        return None
    return parse_function_type(args[0])


def as_identifier(name: str) -> str:
    """Make a name usable as a Python identifier by suffixing keywords"""
    if keyword.iskeyword(name):
        return name + '_'
    return name


def python_function_name(name: str, arity: int, is_member: bool) -> Optional[str]:
    """Python name of a bound C++ function, None when Python has no spelling for it

    Member operators become the matching special method. Free operators,
    assignment, increments and anything else without a counterpart are
    not bound.

    Examples:
        from -> from_
        operator== (member, one parameter) -> __eq__
        operator- (member, no parameters) -> __neg__
        operator= -> None
    """
    match = OPERATOR_RE.match(name)
    if match is None:
        return as_identifier(name) if name.isidentifier() else None
    if not is_member:
        return None
    symbol = match.group(1).replace(' ', '')
    if symbol in CALL_OPERATORS:
        return CALL_OPERATORS[symbol]
    if arity == 0:
        return UNARY_OPERATORS.get(symbol)
    if arity == 1:
        return BINARY_OPERATORS.get(symbol)
    return None


def as_handle(qualified: str) -> str:
    """Convert a qualified C++ name into a C++ variable handle

    Examples:
        n1::n2::alpha -> n1_n2_alpha_class
        alpha -> alpha_class
    """
    handle = re.sub(r'\W+', '_', qualified).strip('_')
    return f'{handle}_class'


def escape_cpp_string(text: str) -> str:
    """Escape text for use inside a C++ string literal"""
    return text.replace('\\', '\\\\').replace('"', '\\"')
