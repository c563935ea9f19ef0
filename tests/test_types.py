"""Tests for C++ to Python type mapping."""

import pytest

from py_gen.ir import QualifiedName
from py_gen.types import TypeMapper, TypeHandler, AliasHandler, map_type, python_fallback


@pytest.mark.parametrize('cpp_type, python_type', [
    ('void', 'None'),
    ('void *', 'object'),
    ('bool', 'bool'),
    ('int', 'int'),
    ('unsigned long long', 'int'),
    ('const size_t', 'int'),
    ('std::int32_t', 'int'),
    ('double', 'float'),
    ('const float &', 'float'),
    ('std::string', 'str'),
    ('const std::string &', 'str'),
    ('std::string_view', 'str'),
    ('const char *', 'str'),
    ('std::__cxx11::basic_string<char>', 'str'),
    ('std::complex<double>', 'complex'),
    ('std::vector<std::vector<int>>', 'list[list[int]]'),
    ('std::__1::vector<int, std::__1::allocator<int> >', 'list[int]'),
    ('const std::array<float, 3> &', 'list[float]'),
    ('int[4]', 'list[int]'),
    ('std::unordered_set<long>', 'set[int]'),
    ('std::optional<std::string>', 'Optional[str]'),
    ('std::map<std::string, std::vector<double>>', 'dict[str, list[float]]'),
    ('std::pair<int, double>', 'tuple[int, float]'),
    ('std::function<int(std::string, double)>', 'Callable[[str, float], int]'),
    ('std::function<void ()>', 'Callable[[], None]'),
    ('std::shared_ptr<n1::alpha>', 'alpha'),
    ('n1::n2::alpha', 'alpha'),
    ('const struct n1::Point *', 'Point'),
    ('vector<vector<int>>', 'list[list[int]]'),
    ('const string &', 'str'),
    ('optional<string>', 'Optional[str]'),
    ('map<string, vector<double>>', 'dict[str, list[float]]'),
    ('function<int(string, double)>', 'Callable[[str, float], int]'),
    ('function<int(string,double)>', 'Callable[[str, float], int]'),
    ('unique_ptr<n1::alpha>', 'alpha'),
])
def test_map_type(cpp_type, python_type):
    assert map_type(cpp_type) == python_type


def test_mapping_is_referentially_transparent():
    """Test that repeated mapping gives the same answer."""
    mapper = TypeMapper()
    spelling = 'std::map<int, std::function<void (const std::string &)>>'
    first = mapper.map(spelling)
    assert first == 'dict[int, Callable[[str], None]]'
    assert all(mapper.map(spelling) == first for _ in range(3))


def test_alias_handler_overrides_table():
    """Test that a registered handler wins over the built-in table."""
    mapper = TypeMapper()
    mapper.register('glm::vec3', AliasHandler('tuple[float, float, float]'))
    mapper.register('int', AliasHandler('numbers.Integral'))
    assert mapper.has_handler('glm::vec3')
    assert mapper.map('const glm::vec3 &') == 'tuple[float, float, float]'
    assert mapper.map('std::vector<glm::vec3>') == 'list[tuple[float, float, float]]'
    assert mapper.map('int') == 'numbers.Integral'
    assert map_type('int') == 'int'


def test_custom_handler_receives_mapper():
    """Test a handler that delegates back to the mapper."""
    class SpanHandler(TypeHandler):
        def stub_type(self, type_str, mapper):
            return f'Sequence[{mapper.map("float")}]'

    mapper = TypeMapper()
    mapper.register('FloatSpan', SpanHandler())
    assert mapper.map('FloatSpan &') == 'Sequence[float]'


def test_handler_matches_unqualified_spelling():
    mapper = TypeMapper()
    mapper.register('std::string', AliasHandler('bytes'))
    assert mapper.map('const string &') == 'bytes'


def test_map_name_prefers_written_spelling():
    mapper = TypeMapper()
    assert mapper.map_name(QualifiedName('vector<int>', 'std::vector<int>')) == 'list[int]'
    assert mapper.map_name(QualifiedName('Scalar', 'double')) == 'Scalar'


def test_map_name_falls_back_to_canonical_spelling():
    """Test that a spelling with leftover C++ syntax retries the canonical one."""
    mapper = TypeMapper()
    name = QualifiedName('IntList::iterator<int>', 'std::vector<int>')
    assert mapper.map_name(name) == 'list[int]'


@pytest.mark.parametrize('expr, python_type', [
    ('Box<int>', 'Box'),
    ('Box<ns::Item<int>>', 'Box'),
    ('list[ns::Box<int>]', 'list[Box]'),
    ('(anonymous)', 'object'),
])
def test_python_fallback(expr, python_type):
    assert python_fallback(expr) == python_type


def test_map_name_never_returns_cpp_syntax():
    mapper = TypeMapper()
    assert mapper.map_name(QualifiedName('ns::Box<ns::Item>', 'ns::Box<ns::Item>')) == 'Box'
