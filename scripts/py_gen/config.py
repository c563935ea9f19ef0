"""
Configuration module

Loads run settings from a TOML file. Example:

    module_name = "my_module"
    sources = ["include/shapes.h", "src/api.cpp"]
    compile_args = ["-Iinclude", "-DNDEBUG"]
    output_dir = "build/bindings"
    version = "1.2.0"
    jobs = 4
    duplicates = "first"

    [type_map]
    "glm::vec3" = "tuple[float, float, float]"

Relative source and output paths are resolved against the file's directory.
"""

from dataclasses import dataclass, field
import os
import tomllib
from typing import Optional

from .errors import ConfigError
from .ir import DUPLICATE_POLICIES
from .types import TypeMapper, AliasHandler

DEFAULT_VERSION = '0.1.0'


@dataclass
class Config:
    """Settings of one generation run"""
    module_name: Optional[str] = None
    sources: list[str] = field(default_factory=list)
    compile_args: list[str] = field(default_factory=list)
    output_dir: str = '.'
    version: str = DEFAULT_VERSION
    jobs: int = 1
    duplicates: str = 'keep'
    type_map: dict[str, str] = field(default_factory=dict)

    def validate(self):
        if not self.module_name:
            raise ConfigError('module name is required')
        if not self.module_name.isidentifier():
            raise ConfigError(f'module name is not a valid identifier: {self.module_name}')
        if self.jobs < 1:
            raise ConfigError(f'jobs must be at least 1, got {self.jobs}')
        if self.duplicates not in DUPLICATE_POLICIES:
            raise ConfigError(f'duplicates must be one of {", ".join(DUPLICATE_POLICIES)}, '
                              f'got {self.duplicates}')

    def type_mapper(self) -> TypeMapper:
        """Build a TypeMapper with the configured aliases registered"""
        mapper = TypeMapper()
        for type_name, python_type in self.type_map.items():
            mapper.register(type_name, AliasHandler(python_type))
        return mapper


def _expect(data: dict, key: str, kind: type, path: str):
    value = data[key]
    if not isinstance(value, kind):
        raise ConfigError(f'{path}: {key} must be a {kind.__name__}')
    return value


def _string_list(data: dict, key: str, path: str) -> list[str]:
    values = _expect(data, key, list, path)
    if not all(isinstance(v, str) for v in values):
        raise ConfigError(f'{path}: {key} must be a list of strings')
    return values


def load_config(path: str) -> Config:
    """Load a Config from a TOML file"""
    try:
        with open(path, 'rb') as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f'cannot read config {path}: {e.strerror}') from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f'invalid config {path}: {e}') from e

    base_dir = os.path.dirname(os.path.abspath(path))
    config = Config()
    if 'module_name' in data:
        config.module_name = _expect(data, 'module_name', str, path)
    if 'sources' in data:
        config.sources = [os.path.join(base_dir, s) for s in _string_list(data, 'sources', path)]
    if 'compile_args' in data:
        config.compile_args = _string_list(data, 'compile_args', path)
    if 'output_dir' in data:
        config.output_dir = os.path.join(base_dir, _expect(data, 'output_dir', str, path))
    if 'version' in data:
        config.version = _expect(data, 'version', str, path)
    if 'jobs' in data:
        config.jobs = _expect(data, 'jobs', int, path)
    if 'duplicates' in data:
        config.duplicates = _expect(data, 'duplicates', str, path)
    if 'type_map' in data:
        type_map = _expect(data, 'type_map', dict, path)
        if not all(isinstance(v, str) for v in type_map.values()):
            raise ConfigError(f'{path}: type_map values must be strings')
        config.type_map = dict(type_map)

    unknown = set(data) - {'module_name', 'sources', 'compile_args', 'output_dir', 'version',
                           'jobs', 'duplicates', 'type_map'}
    if unknown:
        raise ConfigError(f'{path}: unknown key(s): {", ".join(sorted(unknown))}')
    return config
