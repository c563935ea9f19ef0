"""
py_gen - pybind11 binding generation from C++ declarations

Collects user declarations from clang's JSON AST into a semantic model and
renders it into a pybind11 module source, a .pyi type stub and the build
scaffolding needed to compile and package the extension.
"""

from .ir import (
    QualifiedName, Member, CallableSignature, TypeEntity, Function, HeaderReference,
    Model, ModelAggregator,
)
from .sightings import (
    SourceLocation, DeclarationSighting, FieldSighting, EnumeratorSighting, ParamSighting,
)
from .collector import DeclarationCollector, collect_unit, collect_sources
from .types import TypeMapper, TypeHandler, AliasHandler, map_type
from .codegen import CodeGen
from .enum import EnumGenerator
from .struct import StructGenerator
from .func import FuncGenerator
from .stubs import StubGenerator
from .scaffold import ScaffoldGenerator
from .materialize import FileMaterializer
from .generator import Generator
from .config import Config, load_config
from .errors import PyGenError, TemplateError, MaterializeError, AstProviderError, ConfigError

__all__ = [
    'QualifiedName', 'Member', 'CallableSignature', 'TypeEntity', 'Function', 'HeaderReference',
    'Model', 'ModelAggregator',
    'SourceLocation', 'DeclarationSighting', 'FieldSighting', 'EnumeratorSighting', 'ParamSighting',
    'DeclarationCollector', 'collect_unit', 'collect_sources',
    'TypeMapper', 'TypeHandler', 'AliasHandler', 'map_type',
    'CodeGen',
    'EnumGenerator',
    'StructGenerator',
    'FuncGenerator',
    'StubGenerator',
    'ScaffoldGenerator',
    'FileMaterializer',
    'Generator',
    'Config', 'load_config',
    'PyGenError', 'TemplateError', 'MaterializeError', 'AstProviderError', 'ConfigError',
]
