"""
Declaration sightings

The event stream an AST provider hands to the DeclarationCollector: one
record per struct, enum or function declaration encountered while walking
a translation unit, carrying raw spellings and location classification.
"""

from dataclasses import dataclass, field
from typing import Optional

from .ir import QualifiedName

KIND_STRUCT = 'struct'
KIND_ENUM = 'enum'
KIND_FUNC = 'func'


@dataclass
class SourceLocation:
    """Where a declaration was spelled"""
    file: str = ''
    line: int = 0
    is_system: bool = False

    @property
    def is_valid(self) -> bool:
        return bool(self.file) and self.line > 0


@dataclass
class FieldSighting:
    """Data member of a record"""
    name: str
    qualified_name: str
    type: QualifiedName
    access: str = 'public'


@dataclass
class EnumeratorSighting:
    """Enumerator with its evaluated value"""
    name: str
    qualified_name: str
    value: int


@dataclass
class ParamSighting:
    """Function parameter"""
    name: str
    qualified_name: str
    type: QualifiedName


@dataclass
class DeclarationSighting:
    """One declaration as seen by the AST provider"""
    kind: str
    name: QualifiedName
    location: SourceLocation = field(default_factory=SourceLocation)
    is_implicit: bool = False
    is_first_decl: bool = True
    # struct
    fields: list[FieldSighting] = field(default_factory=list)
    # enum
    underlying_type: Optional[QualifiedName] = None
    enumerators: list[EnumeratorSighting] = field(default_factory=list)
    # func
    return_type: Optional[QualifiedName] = None
    params: list[ParamSighting] = field(default_factory=list)
    owner: Optional[QualifiedName] = None
    is_static: bool = False
    is_pure_virtual: bool = False
