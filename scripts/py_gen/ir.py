"""
IR (Intermediate Representation) module

The semantic model collected from analyzed C++ translation units: types,
enumerations, functions and the headers the root unit includes. Entities
are immutable; units are merged through ModelAggregator.
"""

from dataclasses import dataclass, field, asdict
from typing import Optional
import json
import threading

from loguru import logger

DUPLICATE_POLICIES = ('keep', 'first', 'last')


@dataclass(frozen=True)
class QualifiedName:
    """Declaration name, plain and fully scope-prefixed"""
    plain: str
    qualified: str = ''
    namespace: Optional[str] = None

    @property
    def full(self) -> str:
        """Qualified name, falling back to the plain name"""
        return self.qualified or self.plain


@dataclass(frozen=True)
class CallableSignature:
    """Signature of the function type wrapped by a std::function parameter"""
    return_type: QualifiedName
    parameters: tuple['Member', ...] = ()


@dataclass(frozen=True)
class Member:
    """Data field, enumerator or function parameter"""
    type: QualifiedName
    name: QualifiedName
    value: int = 0  # enumerators only
    is_const: bool = False
    is_pointer: bool = False
    is_reference: bool = False
    is_public: bool = False
    is_functional: bool = False
    signatures: tuple[CallableSignature, ...] = ()


@dataclass(frozen=True)
class TypeEntity:
    """Struct, class or enumeration"""
    name: QualifiedName
    is_enum: bool = False
    members: tuple[Member, ...] = ()


@dataclass(frozen=True)
class Function:
    """Free function or member function"""
    name: QualifiedName
    return_type: QualifiedName
    namespace: Optional[str] = None
    is_member_function: bool = False
    is_pure_virtual: bool = False
    is_static: bool = False
    owner: Optional[QualifiedName] = None
    parameters: tuple[Member, ...] = ()

    @property
    def is_void(self) -> bool:
        return self.return_type.plain.strip() == 'void'


@dataclass(frozen=True)
class HeaderReference:
    """Direct inclusion seen in the root translation unit"""
    name: str
    full_path: str = ''
    is_system: bool = False
    is_input_file: bool = False


@dataclass
class Model:
    """Collected declarations of one unit, or of a whole run once aggregated"""
    types: list[TypeEntity] = field(default_factory=list)
    functions: list[Function] = field(default_factory=list)
    headers: list[HeaderReference] = field(default_factory=list)

    @classmethod
    def load(cls, json_path: str) -> 'Model':
        """Load a model from a JSON file written by save()"""
        with open(json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def save(self, json_path: str):
        """Write the model as JSON"""
        with open(json_path, 'w', encoding='utf-8', newline='\n') as f:
            json.dump(self.to_dict(), f, indent=2)
            f.write('\n')

    def to_dict(self) -> dict:
        return {
            'types': [asdict(t) for t in self.types],
            'functions': [asdict(f) for f in self.functions],
            'headers': [asdict(h) for h in self.headers],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Model':
        return cls(
            types=[_parse_type(t) for t in data.get('types', [])],
            functions=[_parse_function(f) for f in data.get('functions', [])],
            headers=[HeaderReference(**h) for h in data.get('headers', [])],
        )

    def enums(self) -> list[TypeEntity]:
        return [t for t in self.types if t.is_enum]

    def structs(self) -> list[TypeEntity]:
        return [t for t in self.types if not t.is_enum]

    def methods_of(self, entity: TypeEntity) -> list[Function]:
        """Functions whose owner is exactly this type, in encounter order"""
        return [f for f in self.functions
                if f.owner is not None and f.owner.qualified == entity.name.qualified]

    def free_functions(self) -> list[Function]:
        return [f for f in self.functions if not f.is_member_function]

    def orphan_methods(self) -> list[Function]:
        """Member functions whose owner matches no collected type"""
        owners = {t.name.qualified for t in self.types if not t.is_enum}
        return [f for f in self.functions
                if f.is_member_function and (f.owner is None or f.owner.qualified not in owners)]

    def user_headers(self) -> list[HeaderReference]:
        """User-origin headers, one per name, sorted by name"""
        return _unique_headers(h for h in self.headers if not h.is_system)

    def system_headers(self) -> list[HeaderReference]:
        """System-origin headers, one per name, sorted by name"""
        return _unique_headers(h for h in self.headers if h.is_system)


def _unique_headers(headers) -> list[HeaderReference]:
    unique: dict[str, HeaderReference] = {}
    for header in headers:
        unique.setdefault(header.name, header)
    return [unique[name] for name in sorted(unique)]


def _parse_name(data: Optional[dict]) -> Optional[QualifiedName]:
    if data is None:
        return None
    return QualifiedName(**data)


def _parse_member(data: dict) -> Member:
    return Member(
        type=_parse_name(data['type']),
        name=_parse_name(data['name']),
        value=int(data.get('value', 0)),
        is_const=data.get('is_const', False),
        is_pointer=data.get('is_pointer', False),
        is_reference=data.get('is_reference', False),
        is_public=data.get('is_public', False),
        is_functional=data.get('is_functional', False),
        signatures=tuple(
            CallableSignature(
                return_type=_parse_name(s['return_type']),
                parameters=tuple(_parse_member(p) for p in s.get('parameters', [])),
            )
            for s in data.get('signatures', [])
        ),
    )


def _parse_type(data: dict) -> TypeEntity:
    return TypeEntity(
        name=_parse_name(data['name']),
        is_enum=data.get('is_enum', False),
        members=tuple(_parse_member(m) for m in data.get('members', [])),
    )


def _parse_function(data: dict) -> Function:
    return Function(
        name=_parse_name(data['name']),
        return_type=_parse_name(data['return_type']),
        namespace=data.get('namespace'),
        is_member_function=data.get('is_member_function', False),
        is_pure_virtual=data.get('is_pure_virtual', False),
        is_static=data.get('is_static', False),
        owner=_parse_name(data.get('owner')),
        parameters=tuple(_parse_member(p) for p in data.get('parameters', [])),
    )


def _function_key(func: Function) -> tuple:
    return (func.name.full, tuple(p.type.qualified or p.type.plain for p in func.parameters))


class ModelAggregator:
    """Owns the run-wide accumulators and merges unit results into them

    append() is the only mutation and is serialized with a lock, so units
    may be collected concurrently. How declarations seen in several units are
    merged is an explicit policy:

        keep  - every observation is kept (no deduplication)
        first - the first observation of a qualified name wins
        last  - the last observation of a qualified name wins
    """

    def __init__(self, duplicates: str = 'keep'):
        if duplicates not in DUPLICATE_POLICIES:
            raise ValueError(f'unknown duplicate policy: {duplicates}')
        self.duplicates = duplicates
        self._lock = threading.Lock()
        self._types: list[TypeEntity] = []
        self._functions: list[Function] = []
        self._headers: list[HeaderReference] = []
        self._closed = False

    def append(self, unit: Model):
        """Merge one unit's results"""
        with self._lock:
            if self._closed:
                raise RuntimeError('model is finalized, no more units can be appended')
            self._types = self._merge(self._types, unit.types, lambda t: t.name.full)
            self._functions = self._merge(self._functions, unit.functions, _function_key)
            self._headers.extend(unit.headers)

    def _merge(self, existing: list, incoming: list, key) -> list:
        if self.duplicates == 'keep':
            return existing + list(incoming)

        merged = list(existing)
        index = {key(item): i for i, item in enumerate(merged)}
        for item in incoming:
            k = key(item)
            if k not in index:
                index[k] = len(merged)
                merged.append(item)
                continue
            logger.debug(f'Duplicate declaration {k!r}, keeping {self.duplicates} observation')
            if self.duplicates == 'last':
                merged[index[k]] = item
        return merged

    def finalize(self) -> Model:
        """Close the aggregator and return the run-wide model"""
        with self._lock:
            self._closed = True
            return Model(
                types=list(self._types),
                functions=list(self._functions),
                headers=list(self._headers),
            )
