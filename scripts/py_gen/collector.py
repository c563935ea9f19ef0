"""
Declaration collection module

Filters declaration sightings down to user-written structs, enums and
functions and builds the semantic model from them.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Optional, TYPE_CHECKING

from loguru import logger

from .codegen import (
    is_const_type, is_pointer_type, is_reference_type,
    parse_callable_wrapper, strip_elaborated,
)
from .ir import (
    QualifiedName, Member, CallableSignature, TypeEntity, Function,
    HeaderReference, Model, ModelAggregator,
)
from .sightings import KIND_STRUCT, KIND_ENUM, KIND_FUNC
from .clang_ast import parse_unit

if TYPE_CHECKING:
    from .sightings import DeclarationSighting, FieldSighting, ParamSighting

# Qualified-name prefixes reserved for the implementation
RESERVED_PREFIXES = ('std', '__')


class DeclarationCollector:
    """Collects the declarations of one translation unit"""

    def __init__(self):
        self._types: list[TypeEntity] = []
        self._functions: list[Function] = []
        self._headers: list[HeaderReference] = []
        self._finalized = False

    def is_excluded(self, sighting: 'DeclarationSighting') -> bool:
        """Check if a sighting belongs to non-user code"""
        qualified = sighting.name.qualified
        return (not qualified
                or qualified.startswith(RESERVED_PREFIXES)
                or sighting.is_implicit
                or not sighting.is_first_decl
                or not sighting.location.is_valid
                or sighting.location.is_system)

    def visit(self, sighting: 'DeclarationSighting') -> bool:
        """Consume one sighting, returns True if it was collected"""
        self._check_open()
        if self.is_excluded(sighting):
            logger.trace(f'Skipping {sighting.kind} {sighting.name.qualified or "<anonymous>"}')
            return False

        if sighting.kind == KIND_STRUCT:
            self._types.append(self._collect_struct(sighting))
        elif sighting.kind == KIND_ENUM:
            self._types.append(self._collect_enum(sighting))
        elif sighting.kind == KIND_FUNC:
            self._functions.append(self._collect_func(sighting))
        else:
            raise ValueError(f'unknown declaration kind: {sighting.kind}')

        logger.debug(f'Collected {sighting.kind} {sighting.name.qualified}')
        return True

    def visit_all(self, sightings: Iterable['DeclarationSighting']) -> int:
        """Consume a whole sighting stream, returns the number collected"""
        return sum(1 for sighting in sightings if self.visit(sighting))

    def add_headers(self, headers: Iterable[HeaderReference]):
        """Record direct inclusions of the root unit"""
        self._check_open()
        self._headers.extend(headers)

    def finalize(self) -> Model:
        """Close the collector and hand out the unit's model"""
        self._check_open()
        self._finalized = True
        return Model(
            types=list(self._types),
            functions=list(self._functions),
            headers=list(self._headers),
        )

    def _check_open(self):
        if self._finalized:
            raise RuntimeError('collector is finalized')

    def _collect_struct(self, sighting: 'DeclarationSighting') -> TypeEntity:
        members = tuple(self._field_member(f) for f in sighting.fields)
        return TypeEntity(name=sighting.name, is_enum=False, members=members)

    def _collect_enum(self, sighting: 'DeclarationSighting') -> TypeEntity:
        underlying = sighting.underlying_type or QualifiedName('int', 'int')
        members = tuple(
            Member(
                type=underlying,
                name=QualifiedName(e.name, e.qualified_name),
                value=int(e.value),
            )
            for e in sighting.enumerators
        )
        return TypeEntity(name=sighting.name, is_enum=True, members=members)

    def _collect_func(self, sighting: 'DeclarationSighting') -> Function:
        return Function(
            name=sighting.name,
            return_type=sighting.return_type or QualifiedName('void', 'void'),
            namespace=sighting.name.namespace,
            is_member_function=sighting.owner is not None,
            is_pure_virtual=sighting.is_pure_virtual,
            is_static=sighting.is_static,
            owner=sighting.owner,
            parameters=tuple(self._param_member(p) for p in sighting.params),
        )

    def _field_member(self, field: 'FieldSighting') -> Member:
        spelling = field.type.plain
        return Member(
            type=field.type,
            name=QualifiedName(field.name, field.qualified_name),
            is_const=is_const_type(spelling),
            is_pointer=is_pointer_type(spelling),
            is_reference=is_reference_type(spelling),
            is_public=field.access == 'public',
        )

    def _param_member(self, param: 'ParamSighting') -> Member:
        spelling = param.type.plain
        signature = unwrap_callable(param.type)
        return Member(
            type=param.type,
            name=QualifiedName(param.name, param.qualified_name),
            is_const=is_const_type(spelling),
            is_pointer=is_pointer_type(spelling),
            is_reference=is_reference_type(spelling),
            is_public=True,
            is_functional=signature is not None,
            signatures=(signature,) if signature is not None else (),
        )


def unwrap_callable(type_name: QualifiedName) -> Optional[CallableSignature]:
    """Decompose a std::function parameter type into one CallableSignature

    Only the wrapper's own signature is decomposed; callables nested in its
    arguments stay as type spellings.
    """
    plain = parse_callable_wrapper(type_name.plain)
    if plain is None:
        plain = parse_callable_wrapper(type_name.qualified)
        if plain is None:
            return None
    canonical = parse_callable_wrapper(type_name.qualified) or plain
    if len(canonical[1]) != len(plain[1]):
        canonical = plain

    result_type = QualifiedName(strip_elaborated(plain[0]), strip_elaborated(canonical[0]))
    params = []
    for arg, canonical_arg in zip(plain[1], canonical[1]):
        params.append(Member(
            type=QualifiedName(strip_elaborated(arg), strip_elaborated(canonical_arg)),
            name=QualifiedName(''),
            is_const=is_const_type(arg),
            is_pointer=is_pointer_type(arg),
            is_reference=is_reference_type(arg),
        ))
    return CallableSignature(return_type=result_type, parameters=tuple(params))


def collect_unit(source: str, clang_args: list[str]) -> Model:
    """Run the AST provider over one source and collect its declarations"""
    sightings, headers = parse_unit(source, clang_args)
    collector = DeclarationCollector()
    collected = collector.visit_all(sightings)
    collector.add_headers(headers)
    logger.info(f'{source}: collected {collected} of {len(sightings)} declarations, '
                f'{len(headers)} direct includes')
    return collector.finalize()


def collect_sources(sources: list[str], clang_args: list[str], jobs: int = 1,
                    duplicates: str = 'keep') -> Model:
    """Collect every source and merge the results in source order"""
    aggregator = ModelAggregator(duplicates)
    if jobs <= 1 or len(sources) <= 1:
        for source in sources:
            aggregator.append(collect_unit(source, clang_args))
    else:
        with ThreadPoolExecutor(max_workers=jobs) as executor:
            futures = [executor.submit(collect_unit, source, clang_args) for source in sources]
            # Appending in submission order keeps the model independent of scheduling
            for future in futures:
                aggregator.append(future.result())
    return aggregator.finalize()
