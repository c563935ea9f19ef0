"""
Clang AST provider

Runs clang++ with -ast-dump=json on a translation unit and turns the dump
into the declaration-sighting stream consumed by DeclarationCollector, plus
the list of headers the root file includes directly.

Clang writes "file" and "line" of a source location only when they differ
from the previously written location, so locations are resolved in a
document-order pass before declarations are extracted.
"""

import json
import os
import re
import subprocess
from typing import Optional

from loguru import logger

from .codegen import parse_function_type
from .errors import AstProviderError
from .ir import QualifiedName, HeaderReference
from .sightings import (
    KIND_STRUCT, KIND_ENUM, KIND_FUNC,
    SourceLocation, DeclarationSighting, FieldSighting, EnumeratorSighting, ParamSighting,
)

HEADER_EXTENSIONS = ('.h', '.hh', '.hpp', '.hxx')

INCLUDE_RE = re.compile(r'^\s*#\s*include\s*([<"])([^>"]+)[>"]')
CONDITIONAL_RE = re.compile(r'^\s*#\s*(ifdef|ifndef|if|elif|else|endif)\b(.*)$')
# String and character literals are matched so comment markers inside them survive
COMMENT_RE = re.compile(r'"(?:\\.|[^"\\\n])*"|\'(?:\\.|[^\'\\\n])*\'|/\*.*?\*/|//[^\n]*', re.DOTALL)
FUNC_QUALIFIERS_RE = re.compile(r'\)\s*(?:const|volatile|&&|&|noexcept(?:\([^)]*\))?|throw\([^)]*\)|\s)*$')

RECORD_KINDS = ('CXXRecordDecl', 'RecordDecl')
# Transparent contexts whose children belong to the enclosing scope
TRANSPARENT_KINDS = ('LinkageSpecDecl', 'ExportDecl')
# Special members and templates cannot be bound by address
SKIPPED_FUNCTION_KINDS = ('CXXConstructorDecl', 'CXXDestructorDecl', 'CXXConversionDecl',
                          'CXXDeductionGuideDecl')


def run_clang(source: str, clang_args: list[str]) -> dict:
    """Run clang++ to get the AST dump of one translation unit"""
    clangpp = os.environ.get('CLANGPP', 'clang++')
    cmd = [clangpp, '-x', 'c++']
    if not any(arg.startswith('-std=') for arg in clang_args):
        cmd.append('-std=c++17')
    cmd.extend(['-fsyntax-only', '-Xclang', '-ast-dump=json'])
    cmd.extend(clang_args)
    cmd.append(source)
    logger.debug(f'Running {" ".join(cmd)}')

    try:
        result = subprocess.run(cmd, capture_output=True)
    except OSError as e:
        raise AstProviderError(f'cannot run {clangpp}: {e}', source) from e
    stderr = result.stderr.decode('utf-8', errors='replace')
    if result.returncode != 0:
        raise AstProviderError(f'{clangpp} exited with status {result.returncode}', source, stderr)
    for line in stderr.splitlines():
        if 'warning:' in line:
            logger.warning(line.strip())

    try:
        return json.loads(result.stdout)
    except ValueError as e:
        raise AstProviderError(f'unparsable AST dump: {e}', source) from e


def user_include_dirs(source: str, clang_args: list[str]) -> list[str]:
    """Directories whose headers count as user code

    The root file's directory plus every -I and -iquote path; -isystem and
    the compiler's own search paths are system regions.
    """
    dirs = [os.path.dirname(os.path.abspath(source))]
    args = iter(clang_args)
    for arg in args:
        for flag in ('-I', '-iquote'):
            if arg == flag:
                value = next(args, '')
            elif arg.startswith(flag) and flag == '-I':
                value = arg[len(flag):]
            else:
                continue
            if value:
                dirs.append(os.path.abspath(value))
    return dirs


def scan_includes(source: str, clang_args: list[str]) -> list[HeaderReference]:
    """Collect the #include directives spelled in the root file"""
    user_dirs = user_include_dirs(source, clang_args)
    headers = []

    if source.lower().endswith(HEADER_EXTENSIONS):
        headers.append(HeaderReference(
            name=os.path.basename(source),
            full_path=os.path.abspath(source),
            is_system=False,
            is_input_file=True,
        ))

    try:
        with open(source, 'r', encoding='utf-8', errors='replace') as f:
            text = f.read()
    except OSError as e:
        raise AstProviderError(f'cannot read source: {e}', source) from e

    for line in _live_lines(text):
        m = INCLUDE_RE.match(line)
        if not m:
            continue
        delimiter, name = m.groups()
        search = user_dirs if delimiter == '"' else user_dirs[1:]
        full_path = _resolve_header(name, search)
        headers.append(HeaderReference(
            name=name,
            full_path=full_path or '',
            is_system=full_path is None,
            is_input_file=False,
        ))
    return headers


def _strip_comment(match: re.Match) -> str:
    token = match.group(0)
    if token.startswith('/'):
        # Block comments keep their line breaks
        return '\n' * token.count('\n') or ' '
    return token


def _live_lines(text: str):
    """Yield the lines a preprocessor would not discard

    Comments are removed and `#if 0` / `#if 1` regions are honored. Any
    other condition is unknown here, so both of its branches are kept.
    """
    # Frame states: skip (#if 0 before a taken branch), take (inside a
    # taken branch), open (unknown condition), done (after a taken branch)
    stack = []
    for line in COMMENT_RE.sub(_strip_comment, text).splitlines():
        m = CONDITIONAL_RE.match(line)
        if m:
            directive, condition = m.group(1), m.group(2).strip()
            if directive in ('if', 'ifdef', 'ifndef'):
                literal = condition if directive == 'if' else None
                stack.append({'0': 'skip', '1': 'take'}.get(literal, 'open'))
            elif stack and directive == 'elif':
                if stack[-1] == 'skip':
                    stack[-1] = {'0': 'skip', '1': 'take'}.get(condition, 'open')
                elif stack[-1] == 'take':
                    stack[-1] = 'done'
            elif stack and directive == 'else':
                if stack[-1] == 'skip':
                    stack[-1] = 'take'
                elif stack[-1] == 'take':
                    stack[-1] = 'done'
            elif stack and directive == 'endif':
                stack.pop()
            continue
        if 'skip' in stack or 'done' in stack:
            continue
        yield line


def _resolve_header(name: str, search_dirs: list[str]) -> Optional[str]:
    for directory in search_dirs:
        candidate = os.path.join(directory, name)
        if os.path.isfile(candidate):
            return os.path.realpath(candidate)
    return None


def parse_unit(source: str, clang_args: list[str]) -> tuple[list[DeclarationSighting], list[HeaderReference]]:
    """Analyze one translation unit"""
    logger.info(f'Processing file: {source}')
    ast = run_clang(source, clang_args)
    walker = ClangAstWalker(user_include_dirs(source, clang_args))
    return walker.walk(ast), scan_includes(source, clang_args)


class ClangAstWalker:
    """Extracts declaration sightings from a clang JSON AST"""

    def __init__(self, user_dirs: list[str]):
        self.user_dirs = [os.path.abspath(d) for d in user_dirs]
        self._locations: dict[int, SourceLocation] = {}
        self._last_file = ''
        self._last_line = 0
        self._sightings: list[DeclarationSighting] = []
        self._first_records: dict[str, DeclarationSighting] = {}

    def walk(self, translation_unit: dict) -> list[DeclarationSighting]:
        """Return sightings in declaration order"""
        self._locations.clear()
        self._sightings = []
        self._first_records = {}
        self._last_file = ''
        self._last_line = 0
        self._resolve_locations(translation_unit)
        self._walk_scope(translation_unit.get('inner', []), [])
        return self._sightings

    # -- location tracking ---------------------------------------------------

    def _resolve_locations(self, node: dict):
        loc = node.get('loc')
        if loc is not None:
            self._locations[id(node)] = self._read_loc(loc)
        rng = node.get('range')
        if rng:
            for key in ('begin', 'end'):
                if key in rng:
                    self._read_loc(rng[key])
        for child in node.get('inner', []):
            self._resolve_locations(child)

    def _read_loc(self, loc: dict) -> SourceLocation:
        # Macro locations carry both a spelling and an expansion location
        if 'spellingLoc' in loc or 'expansionLoc' in loc:
            self._read_bare_loc(loc.get('spellingLoc', {}))
            return self._read_bare_loc(loc.get('expansionLoc', {}))
        return self._read_bare_loc(loc)

    def _read_bare_loc(self, loc: dict) -> SourceLocation:
        if not loc:
            return SourceLocation()
        if 'file' in loc:
            self._last_file = loc['file']
        if 'line' in loc:
            self._last_line = int(loc['line'])
        is_system = bool(loc.get('isInSystemHeader')) or not self._is_user_file(self._last_file)
        return SourceLocation(file=self._last_file, line=self._last_line, is_system=is_system)

    def _is_user_file(self, path: str) -> bool:
        if not path:
            return False
        path = os.path.abspath(path)
        return any(os.path.commonpath([path, d]) == d for d in self.user_dirs)

    def _location(self, node: dict) -> SourceLocation:
        return self._locations.get(id(node), SourceLocation())

    # -- declarations --------------------------------------------------------

    def _walk_scope(self, decls: list[dict], scope: list[tuple[str, str]]):
        for decl in decls:
            kind = decl.get('kind')
            if kind == 'NamespaceDecl':
                name = decl.get('name', '(anonymous namespace)')
                self._walk_scope(decl.get('inner', []), scope + [('namespace', name)])
            elif kind in TRANSPARENT_KINDS:
                self._walk_scope(decl.get('inner', []), scope)
            elif kind in RECORD_KINDS:
                self._visit_record(decl, scope)
            elif kind == 'EnumDecl':
                self._visit_enum(decl, scope)
            elif kind in ('FunctionDecl', 'CXXMethodDecl'):
                self._visit_function(decl, scope, owner=None)

    def _name(self, decl: dict, scope: list[tuple[str, str]]) -> QualifiedName:
        plain = decl.get('name', '')
        namespace = scope[-1][1] if scope and scope[-1][0] == 'namespace' else None
        if not plain:
            return QualifiedName('', '', namespace)
        qualified = '::'.join([s[1] for s in scope] + [plain])
        return QualifiedName(plain, qualified, namespace)

    def _visit_record(self, decl: dict, scope: list[tuple[str, str]]):
        name = self._name(decl, scope)
        sighting = DeclarationSighting(
            kind=KIND_STRUCT,
            name=name,
            location=self._location(decl),
            is_implicit=bool(decl.get('isImplicit')),
            is_first_decl='previousDecl' not in decl,
        )
        self._sightings.append(sighting)
        if decl.get('isImplicit') or not name.plain:
            return

        first = self._first_records.get(decl.get('previousDecl', ''))
        if decl.get('id'):
            self._first_records[decl['id']] = first or sighting
        if not decl.get('completeDefinition'):
            return
        # A definition completes the canonical first declaration
        target = first or sighting

        access = 'private' if decl.get('tagUsed') == 'class' else 'public'
        record_scope = scope + [('record', name.plain)]
        for child in decl.get('inner', []):
            kind = child.get('kind')
            if kind == 'AccessSpecDecl':
                access = child.get('access', access)
            elif kind == 'FieldDecl':
                if 'name' not in child:
                    continue
                target.fields.append(FieldSighting(
                    name=child['name'],
                    qualified_name=f'{name.qualified}::{child["name"]}',
                    type=_type_name(child.get('type', {})),
                    access=child.get('access', access),
                ))
            elif kind in RECORD_KINDS:
                self._visit_record(child, record_scope)
            elif kind == 'EnumDecl':
                self._visit_enum(child, record_scope)
            elif kind == 'CXXMethodDecl':
                self._visit_function(child, record_scope, owner=name)

    def _visit_enum(self, decl: dict, scope: list[tuple[str, str]]):
        name = self._name(decl, scope)
        underlying = decl.get('fixedUnderlyingType')
        sighting = DeclarationSighting(
            kind=KIND_ENUM,
            name=name,
            location=self._location(decl),
            is_implicit=bool(decl.get('isImplicit')),
            is_first_decl='previousDecl' not in decl,
            underlying_type=_type_name(underlying) if underlying else QualifiedName('int', 'int'),
        )
        values: dict[str, int] = {}
        next_value = 0
        for child in decl.get('inner', []):
            if child.get('kind') != 'EnumConstantDecl':
                continue
            inits = child.get('inner', [])
            value = _evaluate_constant(inits[0], values) if inits else None
            if inits and value is None:
                logger.warning(f'Cannot evaluate initializer of {name.qualified}::{child["name"]}, '
                               f'assuming {next_value}')
            if value is None:
                value = next_value
            values[child['name']] = value
            next_value = value + 1
            sighting.enumerators.append(EnumeratorSighting(
                name=child['name'],
                qualified_name=f'{name.qualified}::{child["name"]}' if name.qualified else child['name'],
                value=value,
            ))
        self._sightings.append(sighting)

    def _visit_function(self, decl: dict, scope: list[tuple[str, str]], owner: Optional[QualifiedName]):
        if decl.get('kind') in SKIPPED_FUNCTION_KINDS:
            return
        name = self._name(decl, scope)
        func_type = decl.get('type', {})
        plain_sig = _function_signature(func_type.get('qualType', ''))
        canonical_sig = _function_signature(func_type.get('desugaredQualType', '')) or plain_sig
        return_type = QualifiedName(
            plain_sig[0] if plain_sig else 'void',
            canonical_sig[0] if canonical_sig else 'void',
        )

        params = []
        for child in decl.get('inner', []):
            if child.get('kind') != 'ParmVarDecl':
                continue
            params.append(ParamSighting(
                name=child.get('name', ''),
                qualified_name=child.get('name', ''),
                type=_type_name(child.get('type', {})),
            ))

        self._sightings.append(DeclarationSighting(
            kind=KIND_FUNC,
            name=name,
            location=self._location(decl),
            is_implicit=bool(decl.get('isImplicit')),
            is_first_decl='previousDecl' not in decl,
            return_type=return_type,
            params=params,
            owner=owner,
            is_static=decl.get('storageClass') == 'static' and owner is not None,
            is_pure_virtual=bool(decl.get('pure')),
        ))


def _type_name(type_info: dict) -> QualifiedName:
    """Plain spelling and canonical spelling of a clang type"""
    plain = type_info.get('qualType', '')
    return QualifiedName(plain, type_info.get('desugaredQualType', plain))


def _function_signature(type_str: str) -> Optional[tuple[str, list[str]]]:
    """Split "int (double) const noexcept" into return and parameter types"""
    if not type_str:
        return None
    trimmed = FUNC_QUALIFIERS_RE.sub(')', type_str.strip())
    return parse_function_type(trimmed)


def _evaluate_constant(node: dict, known: dict[str, int]) -> Optional[int]:
    """Evaluate an enumerator initializer

    Prefers the value clang already computed (ConstantExpr), then folds the
    simple expression shapes clang emits for integer literals.
    """
    kind = node.get('kind')
    if kind == 'ConstantExpr' and 'value' in node:
        return int(node['value'])
    if kind in ('IntegerLiteral', 'CharacterLiteral') and 'value' in node:
        return int(node['value'])
    if kind == 'CXXBoolLiteralExpr':
        return int(bool(node.get('value')))
    if kind == 'DeclRefExpr':
        ref = node.get('referencedDecl', {})
        return known.get(ref.get('name', ''))
    inner = node.get('inner', [])
    if kind in ('ImplicitCastExpr', 'ParenExpr', 'CStyleCastExpr', 'ConstantExpr',
                'CXXStaticCastExpr', 'CXXFunctionalCastExpr') and inner:
        return _evaluate_constant(inner[0], known)
    if kind == 'UnaryOperator' and inner:
        value = _evaluate_constant(inner[0], known)
        if value is None:
            return None
        return {'-': -value, '+': value, '~': ~value}.get(node.get('opcode'))
    return None
