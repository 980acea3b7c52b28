"""Scope resolution: binds every name reference to a symbol."""

import difflib
import logging
from collections import Counter
from dataclasses import dataclass, field
from ..dsl.ast import (
    Composition,
    Definition,
    FunctionCall,
    Identifier,
    Node,
    Program,
    WithBlock,
)
from ..errors import LibraryNotFound
from ..rules.library import STDFAUST, get_library, standard_prefix
from ..rules.primitives import ITERATIONS, PRIMITIVE_REGISTRY, PrimitiveCategory
from .deadline import Deadline
from .types import (
    Diagnostic,
    DiagnosticKind,
    Dimension,
    ImportInfo,
    LibraryExport,
    Location,
    Severity,
    SymbolKind,
)


logger = logging.getLogger(__name__)

IMPORT_SUGGESTION = f'add import("{STDFAUST}");'


@dataclass
class Symbol:
    """What a name resolves to.

    ``arity`` of ``None`` means unknown: user definitions get theirs from the
    dimension analyzer, imported names may lack an entry in the dictionary.
    """
    name: str
    kind: SymbolKind
    arity: Dimension | None = None
    definition_site: Location | None = None
    definition: Definition | None = None
    library: str | None = None
    delay: bool = False


@dataclass
class Scope:
    scope_id: int
    parent_id: int | None
    bindings: dict[str, Symbol] = field(default_factory=dict)


class ScopeTree:
    """Arena of scopes; parents are referenced by id."""

    def __init__(self):
        self.scopes: list[Scope] = []

    def new_scope(self, parent_id: int | None) -> Scope:
        scope = Scope(scope_id=len(self.scopes), parent_id=parent_id)
        self.scopes.append(scope)
        return scope

    def get(self, scope_id: int) -> Scope:
        return self.scopes[scope_id]

    def lookup(self, scope_id: int | None, name: str) -> Symbol | None:
        while scope_id is not None:
            scope = self.scopes[scope_id]
            if name in scope.bindings:
                return scope.bindings[name]
            scope_id = scope.parent_id
        return None

    def visible_names(self, scope_id: int | None) -> list[str]:
        names: list[str] = []
        while scope_id is not None:
            scope = self.scopes[scope_id]
            names.extend(scope.bindings)
            scope_id = scope.parent_id
        return names


@dataclass
class Resolution:
    """Output of the resolver consumed by later stages."""
    tree: ScopeTree
    builtin_scope_id: int
    global_scope_id: int
    bindings: dict[int, Symbol] = field(default_factory=dict)
    references: Counter = field(default_factory=Counter)
    imports: list[ImportInfo] = field(default_factory=list)
    libraries: list[LibraryExport] = field(default_factory=list)

    def symbol_for(self, node: Node) -> Symbol | None:
        return self.bindings.get(node.node_id)

    def is_referenced(self, definition: Definition) -> bool:
        return self.references[definition.node_id] > 0


def _builtin_symbols() -> dict[str, Symbol]:
    symbols = {}
    for name, primitive in PRIMITIVE_REGISTRY.items():
        kind = SymbolKind.UI if primitive.category in (PrimitiveCategory.UI, PrimitiveCategory.GROUP) else SymbolKind.PRIMITIVE
        symbols[name] = Symbol(name=name, kind=kind, arity=primitive.arity, delay=primitive.delay)
    for name in ITERATIONS:
        symbols[name] = Symbol(name=name, kind=SymbolKind.PRIMITIVE)
    return symbols


class ScopeResolver:
    """Builds the scope arena for a program and resolves its references."""

    def __init__(self, libraries: dict[str, LibraryExport], deadline: Deadline | None = None):
        self.available = libraries
        self.deadline = deadline or Deadline()
        self.errors: list[Diagnostic] = []
        self._failed_imports = False

    def resolve(self, program: Program) -> tuple[Resolution, list[Diagnostic]]:
        tree = ScopeTree()
        builtin = tree.new_scope(None)
        builtin.bindings.update(_builtin_symbols())
        global_scope = tree.new_scope(builtin.scope_id)
        resolution = Resolution(tree=tree, builtin_scope_id=builtin.scope_id,
                                global_scope_id=global_scope.scope_id)
        self.resolution = resolution

        self._resolve_imports(program)
        for definition in program.definitions:
            self._bind_definition(global_scope, definition)

        stack: list[tuple[Node, int]] = [
            (definition, global_scope.scope_id) for definition in reversed(program.definitions)
        ]
        while stack:
            self.deadline.check()
            node, scope_id = stack.pop()
            self._visit(node, scope_id, stack)

        logger.debug("resolved %d references in %d scopes (%d errors)",
                     len(resolution.bindings), len(tree.scopes), len(self.errors))
        return resolution, self.errors

    def _resolve_imports(self, program: Program) -> None:
        for statement in program.imports:
            try:
                library = get_library(statement.path, self.available)
            except LibraryNotFound:
                self._failed_imports = True
                self.resolution.imports.append(ImportInfo(path=statement.path, line=statement.line, found=False))
                close = difflib.get_close_matches(statement.path, list(self.available), n=1)
                self.errors.append(Diagnostic(
                    kind=DiagnosticKind.IMPORT_NOT_FOUND,
                    severity=Severity.ERROR,
                    line=statement.line,
                    column=statement.column,
                    message=f"Library '{statement.path}' not found",
                    suggestion=f'Did you mean import("{close[0]}");?' if close else None,
                    data={"library": statement.path},
                ))
                continue
            self.resolution.imports.append(ImportInfo(path=statement.path, line=statement.line))
            if library not in self.resolution.libraries:
                self.resolution.libraries.append(library)

    def _bind(self, scope: Scope, symbol: Symbol, node: Node) -> None:
        existing = scope.bindings.get(symbol.name)
        if existing is not None:
            first = existing.definition_site
            where = f" at line {first.line}" if first else ""
            self.errors.append(Diagnostic(
                kind=DiagnosticKind.DUPLICATE_DEFINITION,
                severity=Severity.ERROR,
                line=node.line,
                column=node.column,
                message=f"'{symbol.name}' is already defined{where}",
                suggestion=f"Rename or remove one of the definitions of '{symbol.name}'",
                related_locations=[first] if first else [],
                data={"name": symbol.name},
            ))
            return
        scope.bindings[symbol.name] = symbol

    def _bind_definition(self, scope: Scope, definition: Definition) -> None:
        symbol = Symbol(
            name=definition.name,
            kind=SymbolKind.USER_DEFINED,
            definition_site=Location(line=definition.line, column=definition.column),
            definition=definition,
        )
        self._bind(scope, symbol, definition)

    def _visit(self, node: Node, scope_id: int, stack: list[tuple[Node, int]]) -> None:
        tree = self.resolution.tree

        if isinstance(node, Definition):
            if node.invalid or node.body is None:
                return
            body_scope = scope_id
            if node.params:
                params = tree.new_scope(scope_id)
                for name in node.params:
                    self._bind(params, Symbol(
                        name=name,
                        kind=SymbolKind.PARAMETER,
                        arity=Dimension(inputs=0, outputs=1),
                        definition_site=Location(line=node.line, column=node.column),
                    ), node)
                body_scope = params.scope_id
            stack.append((node.body, body_scope))

        elif isinstance(node, WithBlock):
            local = tree.new_scope(scope_id)
            for definition in node.local_defs:
                self._bind_definition(local, definition)
            for definition in reversed(node.local_defs):
                stack.append((definition, local.scope_id))
            stack.append((node.body, local.scope_id))

        elif isinstance(node, Composition):
            stack.append((node.right, scope_id))
            stack.append((node.left, scope_id))

        elif isinstance(node, FunctionCall):
            if self._is_iteration(node, scope_id):
                variable, count, body = node.args
                inner = tree.new_scope(scope_id)
                inner.bindings[variable.name] = Symbol(
                    name=variable.name,
                    kind=SymbolKind.PARAMETER,
                    arity=Dimension(inputs=0, outputs=1),
                    definition_site=Location(line=variable.line, column=variable.column),
                )
                stack.append((body, inner.scope_id))
                stack.append((count, scope_id))
                self._reference(node, node.name, scope_id)
                return
            self._reference(node, node.name, scope_id)
            for arg in reversed(node.args):
                stack.append((arg, scope_id))

        elif isinstance(node, Identifier):
            self._reference(node, node.name, scope_id)

    def _is_iteration(self, node: FunctionCall, scope_id: int) -> bool:
        if node.name not in ITERATIONS or len(node.args) != 3:
            return False
        if not isinstance(node.args[0], Identifier):
            return False
        symbol = self.resolution.tree.lookup(scope_id, node.name)
        return symbol is not None and symbol.kind == SymbolKind.PRIMITIVE

    def _reference(self, node: Node, name: str, scope_id: int) -> None:
        symbol = self.resolution.tree.lookup(scope_id, name)
        if symbol is None:
            symbol = self._lookup_imported(name)
        if symbol is None:
            self._undefined(node, name, scope_id)
            return
        self.resolution.bindings[node.node_id] = symbol
        if symbol.definition is not None:
            self.resolution.references[symbol.definition.node_id] += 1

    def _lookup_imported(self, name: str) -> Symbol | None:
        prefix, dot, _ = name.partition(".")
        if not dot:
            return None
        for library in self.resolution.libraries:
            entry = library.lookup(name)
            if entry is not None:
                return Symbol(name=name, kind=SymbolKind.IMPORTED, arity=entry.arity,
                              library=library.name, delay=entry.delay)
            if library.provides_prefix(prefix):
                return Symbol(name=name, kind=SymbolKind.IMPORTED, library=library.name)
        if self._failed_imports:
            return Symbol(name=name, kind=SymbolKind.IMPORTED)
        return None

    def _undefined(self, node: Node, name: str, scope_id: int) -> None:
        suggestion = None
        if standard_prefix(name) is not None:
            suggestion = IMPORT_SUGGESTION
        else:
            suggestion = self._did_you_mean(name, scope_id)
        self.errors.append(Diagnostic(
            kind=DiagnosticKind.UNDEFINED_SYMBOL,
            severity=Severity.ERROR,
            line=node.line,
            column=node.column,
            message=f"Undefined symbol '{name}'",
            suggestion=suggestion,
            data={"name": name},
        ))

    def _did_you_mean(self, name: str, scope_id: int) -> str | None:
        candidates = [n for n in self.resolution.tree.visible_names(scope_id) if n.isidentifier()]
        for library in self.resolution.libraries:
            candidates.extend(library.symbols)
        close = difflib.get_close_matches(name, candidates, n=1, cutoff=0.75)
        if close:
            return f"Did you mean '{close[0]}'?"

        qualified = sorted(
            symbol
            for library in self.available.values()
            for symbol in library.symbols
            if symbol.endswith(f".{name}")
        )
        if qualified:
            if any(qualified[0] in library.symbols for library in self.resolution.libraries):
                return f"Did you mean '{qualified[0]}'?"
            return f"Did you mean '{qualified[0]}'? ({IMPORT_SUGGESTION})"
        return None


def resolve(
    program: Program,
    import_dictionary: dict[str, LibraryExport],
    deadline: Deadline | None = None,
) -> tuple[Resolution, list[Diagnostic]]:
    """Resolve every name in ``program`` against the scope tree and imports."""
    return ScopeResolver(import_dictionary, deadline).resolve(program)
