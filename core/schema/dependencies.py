# ============================================================================
# DEPENDENCY RESOLVER
# ============================================================================
# STATUS: Core - Foreign-key ordering of tables
# PURPOSE: Create referenced tables before the tables that reference them
# CREATED: 19 OCT 2026
# ============================================================================
"""
Dependency Resolver

Orders tables so every table is created after the tables its foreign keys
reference.

Rules:
- Kahn's algorithm; among ready tables the earliest declared goes first
- Self references never block a table
- References to undeclared tables are ignored for ordering
- Cycles across distinct tables are detected (strongly connected
  components). When nothing is ready, the earliest declared table of a
  cycle with no outside blockers is emitted, and every foreign key it
  holds to a table not yet created is deferred to an
  ``ALTER TABLE ... ADD CONSTRAINT`` after all tables exist.

The resolver always terminates and never raises for cycles.
"""

import heapq
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Set, Tuple

from core.logging import ComponentType, get_logger
from core.models import ColumnDef, SchemaModel, TableDef

logger = get_logger("schema.dependencies", ComponentType.RESOLVER)


# ============================================================================
# DATA STRUCTURES
# ============================================================================

@dataclass
class DependencyGraph:
    """
    Dependency graph between declared tables.

    A -> B means "B references A" (A must be created before B).
    """
    # Table -> tables that reference it
    forward_edges: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    # Table -> tables it references
    backward_edges: Dict[str, List[str]] = field(default_factory=lambda: defaultdict(list))

    # Table names in declaration order
    nodes: List[str] = field(default_factory=list)

    def add_node(self, name: str) -> None:
        if name not in self.nodes:
            self.nodes.append(name)

    def add_edge(self, from_node: str, to_node: str) -> None:
        """Add a dependency edge: to_node references from_node."""
        if from_node in self.backward_edges.get(to_node, []):
            return
        self.forward_edges[from_node].append(to_node)
        self.backward_edges[to_node].append(from_node)
        self.add_node(from_node)
        self.add_node(to_node)

    def get_dependencies(self, node_id: str) -> List[str]:
        """Tables this table references."""
        return self.backward_edges.get(node_id, [])

    def get_dependents(self, node_id: str) -> List[str]:
        """Tables that reference this table."""
        return self.forward_edges.get(node_id, [])


@dataclass
class DeferredForeignKey:
    """A foreign key emitted after creation because its target comes later."""
    table: str
    column: ColumnDef

    @property
    def target_table(self) -> str:
        return self.column.foreign.table


@dataclass
class ResolutionResult:
    """Outcome of ordering one schema model."""
    order: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)
    deferred: List[DeferredForeignKey] = field(default_factory=list)
    missing_references: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)

    def is_deferred(self, table: str, column: str) -> bool:
        return any(d.table == table and d.column.name == column for d in self.deferred)

    def deferred_for(self, table: str) -> List[DeferredForeignKey]:
        return [d for d in self.deferred if d.table == table]


# ============================================================================
# GRAPH CONSTRUCTION
# ============================================================================

def build_graph(tables: List[TableDef]) -> Tuple[DependencyGraph, List[Tuple[str, str]]]:
    """
    Build the graph over declared tables.

    Returns:
        Tuple of (graph, [(table, undeclared_target), ...])
    """
    graph = DependencyGraph()
    declared = {t.name for t in tables}
    missing: List[Tuple[str, str]] = []

    for table in tables:
        graph.add_node(table.name)

    for table in tables:
        for target in table.referenced_tables():
            if target == table.name:
                # Satisfied by the table itself
                continue
            if target in declared:
                graph.add_edge(target, table.name)
            else:
                missing.append((table.name, target))

    return graph, missing


def find_cycles(graph: DependencyGraph) -> List[List[str]]:
    """
    Strongly connected components with more than one table (Tarjan).

    Components and their members are listed in declaration order.
    """
    position = {name: i for i, name in enumerate(graph.nodes)}
    index_of: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack: Set[str] = set()
    stack: List[str] = []
    components: List[List[str]] = []
    counter = [0]

    def strongconnect(node: str) -> None:
        # Iterative to stay clear of the recursion limit on large schemas
        work = [(node, iter(graph.get_dependencies(node)))]
        index_of[node] = lowlink[node] = counter[0]
        counter[0] += 1
        stack.append(node)
        on_stack.add(node)

        while work:
            current, children = work[-1]
            advanced = False
            for child in children:
                if child not in index_of:
                    index_of[child] = lowlink[child] = counter[0]
                    counter[0] += 1
                    stack.append(child)
                    on_stack.add(child)
                    work.append((child, iter(graph.get_dependencies(child))))
                    advanced = True
                    break
                if child in on_stack:
                    lowlink[current] = min(lowlink[current], index_of[child])
            if advanced:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[current])

            if lowlink[current] == index_of[current]:
                component = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == current:
                        break
                if len(component) > 1:
                    components.append(sorted(component, key=position.get))

    for name in graph.nodes:
        if name not in index_of:
            strongconnect(name)

    components.sort(key=lambda c: position[c[0]])
    return components


# ============================================================================
# RESOLUTION
# ============================================================================

class DependencyResolver:
    """
    Produces a creation order for the tables of a schema model.

    Usage:
        result = DependencyResolver().resolve(model)
        for name in result.order:
            ...
    """

    def resolve(self, model: SchemaModel) -> ResolutionResult:
        tables = model.tables
        graph, missing = build_graph(tables)
        position = {name: i for i, name in enumerate(graph.nodes)}
        result = ResolutionResult(missing_references=missing)

        for table, target in missing:
            logger.warning(f"Table {table} references undeclared table {target}; ignored for ordering")

        result.cycles = find_cycles(graph)
        cycle_of: Dict[str, int] = {}
        for i, component in enumerate(result.cycles):
            logger.warning(f"Dependency cycle between tables: {' -> '.join(component)}")
            for name in component:
                cycle_of[name] = i

        in_degree = {name: len(graph.get_dependencies(name)) for name in graph.nodes}
        ready = [position[name] for name, degree in in_degree.items() if degree == 0]
        heapq.heapify(ready)
        emitted: Set[str] = set()

        while len(result.order) < len(graph.nodes):
            if not ready:
                forced = self._break_cycle(graph, in_degree, emitted, cycle_of, position)
                heapq.heappush(ready, position[forced])

            name = graph.nodes[heapq.heappop(ready)]
            if name in emitted:
                continue
            emitted.add(name)
            result.order.append(name)

            for dependent in graph.get_dependents(name):
                in_degree[dependent] -= 1
                if in_degree[dependent] == 0 and dependent not in emitted:
                    heapq.heappush(ready, position[dependent])

        self._collect_deferred(model, result)
        return result

    def _break_cycle(
        self,
        graph: DependencyGraph,
        in_degree: Dict[str, int],
        emitted: Set[str],
        cycle_of: Dict[str, int],
        position: Dict[str, int],
    ) -> str:
        """
        Pick the table to emit when no table is ready.

        Prefers the earliest declared cycle member whose unmet dependencies
        all lie inside its own cycle.
        """
        remaining = [n for n in graph.nodes if n not in emitted]
        for name in remaining:
            component = cycle_of.get(name)
            if component is None:
                continue
            unmet = [d for d in graph.get_dependencies(name) if d not in emitted]
            if all(cycle_of.get(d) == component for d in unmet):
                logger.info(f"Breaking dependency cycle at table {name}")
                return name
        return min(remaining, key=position.get)

    def _collect_deferred(self, model: SchemaModel, result: ResolutionResult) -> None:
        created: Set[str] = set()
        for name in result.order:
            table = model.get_table(name)
            for column in table.foreign_key_columns():
                target = column.foreign.table
                if target == name or target not in result.order:
                    continue
                if target not in created:
                    result.deferred.append(DeferredForeignKey(table=name, column=column))
            created.add(name)


def resolve_dependencies(model: SchemaModel) -> ResolutionResult:
    return DependencyResolver().resolve(model)


def ordered_tables(model: SchemaModel, result: ResolutionResult = None) -> List[TableDef]:
    """Tables of ``model`` in creation order."""
    result = result or resolve_dependencies(model)
    return [model.get_table(name) for name in result.order]


__all__ = [
    "DependencyGraph",
    "DeferredForeignKey",
    "ResolutionResult",
    "DependencyResolver",
    "build_graph",
    "find_cycles",
    "resolve_dependencies",
    "ordered_tables",
]
