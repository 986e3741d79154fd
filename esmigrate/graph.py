"""NetworkX-backed symbol table and dependency graph shared across a run."""

from __future__ import annotations

from typing import Any

import networkx as nx

from .errors import FrozenTableError


NODE_SYMBOL = "Symbol"
NODE_UNIT = "Unit"

EDGE_EXTENDS = "EXTENDS"
EDGE_MERGES = "MERGES"
EDGE_DEPENDS_ON = "DEPENDS_ON"


def unit_node_id(path: str) -> str:
    return f"unit:{path}"


def symbol_node_id(name: str) -> str:
    return f"symbol:{name}"


class _FreezableGraph:
    def __init__(self) -> None:
        self.graph = nx.DiGraph()
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self) -> None:
        if self._frozen:
            raise FrozenTableError(f"{type(self).__name__} is frozen")


class SymbolTable(_FreezableGraph):
    """Inheritance index: symbol -> parent, merged capabilities, class flag.

    Nodes are symbol names. An ``EXTENDS`` edge points from a child to its
    single template-link parent; ``MERGES`` edges carry an ``order``
    attribute so capability merges keep their registration order.
    """

    def ensure(self, name: str) -> None:
        if name not in self.graph:
            self._check_mutable()
            self.graph.add_node(name, type=NODE_SYMBOL, is_class=False, merge_count=0)

    def mark_class(self, name: str) -> None:
        self.ensure(name)
        if not self.graph.nodes[name]["is_class"]:
            self._check_mutable()
            self.graph.nodes[name]["is_class"] = True

    def link(self, child: str, parent: str) -> str | None:
        """Record ``child extends parent``; first registration wins.

        Returns the previously recorded parent when it differs from
        ``parent`` (the new link is ignored), otherwise ``None``.
        """
        self.mark_class(child)
        self.mark_class(parent)
        existing = self.parent_of(child)
        if existing is not None:
            return existing if existing != parent else None
        self._check_mutable()
        self.graph.add_edge(child, parent, type=EDGE_EXTENDS)
        return None

    def merge(self, child: str, source: str) -> bool:
        """Record that ``source``'s template is merged into ``child``'s."""
        self.mark_class(child)
        self.mark_class(source)
        if source in self.merges_of(child):
            return False
        self._check_mutable()
        order = self.graph.nodes[child]["merge_count"]
        self.graph.nodes[child]["merge_count"] = order + 1
        self.graph.add_edge(child, source, type=EDGE_MERGES, order=order)
        return True

    def is_class(self, name: str) -> bool:
        return name in self.graph and bool(self.graph.nodes[name]["is_class"])

    def parent_of(self, name: str) -> str | None:
        if name not in self.graph:
            return None
        for _, target, data in self.graph.out_edges(name, data=True):
            if data["type"] == EDGE_EXTENDS:
                return target
        return None

    def merges_of(self, name: str) -> list[str]:
        if name not in self.graph:
            return []
        merged = [
            (data["order"], target)
            for _, target, data in self.graph.out_edges(name, data=True)
            if data["type"] == EDGE_MERGES
        ]
        return [target for _, target in sorted(merged)]

    def extra_merges(self, name: str) -> list[str]:
        """Merged templates applied in a static block; the link parent is skipped."""
        parent = self.parent_of(name)
        return [source for source in self.merges_of(name) if source != parent]

    def cycles(self) -> list[list[str]]:
        extends = nx.DiGraph(
            [
                (child, parent)
                for child, parent, data in self.graph.edges(data=True)
                if data["type"] == EDGE_EXTENDS
            ]
        )
        return [sorted(cycle) for cycle in nx.simple_cycles(extends)]

    def __contains__(self, name: object) -> bool:
        return name in self.graph

    def __len__(self) -> int:
        return self.graph.number_of_nodes()

    def names(self) -> list[str]:
        return list(self.graph.nodes)

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {
            name: {
                "parent": self.parent_of(name),
                "merges": self.merges_of(name),
                "is_class": self.is_class(name),
            }
            for name in self.graph.nodes
        }


class DependencyGraph(_FreezableGraph):
    """Unit -> referenced symbol edges with set semantics."""

    def add_unit(self, path: str) -> None:
        node_id = unit_node_id(path)
        if node_id not in self.graph:
            self._check_mutable()
            self.graph.add_node(node_id, type=NODE_UNIT, name=path)

    def track(self, path: str, symbol: str) -> bool:
        self.add_unit(path)
        unit_id = unit_node_id(path)
        target_id = symbol_node_id(symbol)
        if self.graph.has_edge(unit_id, target_id):
            return False
        self._check_mutable()
        if target_id not in self.graph:
            self.graph.add_node(target_id, type=NODE_SYMBOL, name=symbol)
        self.graph.add_edge(unit_id, target_id, type=EDGE_DEPENDS_ON)
        return True

    def dependencies_of(self, path: str) -> list[str]:
        unit_id = unit_node_id(path)
        if unit_id not in self.graph:
            return []
        return [self.graph.nodes[target]["name"] for target in self.graph.successors(unit_id)]

    def dependents_of(self, symbol: str) -> list[str]:
        target_id = symbol_node_id(symbol)
        if target_id not in self.graph:
            return []
        return [self.graph.nodes[source]["name"] for source in self.graph.predecessors(target_id)]

    def units(self) -> list[str]:
        return [
            data["name"]
            for _, data in self.graph.nodes(data=True)
            if data["type"] == NODE_UNIT
        ]

    def number_of_edges(self) -> int:
        return self.graph.number_of_edges()

    def to_dict(self) -> dict[str, list[str]]:
        return {path: self.dependencies_of(path) for path in self.units()}


def combine(symbols: SymbolTable, dependencies: DependencyGraph) -> nx.DiGraph:
    """Single graph with unit dependencies and symbol inheritance for export."""
    graph = dependencies.graph.copy()
    for name, data in symbols.graph.nodes(data=True):
        node_id = symbol_node_id(name)
        if node_id not in graph:
            graph.add_node(node_id, type=NODE_SYMBOL, name=name)
        graph.nodes[node_id]["is_class"] = data["is_class"]
    for child, parent, data in symbols.graph.edges(data=True):
        graph.add_edge(symbol_node_id(child), symbol_node_id(parent), **data)
    return graph
