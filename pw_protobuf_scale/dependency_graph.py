# Copyright 2024 The Pigweed Authors
#
# Licensed under the Apache License, Version 2.0 (the "License"); you may not
# use this file except in compliance with the License. You may obtain a copy of
# the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS, WITHOUT
# WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied. See the
# License for the specific language governing permissions and limitations under
# the License.
"""Orders schema entities so that each follows the entities it contains."""

import dataclasses
import logging
from typing import Callable, Iterable

from graphlib import CycleError, TopologicalSorter

from pw_protobuf_scale.errors import UnbreakableCycle
from pw_protobuf_scale.proto_tree import (
    Cardinality,
    DescriptorModel,
    ProtoMessage,
    ProtoMessageField,
    ProtoNode,
    ProtoOneof,
)

_LOG = logging.getLogger(__name__)

_MARKABLE = (
    Cardinality.OPTIONAL,
    Cardinality.REPEATED,
    Cardinality.MAP_ENTRY,
)


@dataclasses.dataclass(eq=False)
class DependencyEdge:
    """An entity that refers to another entity.

    Edges from a message to one of its oneofs have no field. The closes_cycle
    flag marks the edges that must be emitted as indirect references.
    """

    source: ProtoNode
    target: ProtoNode
    field: ProtoMessageField | None
    markable: bool
    closes_cycle: bool = False

    def key(self) -> tuple[str, int]:
        """Sort key used to choose deterministically among edges."""
        if self.field is not None:
            return self.source.proto_path(), self.field.number()
        assert isinstance(self.target, ProtoOneof)
        return self.source.proto_path(), self.target.number()

    def __str__(self) -> str:
        via = f' ({self.field.name()})' if self.field is not None else ''
        return f'{self.source.proto_path()} -> {self.target.proto_path()}{via}'


def edge_target(field: ProtoMessageField) -> ProtoNode | None:
    """The entity a field depends on: its type, or a map's value type."""
    entity = field.type_ref().entity()
    if isinstance(entity, ProtoMessage) and entity.is_map_entry():
        value = entity.field(2)
        return value.type_ref().entity() if value is not None else None
    return entity


class DependencyGraph:
    """The containment graph of the entities that code is emitted for."""

    def __init__(self, nodes: Iterable[ProtoNode]):
        self._nodes = sorted(nodes, key=lambda node: node.index())
        self._node_set = set(self._nodes)
        self._edges: dict[ProtoNode, list[DependencyEdge]] = {
            node: [] for node in self._nodes
        }
        self._field_edges: dict[ProtoMessageField, DependencyEdge] = {}
        self._order: list[ProtoNode] | None = None

    def nodes(self) -> list[ProtoNode]:
        return list(self._nodes)

    def __contains__(self, node: ProtoNode) -> bool:
        return node in self._node_set

    def add_edge(self, edge: DependencyEdge) -> None:
        self._edges[edge.source].append(edge)
        if edge.field is not None:
            self._field_edges[edge.field] = edge
        self._order = None

    def edges(self) -> list[DependencyEdge]:
        return [edge for node in self._nodes for edge in self._edges[node]]

    def cycle_edges(self) -> list[DependencyEdge]:
        return [edge for edge in self.edges() if edge.closes_cycle]

    def closes_cycle(self, field: ProtoMessageField) -> bool:
        """True if the field's reference was chosen to break a cycle."""
        edge = self._field_edges.get(field)
        return edge is not None and edge.closes_cycle

    def _predecessors(self) -> dict[ProtoNode, list[ProtoNode]]:
        """Maps each node to the nodes it depends on, ignoring cycle edges.

        Nodes and dependencies are inserted in name order so the cycles found
        do not depend on declaration order.
        """
        graph = {}
        for node in sorted(self._nodes, key=lambda node: node.proto_path()):
            targets = {
                edge.target
                for edge in self._edges[node]
                if not edge.closes_cycle
            }
            graph[node] = sorted(targets, key=lambda node: node.proto_path())
        return graph

    def _break_cycle(self, cycle: list[ProtoNode]) -> None:
        """Marks the smallest markable edge of a cycle found by graphlib.

        Each node in the cycle depends on the node before it.
        """
        candidates = []
        for dependency, dependent in zip(cycle, cycle[1:]):
            candidates.extend(
                edge
                for edge in self._edges[dependent]
                if edge.target is dependency and not edge.closes_cycle
            )

        markable = [edge for edge in candidates if edge.markable]
        if not markable:
            raise UnbreakableCycle(
                'dependency cycle contains no field that can be made '
                'indirect: ' + ', '.join(str(edge) for edge in candidates),
                file=_file_name(cycle[0]),
                entity=cycle[0].proto_path(),
            )

        edge = min(markable, key=DependencyEdge.key)
        edge.closes_cycle = True
        _LOG.debug('Breaking dependency cycle at %s', edge)

    def emission_order(self) -> list[ProtoNode]:
        """Returns the nodes in a deterministic topological order.

        Cycles are broken first. Each batch of nodes whose dependencies have
        been emitted is ordered by declaration.
        """
        if self._order is not None:
            return list(self._order)

        # Repeatedly prepare a topological sort of the dependency graph,
        # marking an edge each time a cycle is detected, until we're left with
        # a fully directed graph.
        tsort: TopologicalSorter
        while True:
            tsort = TopologicalSorter(self._predecessors())
            try:
                tsort.prepare()
                break
            except CycleError as err:
                self._break_cycle(err.args[1])

        order: list[ProtoNode] = []
        while tsort.is_active():
            ready = sorted(tsort.get_ready(), key=lambda node: node.index())
            order.extend(ready)
            tsort.done(*ready)

        self._order = order
        return list(order)


def _file_name(node: ProtoNode) -> str | None:
    file = node.file()
    return file.name() if file is not None else None


def build_graph(
    model: DescriptorModel,
    is_external: Callable[[ProtoNode], bool] = lambda node: False,
) -> DependencyGraph:
    """Builds the dependency graph of a resolved descriptor model.

    Args:
      model: A model whose type references have been resolved.
      is_external: Returns True for entities implemented outside the
        generated code. These are neither nodes nor edge targets.

    Returns:
      The graph with cycle-closing edges marked.
    """
    nodes = [
        entity
        for entity in model.entities()
        if not is_external(entity)
        and not (isinstance(entity, ProtoMessage) and entity.is_map_entry())
    ]
    graph = DependencyGraph(nodes)

    for node in graph.nodes():
        if isinstance(node, ProtoMessage):
            for field in node.fields_by_number():
                if field.oneof() is not None:
                    continue
                target = edge_target(field)
                if target is not None and target in graph:
                    graph.add_edge(
                        DependencyEdge(
                            node,
                            target,
                            field,
                            markable=field.cardinality() in _MARKABLE,
                        )
                    )
            for oneof in node.oneofs():
                graph.add_edge(DependencyEdge(node, oneof, None, False))

        elif isinstance(node, ProtoOneof):
            for field in node.fields():
                target = edge_target(field)
                if target is not None and target in graph:
                    graph.add_edge(
                        DependencyEdge(node, target, field, markable=True)
                    )

    graph.emission_order()
    cycles = graph.cycle_edges()
    _LOG.debug(
        'Dependency graph: %d nodes, %d edges, %d cycle-closing',
        len(graph.nodes()),
        len(graph.edges()),
        len(cycles),
    )
    return graph
