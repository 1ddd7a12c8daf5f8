"""Graph snapshot model — nodes, ports and links as reported by the audio server.

A ``GraphSnapshot`` is one immutable-by-convention view of the server's graph.
Every refresh produces a brand new snapshot; nothing here is mutated in place
by the consolidation or layout stages.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

import networkx as nx

# ─── Enumerations ─────────────────────────────────────────────────────────────


class NodeState(enum.Enum):
    """Runtime state of a node as reported by the server."""

    Running = "running"
    Idle = "idle"
    Suspended = "suspended"
    Error = "error"
    Unknown = "unknown"

    @classmethod
    def parse(cls, value: object) -> NodeState:
        """Map a raw state string onto a member; anything unrecognised is Unknown."""
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.Unknown


class LinkState(enum.Enum):
    Active = "active"
    Paused = "paused"
    Error = "error"
    Unknown = "unknown"

    @classmethod
    def parse(cls, value: object) -> LinkState:
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.Unknown


class Direction(enum.Enum):
    Input = "input"
    Output = "output"


# ─── Entities ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Node:
    """A processing unit in the audio graph (source, sink, effect or bus)."""

    id: int
    name: str
    description: str = ""
    media_class: str = ""
    factory: str = ""
    state: NodeState = NodeState.Unknown
    properties: dict[str, object] = field(default_factory=dict, hash=False, compare=True)

    @property
    def label(self) -> str:
        """Display label: the human description, falling back to the name."""
        return self.description or self.name


@dataclass(frozen=True)
class Port:
    """A single channel endpoint on a node."""

    id: int
    node_id: int
    direction: Direction
    name: str
    channel: str = ""


@dataclass(frozen=True)
class Link:
    """A connection from an output port to an input port."""

    output_node_id: int
    input_node_id: int
    output_port_id: int
    input_port_id: int
    state: LinkState = LinkState.Unknown

    @property
    def key(self) -> tuple[int, int]:
        return (self.output_port_id, self.input_port_id)


@dataclass
class GraphSnapshot:
    """One complete fetch of nodes, ports and links.

    Port order is significant: it is the order ports were attached to their
    node, and the port resolver stacks anchors in exactly that order.
    """

    nodes: list[Node] = field(default_factory=list)
    ports: list[Port] = field(default_factory=list)
    links: list[Link] = field(default_factory=list)

    def node_map(self) -> dict[int, Node]:
        return {n.id: n for n in self.nodes}

    def port_map(self) -> dict[int, Port]:
        return {p.id: p for p in self.ports}

    def ports_of(self, node_id: int, direction: Direction | None = None) -> list[Port]:
        """Ports owned by ``node_id`` in attachment order, optionally one direction only."""
        return [p for p in self.ports if p.node_id == node_id and (direction is None or p.direction == direction)]

    def port_counts(self) -> dict[int, tuple[int, int]]:
        """Map node id → (input port count, output port count)."""
        counts: dict[int, tuple[int, int]] = {}
        for p in self.ports:
            n_in, n_out = counts.get(p.node_id, (0, 0))
            if p.direction == Direction.Input:
                n_in += 1
            else:
                n_out += 1
            counts[p.node_id] = (n_in, n_out)
        return counts

    def digraph(self) -> nx.DiGraph:
        """Project the snapshot onto a node-level DiGraph.

        Each node carries its ``Node`` under the ``data`` attribute; each edge
        carries the list of port-level ``Link`` objects it collapses under
        ``links``. Links touching unknown nodes and self-links are skipped.
        """
        g: nx.DiGraph = nx.DiGraph()
        for node in self.nodes:
            g.add_node(node.id, data=node)
        for link in self.links:
            src, tgt = link.output_node_id, link.input_node_id
            if src == tgt or src not in g or tgt not in g:
                continue
            if g.has_edge(src, tgt):
                g.edges[src, tgt]["links"].append(link)
            else:
                g.add_edge(src, tgt, links=[link])
        return g
