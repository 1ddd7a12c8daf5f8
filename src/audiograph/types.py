"""Layout types shared by the layout engine, the port resolver and renderers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import orjson

from audiograph.graph import Direction, GraphSnapshot, Link


@dataclass
class LayoutNode:
    """A positioned logical node."""

    id: int
    name: str
    label: str
    column: int
    order: int
    x: float
    y: float
    width: int
    height: int
    ports_in: int = 0
    ports_out: int = 0
    role: str = ""
    summary: str = ""
    key: str = ""  # position cache key, unique within one snapshot


@dataclass
class Point:
    """A 2D point in pixel coordinates."""

    x: float
    y: float


@dataclass
class PortAnchor:
    """Where a port sits on its node's edge, in absolute coordinates."""

    port_id: int
    node_id: int
    direction: Direction
    index: int  # slot among the node's ports of this direction
    label: str
    x: float
    y: float


@dataclass
class RoutedLink:
    """A link resolved to a cubic curve between two port anchors."""

    link: Link
    start: Point
    control1: Point
    control2: Point
    end: Point

    def path(self) -> str:
        """SVG path data for the curve."""
        return (
            f"M{self.start.x:g},{self.start.y:g} "
            f"C{self.control1.x:g},{self.control1.y:g} "
            f"{self.control2.x:g},{self.control2.y:g} "
            f"{self.end.x:g},{self.end.y:g}"
        )


@dataclass
class ColumnHeader:
    column: int
    label: str
    x: float  # horizontal centre
    y: float


@dataclass
class LayoutResult:
    """Self-contained layout output — everything a renderer needs."""

    snapshot: GraphSnapshot
    nodes: list[LayoutNode] = field(default_factory=list)
    ports: dict[int, PortAnchor] = field(default_factory=dict)
    links: list[RoutedLink] = field(default_factory=list)
    headers: list[ColumnHeader] = field(default_factory=list)

    def node(self, node_id: int) -> LayoutNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def to_dict(self) -> dict[str, Any]:
        """Renderer document with camelCase keys."""
        node_map = self.snapshot.node_map()
        return {
            "headers": [{"column": h.column, "label": h.label, "x": h.x, "y": h.y} for h in self.headers],
            "nodes": [
                {
                    "id": n.id,
                    "name": n.name,
                    "label": n.label,
                    "mediaClass": node_map[n.id].media_class if n.id in node_map else "",
                    "state": node_map[n.id].state.value if n.id in node_map else "unknown",
                    "role": n.role,
                    "summary": n.summary,
                    "column": n.column,
                    "order": n.order,
                    "x": n.x,
                    "y": n.y,
                    "width": n.width,
                    "height": n.height,
                    "portsIn": n.ports_in,
                    "portsOut": n.ports_out,
                }
                for n in self.nodes
            ],
            "ports": [
                {
                    "id": a.port_id,
                    "nodeId": a.node_id,
                    "direction": a.direction.value,
                    "label": a.label,
                    "x": a.x,
                    "y": a.y,
                }
                for a in self.ports.values()
            ],
            "links": [
                {
                    "outputNodeId": r.link.output_node_id,
                    "inputNodeId": r.link.input_node_id,
                    "outputPortId": r.link.output_port_id,
                    "inputPortId": r.link.input_port_id,
                    "state": r.link.state.value,
                    "x1": r.start.x,
                    "y1": r.start.y,
                    "x2": r.end.x,
                    "y2": r.end.y,
                    "path": r.path(),
                }
                for r in self.links
            ],
        }

    def to_json(self) -> bytes:
        return orjson.dumps(self.to_dict())
