"""Port position resolution and link routing.

Inputs sit on a node's left edge, outputs on its right edge. Each side stacks
its ports top to bottom in attachment order, starting below the node's text
rows. Everything here is a pure function of node positions and ports, so a
drag only needs ``reroute`` for the moved node instead of a full layout pass.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from audiograph.classify import port_label
from audiograph.config import DEFAULT_CONFIG, LayoutConfig
from audiograph.graph import Direction, Link, Port
from audiograph.types import LayoutNode, LayoutResult, Point, PortAnchor, RoutedLink


def port_offset_y(index: int, config: LayoutConfig = DEFAULT_CONFIG) -> float:
    """Vertical offset of port slot ``index`` from the node's top edge."""
    return config.port_row_start + index * config.port_row_spacing + config.port_row_spacing / 2


def resolve_ports(
    nodes: Iterable[LayoutNode],
    ports: Sequence[Port],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> dict[int, PortAnchor]:
    """Absolute anchor for every port whose node is in ``nodes``.

    Slot indices follow the order of ``ports``, never a re-sort, so a port
    keeps its slot across refreshes as long as the provider keeps its order.
    """
    node_map: dict[int, LayoutNode] = {n.id: n for n in nodes}
    next_slot: dict[tuple[int, Direction], int] = {}
    anchors: dict[int, PortAnchor] = {}

    for port in ports:
        node = node_map.get(port.node_id)
        if node is None:
            continue
        key = (port.node_id, port.direction)
        index = next_slot.get(key, 0)
        next_slot[key] = index + 1
        x = node.x if port.direction == Direction.Input else node.x + node.width
        anchors[port.id] = PortAnchor(
            port_id=port.id,
            node_id=port.node_id,
            direction=port.direction,
            index=index,
            label=port_label(port),
            x=x,
            y=node.y + port_offset_y(index, config),
        )
    return anchors


def route_link(link: Link, start: PortAnchor, end: PortAnchor) -> RoutedLink:
    """Horizontal-tangent cubic curve from an output anchor to an input anchor."""
    dx = abs(end.x - start.x) * 0.5
    return RoutedLink(
        link=link,
        start=Point(x=start.x, y=start.y),
        control1=Point(x=start.x + dx, y=start.y),
        control2=Point(x=end.x - dx, y=end.y),
        end=Point(x=end.x, y=end.y),
    )


def route_links(links: Iterable[Link], anchors: Mapping[int, PortAnchor]) -> list[RoutedLink]:
    """Route every link whose two ports have anchors; the rest are skipped."""
    routes: list[RoutedLink] = []
    for link in links:
        start = anchors.get(link.output_port_id)
        end = anchors.get(link.input_port_id)
        if start is None or end is None:
            continue
        routes.append(route_link(link, start, end))
    return routes


def reroute(result: LayoutResult, node_ids: Iterable[int], config: LayoutConfig = DEFAULT_CONFIG) -> None:
    """Refresh anchors and curves touching ``node_ids`` in place after a move."""
    moved = set(node_ids)
    if not moved:
        return

    node_map = {n.id: n for n in result.nodes}
    for anchor in result.ports.values():
        node = node_map.get(anchor.node_id) if anchor.node_id in moved else None
        if node is None:
            continue
        anchor.x = node.x if anchor.direction == Direction.Input else node.x + node.width
        anchor.y = node.y + port_offset_y(anchor.index, config)

    for i, routed in enumerate(result.links):
        link = routed.link
        if link.output_node_id not in moved and link.input_node_id not in moved:
            continue
        start = result.ports.get(link.output_port_id)
        end = result.ports.get(link.input_port_id)
        if start is not None and end is not None:
            result.links[i] = route_link(link, start, end)
