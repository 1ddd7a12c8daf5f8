"""Tests for ports.py — port anchors, link curves and incremental re-routing."""

from __future__ import annotations

from audiograph.graph import Direction, GraphSnapshot, Link, Node, Port
from audiograph.layout import layout_graph
from audiograph.ports import port_offset_y, reroute, resolve_ports, route_link, route_links
from audiograph.types import LayoutNode, PortAnchor


def make_layout_node(node_id: int, x: float, y: float, width: int = 220) -> LayoutNode:
    return LayoutNode(id=node_id, name=f"n{node_id}", label=f"n{node_id}", column=0, order=0, x=x, y=y, width=width, height=66)


def port(port_id: int, node_id: int, direction: Direction, name: str = "p") -> Port:
    return Port(id=port_id, node_id=node_id, direction=direction, name=name)


# ─── Anchors ──────────────────────────────────────────────────────────────────


class TestResolvePorts:
    def test_offsets(self):
        assert port_offset_y(0) == 44 + 9
        assert port_offset_y(2) == 44 + 36 + 9

    def test_inputs_left_outputs_right(self):
        nodes = [make_layout_node(1, 60, 70)]
        ports = [port(10, 1, Direction.Input), port(11, 1, Direction.Output)]
        anchors = resolve_ports(nodes, ports)
        assert (anchors[10].x, anchors[10].y) == (60, 123)
        assert (anchors[11].x, anchors[11].y) == (280, 123)

    def test_stacked_in_attachment_order(self):
        """Slots follow the port list order, independent of ids or names."""
        nodes = [make_layout_node(1, 0, 0)]
        ports = [
            port(30, 1, Direction.Output, "z"),
            port(5, 1, Direction.Input, "in"),
            port(10, 1, Direction.Output, "a"),
        ]
        anchors = resolve_ports(nodes, ports)
        assert anchors[30].index == 0
        assert anchors[10].index == 1
        assert anchors[5].index == 0
        assert anchors[10].y - anchors[30].y == 18

    def test_unknown_node_skipped(self):
        anchors = resolve_ports([make_layout_node(1, 0, 0)], [port(10, 2, Direction.Input)])
        assert anchors == {}

    def test_same_result_on_repeat(self):
        nodes = [make_layout_node(1, 10, 20)]
        ports = [port(1, 1, Direction.Output), port(2, 1, Direction.Output)]
        assert resolve_ports(nodes, ports) == resolve_ports(nodes, ports)


# ─── Link Routing ─────────────────────────────────────────────────────────────


class TestRouteLinks:
    def _anchor(self, port_id: int, x: float, y: float, direction: Direction) -> PortAnchor:
        return PortAnchor(port_id=port_id, node_id=port_id, direction=direction, index=0, label="", x=x, y=y)

    def test_curve_control_points(self):
        link = Link(output_node_id=1, input_node_id=2, output_port_id=1, input_port_id=2)
        start = self._anchor(1, 280, 123, Direction.Output)
        end = self._anchor(2, 1340, 200, Direction.Input)
        routed = route_link(link, start, end)
        assert (routed.control1.x, routed.control1.y) == (280 + 530, 123)
        assert (routed.control2.x, routed.control2.y) == (1340 - 530, 200)
        assert routed.path() == "M280,123 C810,123 810,200 1340,200"

    def test_missing_anchor_skipped(self):
        links = [Link(output_node_id=1, input_node_id=2, output_port_id=1, input_port_id=99)]
        anchors = {1: self._anchor(1, 0, 0, Direction.Output)}
        assert route_links(links, anchors) == []


# ─── Re-routing ───────────────────────────────────────────────────────────────


class TestReroute:
    def _result(self):
        snap = GraphSnapshot(
            nodes=[
                Node(id=1, name="mic", media_class="Audio/Source"),
                Node(id=2, name="alsa_output.a", media_class="Audio/Sink"),
                Node(id=3, name="alsa_output.b", media_class="Audio/Sink"),
            ],
            ports=[port(10, 1, Direction.Output), port(20, 2, Direction.Input), port(30, 3, Direction.Input)],
            links=[
                Link(output_node_id=1, input_node_id=2, output_port_id=10, input_port_id=20),
            ],
        )
        return layout_graph(snap)

    def test_moved_node_anchors_follow(self):
        result = self._result()
        node = result.node(1)
        before = (result.ports[10].x, result.ports[10].y)
        node.x += 15
        node.y += 7
        reroute(result, [1])
        assert (result.ports[10].x, result.ports[10].y) == (before[0] + 15, before[1] + 7)

    def test_link_endpoints_follow(self):
        result = self._result()
        result.node(1).y += 40
        reroute(result, [1])
        assert result.links[0].start.y == result.ports[10].y

    def test_other_nodes_untouched(self):
        result = self._result()
        before = (result.ports[30].x, result.ports[30].y)
        result.node(1).x += 100
        reroute(result, [1])
        assert (result.ports[30].x, result.ports[30].y) == before

    def test_matches_full_resolve(self):
        """Incremental re-route equals a from-scratch resolve of the moved layout."""
        result = self._result()
        result.node(2).x -= 33
        reroute(result, [2])
        fresh = resolve_ports(result.nodes, result.snapshot.ports)
        assert {k: (a.x, a.y) for k, a in fresh.items()} == {k: (a.x, a.y) for k, a in result.ports.items()}
