"""audiograph — consolidation and layered layout for audio server routing graphs."""

from __future__ import annotations

from loguru import logger

from audiograph.classify import COLUMN_LABELS, classify_column, column, node_role, node_summary, port_label
from audiograph.config import DEFAULT_CONFIG, LayoutConfig
from audiograph.consolidate import MERGE_RULES, MergeRule, consolidate
from audiograph.graph import Direction, GraphSnapshot, Link, LinkState, Node, NodeState, Port
from audiograph.layout import PositionCache, count_crossings, layout_graph
from audiograph.ports import reroute, resolve_ports, route_links
from audiograph.snapshot import SnapshotError, decode_snapshot, encode_snapshot, snapshot_from_pw_dump
from audiograph.types import ColumnHeader, LayoutNode, LayoutResult, Point, PortAnchor, RoutedLink
from audiograph.view import FetchError, GraphView

# Silent by default; applications opt in with logger.enable("audiograph").
logger.disable("audiograph")

__all__ = [
    "COLUMN_LABELS",
    "DEFAULT_CONFIG",
    "MERGE_RULES",
    "ColumnHeader",
    "Direction",
    "FetchError",
    "GraphSnapshot",
    "GraphView",
    "LayoutConfig",
    "LayoutNode",
    "LayoutResult",
    "Link",
    "LinkState",
    "MergeRule",
    "Node",
    "NodeState",
    "Point",
    "Port",
    "PortAnchor",
    "PositionCache",
    "RoutedLink",
    "SnapshotError",
    "classify_column",
    "column",
    "consolidate",
    "count_crossings",
    "decode_snapshot",
    "encode_snapshot",
    "layout_graph",
    "node_role",
    "node_summary",
    "port_label",
    "reroute",
    "resolve_ports",
    "route_links",
    "snapshot_from_pw_dump",
]
