"""Layout module — fixed-column layered layout for the consolidated audio graph.

Phases:
  1. Column assignment (stage classifier, one of five fixed columns)
  2. Seed ordering (alphabetical by display label, for determinism)
  3. Crossing minimisation (barycenter sweeps over node centre-Y)
  4. Coordinate assignment (column x, stacked y, sticky positions)
  5. Port anchors + link curves (see ``audiograph.ports``)

Unlike a general Sugiyama pipeline there is no cycle removal or layer
assignment: the pipeline stage decides the column, and links between
non-adjacent columns are drawn as direct curves without dummy nodes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

import networkx as nx
from loguru import logger

from audiograph.classify import COLUMN_COUNT, COLUMN_LABELS, column, node_role, node_summary
from audiograph.config import DEFAULT_CONFIG, LayoutConfig
from audiograph.graph import GraphSnapshot, Node
from audiograph.ports import resolve_ports, route_links
from audiograph.types import ColumnHeader, LayoutNode, LayoutResult

# ─── Sticky Positions ─────────────────────────────────────────────────────────


class PositionCache:
    """Node positions that survive refreshes, keyed by ``position_keys``.

    Node ids are reassigned when the audio server restarts, names are not, so
    the key is built from the name and joins one snapshot to the next. A
    cached node keeps its position on every layout pass until the cache is
    cleared.
    """

    def __init__(self, positions: Mapping[str, tuple[float, float]] | None = None) -> None:
        self._positions: dict[str, tuple[float, float]] = dict(positions or {})

    def __contains__(self, key: object) -> bool:
        return key in self._positions

    def __len__(self) -> int:
        return len(self._positions)

    def get(self, key: str) -> tuple[float, float] | None:
        return self._positions.get(key)

    def set(self, key: str, x: float, y: float) -> None:
        self._positions[key] = (x, y)

    def shift(self, key: str, dx: float, dy: float) -> tuple[float, float] | None:
        """Move a cached position by (dx, dy); returns the new position or None if absent."""
        pos = self._positions.get(key)
        if pos is None:
            return None
        moved = (pos[0] + dx, pos[1] + dy)
        self._positions[key] = moved
        return moved

    def retain(self, keys: Iterable[str]) -> None:
        """Forget every key not in ``keys``."""
        keep = set(keys)
        for key in [n for n in self._positions if n not in keep]:
            del self._positions[key]

    def clear(self) -> None:
        self._positions.clear()


# ─── Adjacency & Seeding ──────────────────────────────────────────────────────


def build_adjacency(snapshot: GraphSnapshot) -> nx.Graph:
    """Collapse port-level links to an undirected node-level graph.

    Every node is present even without links; self-edges and links to nodes
    outside the snapshot are discarded (see ``GraphSnapshot.digraph``).
    """
    return snapshot.digraph().to_undirected()


def _seed_key(node: Node) -> tuple[str, str, str, int]:
    return (node.label.casefold(), node.label, node.name, node.id)


def position_keys(nodes: Sequence[Node]) -> dict[int, str]:
    """Position cache key for every node id, unique within ``nodes``.

    The key is the node name. A repeated name gets ``#<n>`` appended for its
    n-th repeat in seed order, and a node without a name is keyed by ``#<id>``.
    """
    keys: dict[int, str] = {}
    used: set[str] = set()
    for node in sorted(nodes, key=_seed_key):
        if not node.name:
            key = f"#{node.id}"
        else:
            key, n = node.name, 0
            while key in used:
                n += 1
                key = f"{node.name}#{n}"
        used.add(key)
        keys[node.id] = key
    return keys


def seed_columns(nodes: Sequence[Node]) -> list[list[int]]:
    """Group node ids by column, each column sorted case-insensitively by display label.

    Ties fall back to the exact label, name, then id so the seed is a total order.
    """
    columns: list[list[int]] = [[] for _ in range(COLUMN_COUNT)]
    for node in sorted(nodes, key=_seed_key):
        columns[column(node)].append(node.id)
    return columns


def node_heights(snapshot: GraphSnapshot, config: LayoutConfig = DEFAULT_CONFIG) -> dict[int, int]:
    """Height of every node, driven by its larger port count."""
    counts = snapshot.port_counts()
    return {n.id: config.node_height(*counts.get(n.id, (0, 0))) for n in snapshot.nodes}


# ─── Crossing Minimisation (Barycenter) ───────────────────────────────────────


def stack_centres(col: Sequence[int], heights: Mapping[int, int], row_gap: int) -> dict[int, float]:
    """Centre-Y of each node when the column is stacked top-down from 0."""
    centres: dict[int, float] = {}
    y = 0
    for node_id in col:
        h = heights[node_id]
        centres[node_id] = y + h / 2
        y += h + row_gap
    return centres


def _barycenter_sort(
    target: list[int],
    reference: Sequence[int],
    adjacency: nx.Graph,
    heights: Mapping[int, int],
    row_gap: int,
) -> list[int]:
    """Reorder ``target`` by the mean centre-Y of its neighbours in ``reference``.

    A node without neighbours in ``reference`` is weighted by its own
    centre-Y in the current order, which keeps it in place on the same scale
    as the real barycenters. Equal weights keep their current relative order.
    """
    ref_centres = stack_centres(reference, heights, row_gap)
    own_centres = stack_centres(target, heights, row_gap)

    weights: dict[int, float] = {}
    for node_id in target:
        ys = [ref_centres[nb] for nb in adjacency.neighbors(node_id) if nb in ref_centres]
        weights[node_id] = sum(ys) / len(ys) if ys else own_centres[node_id]

    current = {nid: i for i, nid in enumerate(target)}
    return sorted(target, key=lambda nid: (weights[nid], current[nid]))


def minimise_crossings(
    columns: Sequence[Sequence[int]],
    adjacency: nx.Graph,
    heights: Mapping[int, int],
    config: LayoutConfig = DEFAULT_CONFIG,
) -> list[list[int]]:
    """Run ``config.sweep_passes`` forward + backward barycenter sweeps.

    Forward: columns 1..last against their left neighbour column.
    Backward: columns last-1..0 against their right neighbour column.
    Columns holding fewer than two nodes have nothing to reorder.

    Returns new per-column orderings; ``columns`` is not modified.
    """
    ordering: list[list[int]] = [list(col) for col in columns]
    last = len(ordering) - 1

    for _pass in range(config.sweep_passes):
        for c in range(1, last + 1):
            if len(ordering[c]) > 1:
                ordering[c] = _barycenter_sort(ordering[c], ordering[c - 1], adjacency, heights, config.row_gap)
        for c in range(last - 1, -1, -1):
            if len(ordering[c]) > 1:
                ordering[c] = _barycenter_sort(ordering[c], ordering[c + 1], adjacency, heights, config.row_gap)

    return ordering


def count_crossings(columns: Sequence[Sequence[int]], adjacency: nx.Graph) -> int:
    """Count edge crossings between consecutive columns (inversion count heuristic).

    Only edges joining adjacent columns are considered; longer edges are drawn
    as free curves and have no well-defined crossing count.
    """
    total = 0
    for c in range(len(columns) - 1):
        right_pos: dict[int, int] = {nid: i for i, nid in enumerate(columns[c + 1])}
        edges: list[tuple[int, int]] = []
        for lp, node_id in enumerate(columns[c]):
            if node_id not in adjacency:
                continue
            for nb in adjacency.neighbors(node_id):
                if nb in right_pos:
                    edges.append((lp, right_pos[nb]))
        for i in range(len(edges)):
            for j in range(i + 1, len(edges)):
                ei, ej = edges[i], edges[j]
                if (ei[0] < ej[0] and ei[1] > ej[1]) or (ei[0] > ej[0] and ei[1] < ej[1]):
                    total += 1
    return total


# ─── Coordinate Assignment ────────────────────────────────────────────────────


def column_headers(config: LayoutConfig = DEFAULT_CONFIG) -> list[ColumnHeader]:
    """Header label and centre position for each column."""
    return [
        ColumnHeader(
            column=i,
            label=label,
            x=config.column_x(i) + config.node_width / 2,
            y=config.top_margin + 10,
        )
        for i, label in enumerate(COLUMN_LABELS)
    ]


def assign_coordinates(
    ordering: Sequence[Sequence[int]],
    snapshot: GraphSnapshot,
    config: LayoutConfig = DEFAULT_CONFIG,
    positions: PositionCache | None = None,
) -> list[LayoutNode]:
    """Place every node: column x, y stacked below the column header.

    A node with a cached position keeps it; others get the computed position,
    which is then recorded in ``positions``. Width, height and port counts are
    always taken from the current snapshot. The stacking cursor advances past
    cached nodes too, so other nodes land where a full layout would put them.
    """
    node_map = snapshot.node_map()
    counts = snapshot.port_counts()
    keys = position_keys(snapshot.nodes)

    nodes: list[LayoutNode] = []
    for col_idx, col in enumerate(ordering):
        x = config.column_x(col_idx)
        y = config.top_margin + config.header_height
        for order, node_id in enumerate(col):
            node = node_map[node_id]
            ports_in, ports_out = counts.get(node_id, (0, 0))
            height = config.node_height(ports_in, ports_out)

            cached = positions.get(keys[node_id]) if positions is not None else None
            if cached is not None:
                px, py = cached
            else:
                px, py = x, y
                if positions is not None:
                    positions.set(keys[node_id], px, py)

            nodes.append(
                LayoutNode(
                    id=node_id,
                    name=node.name,
                    label=node.label,
                    column=col_idx,
                    order=order,
                    x=px,
                    y=py,
                    width=config.node_width,
                    height=height,
                    ports_in=ports_in,
                    ports_out=ports_out,
                    role=node_role(node),
                    summary=node_summary(node),
                    key=keys[node_id],
                )
            )
            y += height + config.row_gap
    return nodes


# ─── Full Layout Pipeline ─────────────────────────────────────────────────────


def layout_graph(
    snapshot: GraphSnapshot,
    config: LayoutConfig | None = None,
    positions: PositionCache | None = None,
) -> LayoutResult:
    """Lay out a consolidated snapshot and resolve its ports and links.

    ``positions`` carries sticky positions across calls; pass None for a
    stateless layout. Entries for nodes missing from ``snapshot`` are pruned.
    """
    config = config or DEFAULT_CONFIG

    if positions is not None:
        positions.retain(position_keys(snapshot.nodes).values())

    adjacency = build_adjacency(snapshot)
    heights = node_heights(snapshot, config)
    ordering = minimise_crossings(seed_columns(snapshot.nodes), adjacency, heights, config)
    layout_nodes = assign_coordinates(ordering, snapshot, config, positions)

    anchors = resolve_ports(layout_nodes, snapshot.ports, config)
    routes = route_links(snapshot.links, anchors)

    logger.opt(lazy=True).debug(
        "laid out {} nodes, {} links, {} crossings",
        lambda: len(layout_nodes),
        lambda: len(routes),
        lambda: count_crossings(ordering, adjacency),
    )

    return LayoutResult(
        snapshot=snapshot,
        nodes=layout_nodes,
        ports=anchors,
        links=routes,
        headers=column_headers(config),
    )
