"""Node consolidation — collapse implementation-level node pairs into logical nodes.

PipeWire modules build one conceptual element out of several nodes:

* a filter-chain is a sink (``fpp_fx_g1_s3``) plus a stream output
  (``fpp_fx_g1_s3_out``);
* a combine-stream sink (``fpp_group_main``) gets one stream output per
  member (``output.fpp_group_main_<member>``);
* an input group's loopback module exposes ``input.fpp_loopback_ig*`` and
  ``output.fpp_loopback_ig*`` halves with no bare parent;
* an input group mix bus (``fpp_input_*``) is itself a combine-stream with
  ``output.fpp_input_*`` member streams.

The merge rules below are evaluated in order against each node. The first
rule whose parent lookup succeeds absorbs the node: its ports are re-owned by
the parent and a running child promotes the parent to running. A node whose
parent cannot be found is left as an independent node.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger

from audiograph.graph import Direction, GraphSnapshot, Link, Node, NodeState, Port

FILTER_PREFIX = "fpp_fx_"
FILTER_OUTPUT_SUFFIX = "_out"
COMBINE_SINK_PREFIX = "fpp_group_"
MIX_BUS_PREFIX = "fpp_input_"
STREAM_OUTPUT_NAMESPACE = "output."
LOOPBACK_PREFIXES = ("input.fpp_loopback_ig", "output.fpp_loopback_ig")
MONITOR_PORT_PREFIX = "monitor_"

INPUT_GROUP_FLAG = "fpp.inputGroup"
INPUT_GROUP_ID = "fpp.inputGroup.id"

# Nodes that are combine-streams; their merged member outputs repeat channels.
COMBINE_STREAM_PREFIXES = (COMBINE_SINK_PREFIX, MIX_BUS_PREFIX)


def _truthy(value: object) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", "0", "false", "no")
    return bool(value)


# ─── Merge rules ──────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class MergeRule:
    """One consolidation pattern.

    ``matches`` is a pure predicate on the candidate child. ``find_parent``
    receives the child and the nodes still alive (in snapshot order) and
    returns the node to merge into, or None.
    """

    name: str
    matches: Callable[[Node], bool]
    find_parent: Callable[[Node, Sequence[Node]], Node | None]


def _filter_chain_parent(child: Node, alive: Sequence[Node]) -> Node | None:
    parent_name = child.name[: -len(FILTER_OUTPUT_SUFFIX)]
    for candidate in alive:
        if candidate.name == parent_name and candidate.id != child.id:
            return candidate
    return None


def _longest_prefix_parent(prefix: str) -> Callable[[Node, Sequence[Node]], Node | None]:
    """Parent lookup for ``output.<parent>_<member>`` streams.

    Several parents may prefix the child's name (``fpp_group_a`` and
    ``fpp_group_ab``); the longest one is the real owner.
    """

    def find(child: Node, alive: Sequence[Node]) -> Node | None:
        best: Node | None = None
        for candidate in alive:
            nm = candidate.name
            if candidate.id == child.id or not nm.startswith(prefix):
                continue
            if not child.name.startswith(STREAM_OUTPUT_NAMESPACE + nm):
                continue
            if best is None or len(nm) > len(best.name):
                best = candidate
        return best

    return find


def _is_loopback(node: Node) -> bool:
    return node.name.startswith(LOOPBACK_PREFIXES)


def _loopback_parent(child: Node, alive: Sequence[Node]) -> Node | None:
    group_id = child.properties.get(INPUT_GROUP_ID)
    if group_id is None or group_id == "":
        return None
    for candidate in alive:
        if candidate.id == child.id or _is_loopback(candidate):
            continue
        if _truthy(candidate.properties.get(INPUT_GROUP_FLAG)) and str(
            candidate.properties.get(INPUT_GROUP_ID)
        ) == str(group_id):
            return candidate
    return None


MERGE_RULES: tuple[MergeRule, ...] = (
    MergeRule(
        name="filter-chain",
        matches=lambda n: n.name.startswith(FILTER_PREFIX) and n.name.endswith(FILTER_OUTPUT_SUFFIX),
        find_parent=_filter_chain_parent,
    ),
    MergeRule(
        name="combine-sink-output",
        matches=lambda n: n.name.startswith(STREAM_OUTPUT_NAMESPACE + COMBINE_SINK_PREFIX),
        find_parent=_longest_prefix_parent(COMBINE_SINK_PREFIX),
    ),
    MergeRule(
        name="loopback",
        matches=_is_loopback,
        find_parent=_loopback_parent,
    ),
    MergeRule(
        name="mix-bus-output",
        matches=lambda n: n.name.startswith(STREAM_OUTPUT_NAMESPACE + MIX_BUS_PREFIX),
        find_parent=_longest_prefix_parent(MIX_BUS_PREFIX),
    ),
)


# ─── Consolidation ────────────────────────────────────────────────────────────


def _resolve(node_id: int, remap: dict[int, int]) -> int:
    """Follow absorption chains to the surviving node id."""
    seen: set[int] = set()
    while node_id in remap and node_id not in seen:
        seen.add(node_id)
        node_id = remap[node_id]
    return node_id


def merge_nodes(
    nodes: Sequence[Node], rules: Sequence[MergeRule] = MERGE_RULES
) -> tuple[list[Node], dict[int, int]]:
    """Apply the merge rules and return (surviving nodes, absorbed id → parent id).

    Rules run in order; within a rule nodes are visited in snapshot order.
    A node absorbed by one rule is invisible to every later lookup.
    """
    by_id: dict[int, Node] = {n.id: n for n in nodes}
    order: list[int] = [n.id for n in nodes]
    remap: dict[int, int] = {}

    for rule in rules:
        for node_id in order:
            if node_id in remap:
                continue
            child = by_id[node_id]
            if not rule.matches(child):
                continue
            alive = [by_id[i] for i in order if i not in remap]
            parent = rule.find_parent(child, alive)
            if parent is None:
                continue
            remap[child.id] = parent.id
            if child.state == NodeState.Running and parent.state != NodeState.Running:
                by_id[parent.id] = dataclasses.replace(parent, state=NodeState.Running)
            logger.debug("{} rule merged node {} into {}", rule.name, child.name, parent.name)

    survivors = [by_id[i] for i in order if i not in remap]
    return survivors, remap


def _dedupe_links(links: Sequence[Link]) -> list[Link]:
    seen: set[tuple[int, int]] = set()
    out: list[Link] = []
    for link in links:
        if link.output_node_id == link.input_node_id or link.key in seen:
            continue
        seen.add(link.key)
        out.append(link)
    return out


def _is_combine_stream(node: Node) -> bool:
    return node.name.startswith(COMBINE_STREAM_PREFIXES)


def collapse_duplicate_outputs(nodes: Sequence[Node], ports: Sequence[Port]) -> tuple[list[Port], dict[int, int]]:
    """Keep one output port per channel on combine-stream nodes.

    The first port for a channel (or, lacking a channel, for a port name) is
    canonical. Returns the remaining ports and duplicate port id → canonical id.
    """
    targets = {n.id for n in nodes if _is_combine_stream(n)}
    canonical: dict[tuple[int, str], int] = {}
    remap: dict[int, int] = {}
    for p in ports:
        if p.node_id not in targets or p.direction != Direction.Output:
            continue
        key = (p.node_id, p.channel or p.name)
        if key in canonical:
            remap[p.id] = canonical[key]
        else:
            canonical[key] = p.id
    return [p for p in ports if p.id not in remap], remap


def consolidate(snapshot: GraphSnapshot, rules: Sequence[MergeRule] = MERGE_RULES) -> GraphSnapshot:
    """Return the logical graph for ``snapshot``; the input is left untouched.

    Running this on an already consolidated graph is a no-op.
    """
    nodes, node_remap = merge_nodes(snapshot.nodes, rules)
    live = {n.id for n in nodes}

    ports = [
        dataclasses.replace(p, node_id=_resolve(p.node_id, node_remap)) if p.node_id in node_remap else p
        for p in snapshot.ports
    ]

    links = [
        dataclasses.replace(
            lk,
            output_node_id=_resolve(lk.output_node_id, node_remap),
            input_node_id=_resolve(lk.input_node_id, node_remap),
        )
        for lk in snapshot.links
    ]
    links = _dedupe_links(links)

    ports = [p for p in ports if p.node_id in live]
    ports = [p for p in ports if not p.name.startswith(MONITOR_PORT_PREFIX)]

    ports, port_remap = collapse_duplicate_outputs(nodes, ports)
    if port_remap:
        links = [
            dataclasses.replace(
                lk,
                output_port_id=port_remap.get(lk.output_port_id, lk.output_port_id),
                input_port_id=port_remap.get(lk.input_port_id, lk.input_port_id),
            )
            for lk in links
        ]

    # Endpoint node ids are taken from the surviving port owners.
    owner = {p.id: p.node_id for p in ports}
    kept: list[Link] = []
    for lk in links:
        if lk.output_port_id not in owner or lk.input_port_id not in owner:
            logger.debug("dropping link {} -> {}: port no longer present", lk.output_port_id, lk.input_port_id)
            continue
        out_node, in_node = owner[lk.output_port_id], owner[lk.input_port_id]
        if (out_node, in_node) != (lk.output_node_id, lk.input_node_id):
            lk = dataclasses.replace(lk, output_node_id=out_node, input_node_id=in_node)
        kept.append(lk)

    return GraphSnapshot(nodes=nodes, ports=ports, links=_dedupe_links(kept))
