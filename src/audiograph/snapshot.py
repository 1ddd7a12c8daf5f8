"""Snapshot decoding — turn a provider document into a ``GraphSnapshot``.

Two input shapes are understood:

* the graph document served to the UI: ``{"nodes": [...], "ports": [...],
  "links": [...]}`` with camelCase keys (``mediaClass``, ``nodeId``,
  ``outputPortId`` ...), as a dict or as raw JSON bytes/str;
* the raw object list printed by ``pw-dump`` (``PipeWire:Interface:Node``,
  ``...:Port`` and ``...:Link`` entries).

Individual entries that cannot be decoded are skipped with a debug log; the
audio server does not guarantee a consistent snapshot across the fetch
boundary and consolidation tolerates the resulting gaps. Only a document that
is structurally wrong as a whole raises ``SnapshotError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import orjson
from loguru import logger

from audiograph.channels import channel_from_port_props
from audiograph.graph import Direction, GraphSnapshot, Link, LinkState, Node, NodeState, Port

_SCALARS = (str, int, float, bool)


class SnapshotError(ValueError):
    """The provider returned a document that is not a graph snapshot."""


# ─── Graph document ───────────────────────────────────────────────────────────


def _as_int(value: object, what: str) -> int:
    if isinstance(value, bool):
        raise SnapshotError(f"{what} must be an integer, got {value!r}")
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"{what} must be an integer, got {value!r}") from e


def _scalar_properties(raw: object) -> dict[str, object]:
    if not isinstance(raw, Mapping):
        return {}
    return {str(k): v for k, v in raw.items() if v is None or isinstance(v, _SCALARS)}


def _parse_direction(value: object) -> Direction | None:
    d = str(value or "").strip().lower()
    if d in ("input", "in"):
        return Direction.Input
    if d in ("output", "out"):
        return Direction.Output
    return None


def _collection(doc: Mapping[str, Any], key: str) -> list[Any]:
    items = doc.get(key)
    if items is None:
        return []
    if not isinstance(items, list):
        raise SnapshotError(f"snapshot field {key!r} must be a list, got {type(items).__name__}")
    return items


def decode_snapshot(doc: Mapping[str, Any] | bytes | str) -> GraphSnapshot:
    """Decode the UI graph document into a ``GraphSnapshot``.

    Raises:
        SnapshotError: if the document is not valid JSON, is not an object,
            or has a collection that is not a list, or an entry whose id is
            not an integer.
    """
    if isinstance(doc, (bytes, str)):
        try:
            doc = orjson.loads(doc)
        except orjson.JSONDecodeError as e:
            raise SnapshotError(f"snapshot is not valid JSON: {e}") from e
    if not isinstance(doc, Mapping):
        raise SnapshotError(f"snapshot must be a JSON object, got {type(doc).__name__}")

    nodes: list[Node] = []
    for raw in _collection(doc, "nodes"):
        if not isinstance(raw, Mapping):
            raise SnapshotError(f"node entry must be an object, got {raw!r}")
        nodes.append(
            Node(
                id=_as_int(raw.get("id"), "node id"),
                name=str(raw.get("name") or ""),
                description=str(raw.get("description") or ""),
                media_class=str(raw.get("mediaClass") or ""),
                factory=str(raw.get("factory") or ""),
                state=NodeState.parse(raw.get("state")),
                properties=_scalar_properties(raw.get("properties")),
            )
        )

    ports: list[Port] = []
    for raw in _collection(doc, "ports"):
        if not isinstance(raw, Mapping):
            raise SnapshotError(f"port entry must be an object, got {raw!r}")
        port_id = _as_int(raw.get("id"), "port id")
        direction = _parse_direction(raw.get("direction"))
        if direction is None:
            logger.debug("skipping port {} with direction {!r}", port_id, raw.get("direction"))
            continue
        ports.append(
            Port(
                id=port_id,
                node_id=_as_int(raw.get("nodeId"), "port nodeId"),
                direction=direction,
                name=str(raw.get("name") or ""),
                channel=str(raw.get("channel") or ""),
            )
        )

    links: list[Link] = []
    for raw in _collection(doc, "links"):
        if not isinstance(raw, Mapping):
            raise SnapshotError(f"link entry must be an object, got {raw!r}")
        links.append(
            Link(
                output_node_id=_as_int(raw.get("outputNodeId"), "link outputNodeId"),
                input_node_id=_as_int(raw.get("inputNodeId"), "link inputNodeId"),
                output_port_id=_as_int(raw.get("outputPortId"), "link outputPortId"),
                input_port_id=_as_int(raw.get("inputPortId"), "link inputPortId"),
                state=LinkState.parse(raw.get("state")),
            )
        )

    return GraphSnapshot(nodes=nodes, ports=ports, links=links)


def encode_snapshot(snapshot: GraphSnapshot) -> dict[str, Any]:
    """Inverse of ``decode_snapshot`` for dict documents."""
    return {
        "nodes": [
            {
                "id": n.id,
                "name": n.name,
                "description": n.description,
                "mediaClass": n.media_class,
                "factory": n.factory,
                "state": n.state.value,
                "properties": dict(n.properties),
            }
            for n in snapshot.nodes
        ],
        "ports": [
            {
                "id": p.id,
                "nodeId": p.node_id,
                "direction": p.direction.value,
                "name": p.name,
                "channel": p.channel,
            }
            for p in snapshot.ports
        ],
        "links": [
            {
                "outputNodeId": lk.output_node_id,
                "inputNodeId": lk.input_node_id,
                "outputPortId": lk.output_port_id,
                "inputPortId": lk.input_port_id,
                "state": lk.state.value,
            }
            for lk in snapshot.links
        ],
    }


# ─── pw-dump objects ──────────────────────────────────────────────────────────


def _pw_props(obj: Mapping[str, Any]) -> dict[str, str]:
    """Merge top-level ``props`` and ``info.props`` into one string mapping."""
    out: dict[str, str] = {}
    info = obj.get("info") or {}
    for src in (obj.get("props") or {}, info.get("props") if isinstance(info, Mapping) else {}):
        if not isinstance(src, Mapping):
            continue
        for k, v in src.items():
            out[str(k)] = "" if v is None else str(v)
    return out


def _pw_info(obj: Mapping[str, Any]) -> Mapping[str, Any]:
    info = obj.get("info")
    return info if isinstance(info, Mapping) else {}


def _pw_type(obj: Mapping[str, Any]) -> str:
    return str(obj.get("type") or "")


def _pw_int(value: object) -> int | None:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def snapshot_from_pw_dump(objects: Iterable[Any] | bytes | str) -> GraphSnapshot:
    """Build a ``GraphSnapshot`` from ``pw-dump`` JSON output.

    Node description falls back from ``node.description`` to ``node.nick`` to
    ``node.name``. Port direction comes from ``port.direction`` (``in``/``out``)
    or ``info.direction``; the channel from ``audio.channel`` or the port name.
    """
    if isinstance(objects, (bytes, str)):
        try:
            objects = orjson.loads(objects)
        except orjson.JSONDecodeError as e:
            raise SnapshotError(f"pw-dump output is not valid JSON: {e}") from e
    if not isinstance(objects, list):
        raise SnapshotError("pw-dump output must be a JSON list")

    entries = [o for o in objects if isinstance(o, Mapping) and _pw_int(o.get("id")) is not None]

    nodes: list[Node] = []
    for obj in entries:
        if not _pw_type(obj).endswith(":Node"):
            continue
        pr = _pw_props(obj)
        info = _pw_info(obj)
        nodes.append(
            Node(
                id=int(obj["id"]),
                name=pr.get("node.name", ""),
                description=pr.get("node.description") or pr.get("node.nick") or pr.get("node.name") or "",
                media_class=pr.get("media.class", ""),
                factory=pr.get("factory.name", ""),
                state=NodeState.parse(info.get("state")),
                properties=pr,
            )
        )

    ports: list[Port] = []
    for obj in entries:
        if not _pw_type(obj).endswith(":Port"):
            continue
        pr = _pw_props(obj)
        info = _pw_info(obj)
        direction = _parse_direction(pr.get("port.direction")) or _parse_direction(info.get("direction"))
        node_id = _pw_int(pr.get("node.id"))
        if direction is None or node_id is None:
            logger.debug("skipping pw-dump port {} without direction or node", obj["id"])
            continue
        ports.append(
            Port(
                id=int(obj["id"]),
                node_id=node_id,
                direction=direction,
                name=pr.get("port.name", ""),
                channel=channel_from_port_props(pr),
            )
        )

    links: list[Link] = []
    for obj in entries:
        if not _pw_type(obj).endswith(":Link"):
            continue
        pr = _pw_props(obj)
        info = _pw_info(obj)
        ids = (
            _pw_int(info.get("output-node-id", pr.get("link.output.node"))),
            _pw_int(info.get("input-node-id", pr.get("link.input.node"))),
            _pw_int(info.get("output-port-id", pr.get("link.output.port"))),
            _pw_int(info.get("input-port-id", pr.get("link.input.port"))),
        )
        if any(i is None for i in ids):
            logger.debug("skipping pw-dump link {} with incomplete endpoints", obj["id"])
            continue
        out_node, in_node, out_port, in_port = ids
        links.append(
            Link(
                output_node_id=out_node,  # type: ignore[arg-type]
                input_node_id=in_node,  # type: ignore[arg-type]
                output_port_id=out_port,  # type: ignore[arg-type]
                input_port_id=in_port,  # type: ignore[arg-type]
                state=LinkState.parse(info.get("state")),
            )
        )

    return GraphSnapshot(nodes=nodes, ports=ports, links=links)
