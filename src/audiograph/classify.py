"""Stage classification — assign each logical node to one of five pipeline columns.

Columns, left to right:

  0: Input Sources  — Audio/Source devices, Stream/Output/Audio playback streams
  1: Input Groups   — fpp_input_* mix buses and their loopbacks
  2: Output Groups  — fpp_group_* combine-stream sinks
  3: Effects        — fpp_fx_* filter-chains, fpp_eq_* equalisers
  4: HW Outputs     — ALSA sinks, Stream/Input/Audio capture (AES67 etc.)

Everything here is a pure function of the node's name, media class and
properties; nothing is cached between calls.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from audiograph.graph import Node, Port

COLUMN_LABELS: tuple[str, ...] = ("Input Sources", "Input Groups", "Output Groups", "Effects", "HW Outputs")
COLUMN_COUNT = len(COLUMN_LABELS)

INPUT_SOURCES, INPUT_GROUPS, OUTPUT_GROUPS, EFFECTS, HW_OUTPUTS = range(COLUMN_COUNT)

AUDIO_SINK = "Audio/Sink"
AUDIO_SOURCE = "Audio/Source"
STREAM_OUTPUT = "Stream/Output/Audio"
STREAM_INPUT = "Stream/Input/Audio"

HW_OUTPUT_PREFIX = "alsa_"

_MIX_BUS_PREFIXES = ("fpp_input_", "fpp_loopback_ig", "input.fpp_loopback_ig", "output.fpp_loopback_ig")
_COMBINE_SINK_PREFIX = "fpp_group_"
_EFFECT_PREFIXES = ("fpp_fx_", "fpp_eq_")


@dataclass(frozen=True)
class ColumnRule:
    """A ``(name, media_class)`` predicate and the column it selects."""

    predicate: Callable[[str, str], bool]
    column: int


COLUMN_RULES: tuple[ColumnRule, ...] = (
    ColumnRule(lambda nm, mc: nm.startswith(_MIX_BUS_PREFIXES), INPUT_GROUPS),
    ColumnRule(lambda nm, mc: nm.startswith(_COMBINE_SINK_PREFIX), OUTPUT_GROUPS),
    ColumnRule(lambda nm, mc: nm.startswith(_EFFECT_PREFIXES), EFFECTS),
    ColumnRule(lambda nm, mc: (mc == AUDIO_SINK and nm.startswith(HW_OUTPUT_PREFIX)) or mc == STREAM_INPUT, HW_OUTPUTS),
    ColumnRule(lambda nm, mc: mc in (AUDIO_SOURCE, STREAM_OUTPUT), INPUT_SOURCES),
    ColumnRule(lambda nm, mc: mc == AUDIO_SINK, HW_OUTPUTS),
)


def classify_column(name: str, media_class: str) -> int:
    """Column index for a node name / media class pair; first matching rule wins."""
    nm = name or ""
    mc = media_class or ""
    for rule in COLUMN_RULES:
        if rule.predicate(nm, mc):
            return rule.column
    return INPUT_SOURCES


def column(node: Node) -> int:
    return classify_column(node.name, node.media_class)


# ─── Presentation hints ───────────────────────────────────────────────────────


def node_role(node: Node) -> str:
    """Role tag the renderer maps to a colour.

    Unlike ``column`` this still distinguishes the internal stream halves, so
    an unconsolidated graph can be drawn too.
    """
    nm, mc = node.name, node.media_class
    if nm.startswith(_MIX_BUS_PREFIXES):
        return "input-group"
    if nm.startswith(_COMBINE_SINK_PREFIX):
        return "output-group"
    if nm.startswith("fpp_fx_") and not nm.endswith("_out"):
        return "effect"
    if nm.startswith("output.fpp_group_") or nm.startswith("fpp_fx_"):
        return "internal-stream"
    if mc == AUDIO_SINK and nm.startswith(HW_OUTPUT_PREFIX):
        return "hw-output"
    if mc == AUDIO_SOURCE:
        return "source"
    if mc == STREAM_INPUT:
        return "capture"
    if mc == STREAM_OUTPUT:
        return "stream"
    if mc == AUDIO_SINK:
        return "sink"
    return "other"


def _num(value: object) -> float | None:
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def node_summary(node: Node) -> str:
    """One-line metadata string shown under a node's media class."""
    p = node.properties
    nm, mc = node.name, node.media_class
    parts: list[str] = []

    if nm.startswith("fpp_fx_"):
        delay = _num(p.get("fpp.delay.ms"))
        if delay is not None:
            parts.append(f"delay {p['fpp.delay.ms']} ms" if delay > 0 else "no delay")
        if p.get("fpp.eq.enabled"):
            parts.append("EQ on")
        return " · ".join(parts)

    if nm.startswith(_COMBINE_SINK_PREFIX):
        if p.get("fpp.group.members"):
            parts.append(f"{p['fpp.group.members']} members")
        if p.get("fpp.group.latencyCompensate"):
            parts.append("latency comp")
        return " · ".join(parts)

    if nm.startswith("fpp_input_"):
        if p.get("fpp.inputGroup.members"):
            parts.append(f"{p['fpp.inputGroup.members']} sources")
        if p.get("fpp.inputGroup.outputs"):
            parts.append(f"→ {p['fpp.inputGroup.outputs']} outputs")
        return " · ".join(parts) or "mix bus"

    if mc.startswith("Audio/") and nm.startswith(HW_OUTPUT_PREFIX):
        if p.get("audio.format"):
            parts.append(str(p["audio.format"]))
        rate = _num(p.get("audio.rate"))
        if rate:
            parts.append(f"{rate / 1000:.1f} kHz")
        if p.get("audio.channels"):
            parts.append(f"{p['audio.channels']} ch")
        if p.get("api.alsa.headroom"):
            parts.append(f"headroom {p['api.alsa.headroom']}")
        return " · ".join(parts)

    if "Stream/" in mc:
        if p.get("audio.channels"):
            parts.append(f"{p['audio.channels']} ch")
        if p.get("application.name"):
            parts.append(str(p["application.name"]))
        return " · ".join(parts)

    return ""


def port_label(port: Port) -> str:
    """Channel tag if known, else the port name without its direction prefix."""
    if port.channel:
        return port.channel
    return port.name.replace("playback_", "").replace("output_", "").replace("input_", "")
