"""Channel tags for ports decoded from ``pw-dump`` output.

PipeWire reports channel positions in several spellings (``FL``,
``front-left``, ``aux03``); the port resolver and the duplicate-output
collapse compare them, so every spelling is reduced to one upper-case tag.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

# canonical tag → long spellings accepted besides the tag itself
CHANNEL_POSITIONS: dict[str, tuple[str, ...]] = {
    "MONO": (),
    "FL": ("front-left",),
    "FR": ("front-right",),
    "FC": ("front-center",),
    "LFE": ("low-frequency",),
    "RL": ("rear-left",),
    "RR": ("rear-right",),
    "SL": ("side-left",),
    "SR": ("side-right",),
}

_SPELLINGS: dict[str, str] = {
    spelling: tag for tag, longs in CHANNEL_POSITIONS.items() for spelling in (tag.lower(), *longs)
}
_AUX = re.compile(r"aux(\d+)")

CHANNEL_PROPS = ("audio.channel", "audio.position")


def normalize_channel(value: str | None) -> str:
    """Canonical upper-case channel tag ("front-left" → "FL", "aux03" → "AUX3").

    Unknown spellings are upper-cased unchanged; blank input gives "".
    """
    s = (value or "").strip().lower()
    if not s:
        return ""
    if s in _SPELLINGS:
        return _SPELLINGS[s]
    m = _AUX.fullmatch(s)
    if m:
        return f"AUX{int(m.group(1))}"
    return s.upper()


def channel_from_port_props(props: Mapping[str, object]) -> str:
    """Best-effort channel for a port.

    An explicit ``audio.channel`` / ``audio.position`` wins. Otherwise the
    part of ``port.name`` after the last underscore is used, and when that is
    empty the name is scanned for a trailing position tag.
    """
    for prop in CHANNEL_PROPS:
        explicit = normalize_channel(str(props.get(prop) or ""))
        if explicit:
            return explicit

    port_name = str(props.get("port.name") or "").strip()
    if not port_name:
        return ""

    _, sep, tail = port_name.rpartition("_")
    if sep:
        tag = normalize_channel(tail)
        if tag:
            return tag

    upper = port_name.upper()
    for tag in CHANNEL_POSITIONS:
        if upper.endswith(tag):
            return tag
    return ""
