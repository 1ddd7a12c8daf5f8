"""Layout geometry configuration (pixel units)."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

NODE_WIDTH: int = 220
NODE_BASE_HEIGHT: int = 52  # title + media class + metadata rows
PORT_ROW_START: int = 44  # first port row sits below the three text lines
PORT_ROW_SPACING: int = 18
HEIGHT_MARGIN: int = 4
TOP_MARGIN: int = 40
HEADER_HEIGHT: int = 30  # room for the column header text
LEFT_MARGIN: int = 60
COLUMN_GAP: int = 100
ROW_GAP: int = 30
SWEEP_PASSES: int = 4
REFRESH_INTERVAL: float = 10.0  # seconds between polls


@dataclass(frozen=True)
class LayoutConfig:
    node_width: int = NODE_WIDTH
    node_base_height: int = NODE_BASE_HEIGHT
    port_row_start: int = PORT_ROW_START
    port_row_spacing: int = PORT_ROW_SPACING
    height_margin: int = HEIGHT_MARGIN
    top_margin: int = TOP_MARGIN
    header_height: int = HEADER_HEIGHT
    left_margin: int = LEFT_MARGIN
    column_gap: int = COLUMN_GAP
    row_gap: int = ROW_GAP
    sweep_passes: int = SWEEP_PASSES
    refresh_interval: float = REFRESH_INTERVAL

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> LayoutConfig:
        """Build a config from overrides, e.g. a parsed settings section.

        Raises:
            ValueError: on a key that is not a config field.
        """
        known = {f.name for f in dataclasses.fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"unknown layout settings: {', '.join(unknown)}")
        return cls(**dict(values))

    def column_x(self, column: int) -> int:
        """Left edge of a column."""
        return self.left_margin + column * (self.node_width + self.column_gap)

    def node_height(self, ports_in: int, ports_out: int) -> int:
        rows = max(ports_in, ports_out, 1)
        return max(self.node_base_height, self.port_row_start + rows * self.port_row_spacing + self.height_margin)


DEFAULT_CONFIG = LayoutConfig()
