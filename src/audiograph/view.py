"""Interactive graph view — refresh, reset and drag on top of the layout engine.

The view owns the only mutable state that outlives a snapshot: the sticky
position cache. Everything else is rebuilt on each refresh and swapped in
with a single assignment, so a renderer never sees a half-built model.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Union

from loguru import logger

from audiograph.config import DEFAULT_CONFIG, LayoutConfig
from audiograph.consolidate import consolidate
from audiograph.graph import GraphSnapshot
from audiograph.layout import PositionCache, layout_graph
from audiograph.ports import reroute
from audiograph.snapshot import decode_snapshot
from audiograph.types import LayoutResult

SnapshotDocument = Union[GraphSnapshot, Mapping[str, Any], bytes, str]
SnapshotProvider = Callable[[], Awaitable[SnapshotDocument]]


class FetchError(RuntimeError):
    """A snapshot could not be fetched or decoded; the previous model is kept."""


class GraphView:
    """Holds the current layout and applies user interactions to it.

    Args:
        provider: coroutine function returning the next snapshot, either as a
            ``GraphSnapshot`` or as a graph document accepted by
            ``decode_snapshot``.
        config: layout geometry.
    """

    def __init__(self, provider: SnapshotProvider, config: LayoutConfig | None = None) -> None:
        self._provider = provider
        self.config = config or DEFAULT_CONFIG
        self.positions = PositionCache()
        self.result: LayoutResult | None = None
        self._issued = 0
        self._applied = 0

    @property
    def snapshot(self) -> GraphSnapshot | None:
        """The consolidated snapshot behind the current layout."""
        return self.result.snapshot if self.result is not None else None

    async def refresh(self) -> LayoutResult | None:
        """Fetch, consolidate and lay out a new snapshot, respecting sticky positions.

        If a fetch issued later has already been applied when this one
        returns, this result is discarded and the current model is returned.

        Raises:
            FetchError: the provider failed or returned a malformed document.
                ``self.result`` is left unchanged.
        """
        self._issued += 1
        seq = self._issued
        try:
            raw = await self._provider()
            snapshot = raw if isinstance(raw, GraphSnapshot) else decode_snapshot(raw)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise FetchError(f"graph snapshot fetch failed: {e}") from e

        if seq < self._applied:
            logger.debug("discarding snapshot #{}: #{} already applied", seq, self._applied)
            return self.result

        result = layout_graph(consolidate(snapshot), self.config, self.positions)
        self._applied = seq
        self.result = result
        logger.info("graph refreshed: {} nodes, {} links", len(result.nodes), len(result.links))
        return result

    def reset_layout(self) -> LayoutResult | None:
        """Forget all sticky positions and lay the current snapshot out from scratch."""
        self.positions.clear()
        if self.result is None:
            return None
        self.result = layout_graph(self.result.snapshot, self.config, self.positions)
        return self.result

    def drag_node(self, node_id: int, dx: float, dy: float) -> None:
        """Move one node by (dx, dy) and re-route only its ports and links.

        Raises:
            KeyError: ``node_id`` is not in the current layout.
        """
        node = self.result.node(node_id) if self.result is not None else None
        if node is None:
            raise KeyError(node_id)
        node.x += dx
        node.y += dy
        self.positions.set(node.key, node.x, node.y)
        reroute(self.result, [node_id], self.config)

    async def poll(self, interval: float | None = None, stop: asyncio.Event | None = None) -> None:
        """Refresh every ``interval`` seconds until ``stop`` is set.

        A failed refresh is logged and the loop carries on with the last good
        model.
        """
        interval = self.config.refresh_interval if interval is None else interval
        stop = stop or asyncio.Event()
        while not stop.is_set():
            try:
                await self.refresh()
            except FetchError as e:
                logger.warning("{}", e)
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
