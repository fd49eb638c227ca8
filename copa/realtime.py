"""Supabase realtime subscription that keeps a :class:`ReadModel` fresh."""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Set

from copa.db_tables import WATCHED
from copa.read_model import ReadModel

CHANNEL_NAME = "copa-changes"


class ChangeFeed:
    """One realtime channel with a ``postgres_changes`` handler per table.

    Every notification schedules a full recompute on the running loop; the
    read model's version counter sorts out refreshes that finish out of order.
    """

    def __init__(
        self,
        client: Any,
        read_model: ReadModel,
        tables: Iterable[str] = WATCHED,
        schema: str = "public",
    ) -> None:
        self._client = client
        self._read_model = read_model
        self._tables = tuple(tables)
        self._schema = schema
        self._channel = None
        self._tasks: Set[asyncio.Task] = set()
        self.notifications = 0

    @property
    def subscribed(self) -> bool:
        return self._channel is not None

    def _on_change(self, payload: Any) -> None:
        self.notifications += 1
        task = asyncio.ensure_future(self._read_model.invalidate_and_recompute())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            print(f"realtime: recompute failed: {exc!r}")

    async def subscribe(self) -> "ChangeFeed":
        if self._channel is not None:
            return self
        channel = self._client.channel(CHANNEL_NAME)
        for table in self._tables:
            channel.on_postgres_changes(
                "*", schema=self._schema, table=table, callback=self._on_change
            )
        await channel.subscribe()
        self._channel = channel
        return self

    async def unsubscribe(self) -> None:
        channel, self._channel = self._channel, None
        if channel is not None:
            await self._client.remove_channel(channel)
        for task in list(self._tasks):
            task.cancel()

    async def drain(self) -> None:
        """Wait for recomputes that are already scheduled."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


async def subscribe_changes(
    client: Any,
    read_model: ReadModel,
    tables: Iterable[str] = WATCHED,
    refresh_now: bool = True,
) -> ChangeFeed:
    """Subscribe ``read_model`` to the change feed, optionally priming it first."""
    feed = ChangeFeed(client, read_model, tables)
    await feed.subscribe()
    if refresh_now:
        await read_model.invalidate_and_recompute()
    return feed


__all__ = ["ChangeFeed", "CHANNEL_NAME", "subscribe_changes"]
