"""
community_classes.services.locks

Keyed asyncio locks.

Responsibilities:
- Hand out one `asyncio.Lock` per key (class id) so work on the same key is serialized
  while unrelated keys never contend.
- Drop entries once nobody holds or waits on them, keeping the registry bounded by
  the number of keys currently in use.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field


@dataclass(slots=True)
class _Entry:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class KeyedLockRegistry:
    def __init__(self) -> None:
        self._entries: dict[Hashable, _Entry] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        # No await between lookup and increment, so this is atomic on a single event loop.
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _Entry()
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries


# --- Module Notes -----------------------------------------------------------
# One registry per process is created in `api.app.create_app` and stored on app.state.
# It serializes admissions within this process only. Across worker processes the
# admission transaction relies on the store: `FOR UPDATE` on PostgreSQL, `BEGIN IMMEDIATE`
# on SQLite (see `services.admission`).
