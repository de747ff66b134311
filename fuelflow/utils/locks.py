"""
Per-entity advisory locks.

Allocation and status re-derivation are check-then-act sequences over sums
stored in several collections. Every mutation acquires the locks for all
entities whose sums it reads, keyed as "<kind>:<id>", before its first read.

Rules:
- Keys are acquired together, in sorted order, through a single hold() call.
- hold() is never nested, so two operations cannot wait on each other.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, Optional


def lock_key(kind: str, entity_id: Optional[str]) -> Optional[str]:
    if not entity_id:
        return None
    return f"{kind}:{entity_id}"


class KeyedLocks:
    """Registry of asyncio locks created on demand per key."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, keys: Iterable[Optional[str]]) -> AsyncIterator[None]:
        ordered = sorted({key for key in keys if key})
        registered = []
        acquired = []
        try:
            for key in ordered:
                lock = self._locks.setdefault(key, asyncio.Lock())
                self._holders[key] = self._holders.get(key, 0) + 1
                registered.append(key)
                await lock.acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            for key in reversed(registered):
                self._release_key(key)

    def _release_key(self, key: str) -> None:
        # Drop idle locks so the registry does not grow with every id ever seen.
        self._holders[key] -= 1
        if self._holders[key] == 0:
            del self._holders[key]
            del self._locks[key]


entity_locks = KeyedLocks()
