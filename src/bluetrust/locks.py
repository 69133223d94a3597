"""
Entity Locks

Per-entity exclusive access for projects and accounts. Each entity gets its
own asyncio.Lock so unrelated operations never block each other.
"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator

from bluetrust.enums import AccountKind


LockKey = tuple[AccountKind, str]


class LockRegistry:
    """
    Registry of per-entity locks.

    Locks are created lazily on first use and live as long as the registry.
    Callers resolve the entity before locking it, so the registry never holds
    more locks than there are projects and accounts.
    Multi-entity acquisition always happens in sorted key order, which rules
    out lock-order deadlocks between transfers.
    """

    def __init__(self):
        self._locks: dict[LockKey, asyncio.Lock] = {}

    def get(self, kind: AccountKind, entity_id: str) -> asyncio.Lock:
        """
        Get the lock guarding an entity

        Args:
            kind: Entity namespace
            entity_id: Entity id

        Returns:
            asyncio.Lock for the entity
        """
        key = (kind, entity_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def hold(self, *keys: LockKey) -> AsyncIterator[None]:
        """
        Hold several entity locks at once.

        Usage:
            async with locks.hold((AccountKind.ISSUER, "NGO001"), (AccountKind.HOLDER, "CMP001")):
                # both accounts are exclusively ours here
        """
        ordered = sorted(set(keys), key=lambda key: (key[0].value, key[1]))
        async with AsyncExitStack() as stack:
            for kind, entity_id in ordered:
                await stack.enter_async_context(self.get(kind, entity_id))
            yield

    def __len__(self) -> int:
        return len(self._locks)
