"""Serialised execution of mutating ledger and registry operations.

Every mutation of the combined ledger + registry state runs inside
:func:`atomic`: a process-wide lock orders operations one after another, and
the surrounding database transaction commits only when the whole operation
succeeded.  Any exception rolls the session back, so a failed mint, transfer,
listing or purchase never leaves a partial write behind.
"""

from __future__ import annotations

import asyncio
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

# One lock per event loop; asyncio.Lock cannot be shared across loops.
_locks: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock]" = (
    weakref.WeakKeyDictionary()
)


def _loop_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _locks.get(loop)
    if lock is None:
        lock = asyncio.Lock()
        _locks[loop] = lock
    return lock


@asynccontextmanager
async def atomic(db: AsyncSession) -> AsyncIterator[AsyncSession]:
    """Run the enclosed block as one serialised, all-or-nothing operation."""
    async with _loop_lock():
        try:
            yield db
            await db.commit()
        except BaseException:
            await db.rollback()
            raise
