"""
Workflow plumbing shared by the services.

A workflow is a sequence of named steps.  Each step runs in its own
transaction (``session.begin()``), so a step either lands completely or not
at all, while the workflow as a whole is best-effort sequential: if step 3
fails, steps 1-2 stay applied.  Storage failures surface as
``PersistenceError`` naming the step and the trips whose snapshot may now be
stale; recomputing those trips restores consistency.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetops.domain.errors import PersistenceError
from fleetops.domain.order_status import Clock, utcnow
from fleetops.infrastructure.locks import KeyedLock, RedisTripLocks

logger = logging.getLogger(__name__)

TripLocks = Union[KeyedLock, RedisTripLocks]


class TenantService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        tenant_id: str,
        locks: Optional[TripLocks] = None,
        clock: Clock = utcnow,
    ):
        self.session_factory = session_factory
        self.tenant_id = tenant_id
        self.locks = locks if locks is not None else KeyedLock()
        self.clock = clock

    @asynccontextmanager
    async def step(
        self, name: str, affected_trip_ids: Iterable[Any] = ()
    ) -> AsyncIterator[AsyncSession]:
        """Run the body as one committed transaction."""
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as exc:
            affected = list(affected_trip_ids)
            logger.error(
                "Step %s failed for tenant %s (stale trips: %s): %s",
                name,
                self.tenant_id,
                affected,
                exc,
            )
            raise PersistenceError(
                f"Storage failure during {name}",
                step=name,
                affected_trip_ids=affected,
            ) from exc
