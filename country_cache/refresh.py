"""
Refresh coordination.

A refresh fetches both external sources concurrently, reconciles every
country against the rate table and commits all rows plus the refresh
timestamp in one transaction. Source failures happen before any session
is opened; persistence failures roll the whole batch back. The summary
image is rendered only after commit and never fails the refresh.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import sessionmaker

from country_cache.exceptions import PersistenceFailure
from country_cache.gateway import ExternalSourceGateway
from country_cache.logging_config import create_logger
from country_cache.reconciler import Multiplier, reconcile_all, uniform_multiplier
from country_cache.store import CountryStore
from country_cache.summary import generate_summary_image

logger = create_logger(__name__)

TOP_COUNT = 5


@dataclass(frozen=True)
class RefreshResult:
    total_count: int
    last_refreshed_at: datetime


class RefreshCoordinator:
    """
    Runs refreshes against one gateway and one session factory.

    :param gateway: Source of the raw countries and the rate table
    :param session_factory: Creates the session each refresh owns
    :param multiplier: GDP multiplier source, injectable for tests
    :param renderer: Called as ``renderer(total, top_countries, now)`` after commit
    """

    def __init__(
        self,
        gateway: ExternalSourceGateway,
        session_factory: sessionmaker,
        multiplier: Multiplier = uniform_multiplier,
        renderer: Optional[Callable] = generate_summary_image,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.gateway = gateway
        self.session_factory = session_factory
        self.multiplier = multiplier
        self.renderer = renderer
        self.clock = clock

    async def fetch_sources(self):
        """
        Fetch countries and rates concurrently.

        The first failure cancels the other fetch and is re-raised.
        """
        countries_task = asyncio.create_task(self.gateway.fetch_countries())
        rates_task = asyncio.create_task(self.gateway.fetch_rates())
        tasks = (countries_task, rates_task)
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if task in done and task.exception() is not None:
                raise task.exception()
        return countries_task.result(), rates_task.result()

    def _commit(self, raw_countries, rates, now: datetime) -> int:
        with self.session_factory() as session:
            store = CountryStore(session)
            try:
                with session.begin():
                    written = 0
                    for record in reconcile_all(raw_countries, rates, now, self.multiplier):
                        store.upsert_country(record)
                        written += 1
                    store.set_last_refreshed_at(now)
            except Exception as e:
                logger.error(f"Refresh rolled back: {type(e).__name__}: {e}")
                raise PersistenceFailure("Could not persist refreshed countries") from e
            # counted after commit, so the total is what readers now see
            total = store.count()
        logger.info(f"Committed {written} countries ({total} cached)")
        return total

    def _render_summary(self, total: int, now: datetime) -> None:
        with self.session_factory() as session:
            top = CountryStore(session).top_by_gdp(TOP_COUNT)
            self.renderer(total, top, now)

    async def refresh(self) -> RefreshResult:
        """
        Fetch, reconcile and atomically replace the cached countries.

        :raises SourceUnavailable: If either source fails; nothing is written
        :raises PersistenceFailure: If the batch could not be committed; nothing is written
        """
        logger.info("Refresh started")
        raw_countries, rates = await self.fetch_sources()

        now = self.clock()
        total = await run_in_threadpool(self._commit, raw_countries, rates, now)

        if self.renderer is not None:
            try:
                await run_in_threadpool(self._render_summary, total, now)
            except Exception:
                logger.exception("Summary image generation failed; refresh is still committed")

        logger.info(f"Refresh finished at {now.isoformat()}")
        return RefreshResult(total_count=total, last_refreshed_at=now)
