import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from services import ServiceContainer

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CacheWarmer:
    """Keeps the wallet and dashboard caches populated between requests.

    Uses the non-forced fetch, so a fresh cache costs nothing.
    """

    def __init__(self, services: ServiceContainer) -> None:
        self.services = services
        self.scheduler = AsyncIOScheduler(timezone=services.settings.timezone)

    async def _run_job(self, source: str = "manual") -> None:
        if not self.services.tokens.is_authenticated:
            logger.info(f"cache_warm: source={source} skipped=no_session")
            return
        logger.info(f"cache_warm: source={source}")
        await self.services.wallets.fetch()
        await self.services.dashboard.fetch()
        stale = [c.label for c in self.services.caches if c.error is not None]
        logger.info(f"cache_warm: source={source} failed={stale}")

    def start(self) -> None:
        trigger = IntervalTrigger(minutes=self.services.settings.warm_interval_minutes)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["interval"],
            id="cache_warm",
            replace_existing=True,
            misfire_grace_time=300,
        )
        self.scheduler.start()
        logger.info(
            f"Cache warmer started every {self.services.settings.warm_interval_minutes} minutes"
        )

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Cache warmer stopped")
