"""
Tracked brand registry with one polling task per brand.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

CollectFn = Callable[[str], Awaitable[object]]


def _brand_key(brand: str) -> str:
    return (brand or "").strip().lower()


class BrandRegistry:
    """Maps tracked brands to their polling tasks.

    Brands are matched case-insensitively but keep the spelling they were
    added with. Timers only run between ``start_all()`` and ``stop_all()``;
    brands added while the registry is running start polling immediately.
    """

    def __init__(
        self,
        collect: CollectFn,
        interval_seconds: float = 60.0,
        brands: Iterable[str] = (),
    ):
        self.collect = collect
        self.interval_seconds = interval_seconds
        self._brands: Dict[str, str] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        self._running = False
        for brand in brands:
            self.add(brand)

    @property
    def brands(self) -> List[str]:
        return list(self._brands.values())

    @property
    def running(self) -> bool:
        return self._running

    def __len__(self) -> int:
        return len(self._brands)

    def is_tracked(self, brand: str) -> bool:
        return _brand_key(brand) in self._brands

    def is_polling(self, brand: str) -> bool:
        task = self._tasks.get(_brand_key(brand))
        return task is not None and not task.done()

    def resolve(self, brand: str) -> Optional[str]:
        """Return the tracked spelling of a brand, or None."""
        return self._brands.get(_brand_key(brand))

    def add(self, brand: str) -> bool:
        """
        Track a brand.

        Args:
            brand: Brand name

        Returns:
            False if the brand was already tracked or is blank
        """
        key = _brand_key(brand)
        if not key or key in self._brands:
            return False
        self._brands[key] = brand.strip()
        logger.info("Started tracking %s", brand.strip())
        if self._running:
            self.start(brand)
        return True

    def remove(self, brand: str) -> bool:
        """Stop polling a brand and forget it. Returns False if it was not tracked."""
        key = _brand_key(brand)
        if key not in self._brands:
            return False
        self.stop(brand)
        name = self._brands.pop(key)
        logger.info("Stopped tracking %s", name)
        return True

    def start(self, brand: str) -> bool:
        """Start the polling task of a tracked brand; requires a running event loop."""
        key = _brand_key(brand)
        if key not in self._brands:
            return False
        if self.is_polling(brand):
            logger.debug("Already collecting data for %s", self._brands[key])
            return False
        name = self._brands[key]
        self._tasks[key] = asyncio.create_task(self._poll(name), name=f"poll:{key}")
        return True

    def stop(self, brand: str) -> bool:
        task = self._tasks.pop(_brand_key(brand), None)
        if task is None:
            return False
        task.cancel()
        return True

    def start_all(self) -> None:
        self._running = True
        for brand in self.brands:
            self.start(brand)
        logger.info("Now tracking: %s", ", ".join(self.brands) or "-")

    async def stop_all(self) -> None:
        self._running = False
        tasks = list(self._tasks.values())
        self._tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("All data collection stopped")

    async def _poll(self, brand: str) -> None:
        # Collect immediately, then every interval
        while True:
            try:
                await self.collect(brand)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Collection cycle failed for %s", brand)
            await asyncio.sleep(self.interval_seconds)
