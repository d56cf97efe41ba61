"""Tideline — Abstract Base Collector."""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import AsyncIterator, Optional

import httpx

from backend.models import utcnow

logger = logging.getLogger("tideline.collector")


class BaseCollector(ABC):
    """Base class for polled upstream feeds (prediction markets, signal exports)."""

    def __init__(self, name: str, interval: int = 60, client: Optional[httpx.AsyncClient] = None):
        self.name = name
        self.interval = interval
        self._running = False
        self._http_client: Optional[httpx.AsyncClient] = client
        self._last_fetch: Optional[datetime] = None

    async def start(self) -> AsyncIterator[list]:
        """Poll forever, yielding one batch per cycle. A failed cycle yields []."""
        self._running = True
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        logger.info("[%s] Collector started (interval=%ds)", self.name, self.interval)

        while self._running:
            try:
                records = await self.collect()
                self._last_fetch = utcnow()
                if records:
                    logger.info("[%s] Collected %d records", self.name, len(records))
                else:
                    logger.debug("[%s] No new records", self.name)
                yield records or []
            except Exception as e:
                logger.error("[%s] Collection error: %s", self.name, e)
                yield []

            await asyncio.sleep(self.interval)

    async def stop(self):
        self._running = False
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None
        logger.info("[%s] Collector stopped", self.name)

    @property
    def last_fetch(self) -> Optional[datetime]:
        return self._last_fetch

    @abstractmethod
    async def collect(self) -> list:
        """Fetch and normalize records from the data source."""
        ...

    async def fetch_json(self, url: str, params: dict = None):
        """Helper to fetch JSON from a URL."""
        if not self._http_client:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        resp = await self._http_client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()
