"""Periodic per-chain reachability checks."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

from bottlechain.chain_service import ChainService
from bottlechain.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainStatus:
    """Result of the latest reachability check for a chain."""

    chain_id: str
    reachable: bool
    latency_ms: Optional[float] = None
    error: Optional[str] = None
    checked_at: float = 0.0


class NetworkMonitor:
    """Pings every configured chain on a fixed period.

    Checks run concurrently and each has its own timeout, so a slow chain
    never delays another chain's result.
    """

    def __init__(self, chain_service: ChainService, settings: Optional[Settings] = None):
        self.chain_service = chain_service
        self.settings = settings or get_settings()
        self._status: dict[str, ChainStatus] = {}
        self._task: Optional[asyncio.Task] = None

    @property
    def chain_ids(self) -> list[str]:
        return [chain.id for chain in self.chain_service.registry.chains]

    async def check_chain(self, chain_id: str) -> ChainStatus:
        started = time.monotonic()
        error: Optional[str] = None
        try:
            healthy = await asyncio.wait_for(
                self.chain_service.ping(chain_id), timeout=self.settings.network_check_timeout
            )
        except asyncio.TimeoutError:
            error = f"no response within {self.settings.network_check_timeout:.0f}s"
        except Exception as e:
            error = str(e)
        else:
            if not healthy:
                error = "node reports unhealthy"
        if error is None:
            return ChainStatus(
                chain_id=chain_id,
                reachable=True,
                latency_ms=round((time.monotonic() - started) * 1000, 1),
                checked_at=time.time(),
            )

        logger.warning(f"[{chain_id}] unreachable: {error}")
        return ChainStatus(chain_id=chain_id, reachable=False, error=error, checked_at=time.time())

    async def check_all(self) -> dict[str, ChainStatus]:
        """Check every chain concurrently, then replace the status table."""
        results = await asyncio.gather(*(self.check_chain(chain_id) for chain_id in self.chain_ids))
        self._status = {status.chain_id: status for status in results}
        reachable = sum(1 for status in results if status.reachable)
        logger.debug(f"Network check: {reachable}/{len(results)} chains reachable")
        return self.get_status()

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Check once, then keep checking in the background."""
        if self.is_running:
            return
        await self.check_all()
        self._task = asyncio.create_task(self._loop())

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.settings.network_check_interval)
            await self.check_all()

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    def get_status(self) -> dict[str, ChainStatus]:
        """Snapshot of the latest results."""
        return dict(self._status)

    def is_reachable(self, chain_id: str) -> bool:
        """False until the chain has passed a check."""
        status = self._status.get(chain_id)
        return status is not None and status.reachable
