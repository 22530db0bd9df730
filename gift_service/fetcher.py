"""
Batched usage fetcher

Resolves storage usage for a list of accounts through the usage cache,
falling back to the usage source on a miss. Results keep the input order
and the call returns only after every lookup has settled.
"""
from typing import Dict, List, Optional, Sequence, Tuple
import asyncio
import logging

from .cache import UsageCache
from .config import settings
from .domain.models import Account, UsageEntry, UsageRecord
from .domain.sources import IUsageSource
from .exceptions import GiftServiceException

logger = logging.getLogger(__name__)

STRATEGY_BATCH = "batch"
STRATEGY_POOL = "pool"


class BatchedUsageFetcher:
    """Concurrent cache-or-fetch usage lookups"""

    def __init__(
        self,
        source: IUsageSource,
        cache: UsageCache,
        strategy: str = STRATEGY_POOL,
        batch_size: int = 15,
        concurrency: int = 15,
        timeout: Optional[float] = None,
    ):
        if strategy not in (STRATEGY_BATCH, STRATEGY_POOL):
            raise ValueError(f"Unknown fetch strategy: {strategy}")
        if batch_size < 1 or concurrency < 1:
            raise ValueError("batch_size and concurrency must be at least 1")

        self.source = source
        self.cache = cache
        self.strategy = strategy
        self.batch_size = batch_size
        self.concurrency = concurrency
        self.timeout = timeout

    @classmethod
    def from_settings(cls, source: IUsageSource, cache: UsageCache) -> "BatchedUsageFetcher":
        return cls(
            source,
            cache,
            strategy=settings.USAGE_FETCH_STRATEGY,
            batch_size=settings.USAGE_BATCH_SIZE,
            concurrency=settings.USAGE_CONCURRENCY,
            timeout=settings.USAGE_FETCH_TIMEOUT or None,
        )

    async def fetch(self, accounts: Sequence[Account]) -> List[Optional[UsageEntry]]:
        """
        Fetch usage for accounts

        Args:
            accounts: Accounts in ranking order, typically one social graph page

        Returns:
            One entry per input position. None for accounts missing display
            fields, an entry with usage None when the lookup failed.
        """
        results: List[Optional[UsageEntry]] = [None] * len(accounts)
        work: List[Tuple[int, Account]] = []
        for index, account in enumerate(accounts):
            if account.is_complete:
                work.append((index, account))
            else:
                logger.warning(f"Skipping account {account.account_id}: missing name, handle or avatar")

        in_flight: Dict[int, "asyncio.Future[Optional[UsageRecord]]"] = {}

        if self.strategy == STRATEGY_BATCH:
            await self._run_batches(work, results, in_flight)
        else:
            await self._run_pool(work, results, in_flight)

        logger.info(
            f"Resolved usage for {sum(1 for r in results if r and r.usage)} of {len(accounts)} accounts"
        )
        return results

    async def _run_batches(self, work, results, in_flight):
        """Issue fixed-size groups, waiting for each group before the next"""
        for start in range(0, len(work), self.batch_size):
            group = work[start:start + self.batch_size]
            records = await asyncio.gather(
                *(self._resolve(account.account_id, in_flight) for _, account in group)
            )
            for (index, account), record in zip(group, records):
                results[index] = UsageEntry(account=account, usage=record)

    async def _run_pool(self, work, results, in_flight):
        """Drain a shared queue with a fixed number of workers"""
        queue: "asyncio.Queue[Tuple[int, Account]]" = asyncio.Queue()
        for item in work:
            queue.put_nowait(item)

        async def worker():
            while True:
                try:
                    index, account = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                record = await self._resolve(account.account_id, in_flight)
                results[index] = UsageEntry(account=account, usage=record)

        workers = min(self.concurrency, len(work))
        await asyncio.gather(*(worker() for _ in range(workers)))

    async def _resolve(self, account_id: int, in_flight) -> Optional[UsageRecord]:
        """Share one lookup between duplicate ids within a call"""
        future = in_flight.get(account_id)
        if future is None:
            future = asyncio.ensure_future(self._lookup(account_id))
            in_flight[account_id] = future
        return await future

    async def _lookup(self, account_id: int) -> Optional[UsageRecord]:
        cached = await self.cache.get(account_id)
        if cached is not None:
            return cached

        try:
            if self.timeout:
                record = await asyncio.wait_for(self.source.get_usage(account_id), self.timeout)
            else:
                record = await self.source.get_usage(account_id)
        except asyncio.TimeoutError:
            logger.warning(f"Usage fetch for account {account_id} timed out after {self.timeout}s")
            return None
        except GiftServiceException as e:
            logger.error(f"Usage fetch for account {account_id} failed: {e.code}: {e.message}")
            return None
        except Exception:
            logger.exception(f"Unexpected error fetching usage for account {account_id}")
            return None

        await self.cache.put(account_id, record)
        return record
