import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pytest

# Ensure the service package is importable when tests run from the repo root
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from gift_service.cache import InMemoryUsageCache
from gift_service.domain.models import Account, ResourceUsage, UsageRecord
from gift_service.domain.sources import IAccountLookup, ISocialGraphSource, IUsageSource
from gift_service.fetcher import BatchedUsageFetcher
from gift_service.pagination import PageCursorCodec
from gift_service.service import SelectionService


def make_account(account_id: int, **overrides) -> Account:
    fields = {
        "display_name": f"User {account_id}",
        "username": f"user{account_id}",
        "avatar_url": f"https://img.example/{account_id}.png",
    }
    fields.update(overrides)
    return Account(account_id=account_id, **fields)


def make_usage(capacity: int, used: int) -> UsageRecord:
    """Put all storage in casts, leaving empty reactions and links"""
    return UsageRecord(
        casts=ResourceUsage(capacity=capacity, used=used),
        reactions=ResourceUsage(capacity=0, used=0),
        links=ResourceUsage(capacity=0, used=0),
    )


class FakeUsageSource(IUsageSource):
    def __init__(
        self,
        records: Dict[int, Union[UsageRecord, Exception]],
        delays: Optional[Dict[int, float]] = None,
    ):
        self.records = records
        self.delays = delays or {}
        self.calls: List[int] = []
        self.active = 0
        self.max_active = 0

    async def get_usage(self, account_id: int) -> UsageRecord:
        self.calls.append(account_id)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(account_id, 0))
            result = self.records[account_id]
        finally:
            self.active -= 1
        if isinstance(result, Exception):
            raise result
        return result


class FakeGraphSource(ISocialGraphSource, IAccountLookup):
    def __init__(self, following: Sequence[Account], error: Optional[Exception] = None):
        self.following = list(following)
        self.error = error
        self.calls: List[tuple] = []

    async def get_following(self, account_id: int, limit: int) -> List[Account]:
        self.calls.append((account_id, limit))
        if self.error:
            raise self.error
        return self.following[:limit]

    async def get_accounts(self, account_ids: Sequence[int]) -> List[Account]:
        wanted = set(account_ids)
        return [account for account in self.following if account.account_id in wanted]


@pytest.fixture
def cache():
    return InMemoryUsageCache(max_entries=100)


@pytest.fixture
def cursor_codec():
    return PageCursorCodec(secret_key="test-secret", algorithm="HS256")


@pytest.fixture
def scenario_accounts():
    """A needs 10, B has 40 left, C is exactly full"""
    return [make_account(1), make_account(2), make_account(3)]


@pytest.fixture
def scenario_usage():
    return {
        1: make_usage(100, 90),
        2: make_usage(50, 10),
        3: make_usage(30, 30),
    }


@pytest.fixture
def build_service(cache, cursor_codec):
    def _build(graph: FakeGraphSource, usage: FakeUsageSource, **kwargs) -> SelectionService:
        fetcher = BatchedUsageFetcher(usage, cache, strategy=kwargs.pop("strategy", "pool"))
        return SelectionService(
            graph_source=graph,
            account_lookup=graph,
            fetcher=fetcher,
            cursor_codec=cursor_codec,
            **kwargs,
        )

    return _build
