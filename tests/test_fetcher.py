import asyncio
import random

import pytest

from gift_service.exceptions import MalformedRecordError, UpstreamUnavailableError
from gift_service.fetcher import BatchedUsageFetcher

from conftest import FakeUsageSource, make_account, make_usage


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", ["batch", "pool"])
@pytest.mark.parametrize("size", [1, 4, 15, 50])
async def test_fetch_preserves_input_order(cache, strategy, size):
    ids = list(range(1, 41))
    rng = random.Random(size)
    source = FakeUsageSource(
        {i: make_usage(100, i) for i in ids},
        delays={i: rng.uniform(0, 0.01) for i in ids},
    )
    fetcher = BatchedUsageFetcher(source, cache, strategy=strategy, batch_size=size, concurrency=size)

    results = await fetcher.fetch([make_account(i) for i in ids])

    assert len(results) == len(ids)
    assert [entry.account.account_id for entry in results] == ids
    assert [entry.usage.casts.used for entry in results] == ids


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", ["batch", "pool"])
async def test_second_fetch_is_served_from_cache(cache, strategy):
    ids = [5, 6, 7, 8]
    source = FakeUsageSource({i: make_usage(10, 1) for i in ids})
    fetcher = BatchedUsageFetcher(source, cache, strategy=strategy, batch_size=3)
    accounts = [make_account(i) for i in ids]

    await fetcher.fetch(accounts)
    assert sorted(source.calls) == ids

    source.calls.clear()
    second = await fetcher.fetch(accounts)

    assert source.calls == []
    assert all(entry.usage is not None for entry in second)


@pytest.mark.asyncio
async def test_duplicate_ids_share_one_lookup(cache):
    source = FakeUsageSource({1: make_usage(10, 1)}, delays={1: 0.01})
    fetcher = BatchedUsageFetcher(source, cache, strategy="pool", concurrency=4)

    results = await fetcher.fetch([make_account(1)] * 4)

    assert source.calls == [1]
    assert all(entry.usage == make_usage(10, 1) for entry in results)


@pytest.mark.asyncio
async def test_incomplete_accounts_yield_none_without_fetching(cache):
    source = FakeUsageSource({1: make_usage(10, 1), 3: make_usage(10, 2)})
    fetcher = BatchedUsageFetcher(source, cache)
    accounts = [
        make_account(1),
        make_account(2, avatar_url=None),
        make_account(3),
        make_account(4, display_name=""),
    ]

    results = await fetcher.fetch(accounts)

    assert results[1] is None
    assert results[3] is None
    assert results[0].usage is not None and results[2].usage is not None
    assert sorted(source.calls) == [1, 3]


@pytest.mark.asyncio
@pytest.mark.parametrize("strategy", ["batch", "pool"])
async def test_failed_fetch_does_not_abort_batch(cache, caplog, strategy):
    source = FakeUsageSource(
        {
            1: make_usage(10, 1),
            2: UpstreamUnavailableError("down"),
            3: MalformedRecordError("bad"),
            4: RuntimeError("boom"),
            5: make_usage(10, 5),
        }
    )
    fetcher = BatchedUsageFetcher(source, cache, strategy=strategy, batch_size=2)

    with caplog.at_level("ERROR"):
        results = await fetcher.fetch([make_account(i) for i in range(1, 6)])

    assert [entry.usage is not None for entry in results] == [True, False, False, False, True]
    assert "account 2" in caplog.text
    assert "account 4" in caplog.text


@pytest.mark.asyncio
async def test_failed_fetch_is_not_cached(cache):
    source = FakeUsageSource({1: UpstreamUnavailableError("down")})
    fetcher = BatchedUsageFetcher(source, cache)

    await fetcher.fetch([make_account(1)])
    source.records[1] = make_usage(10, 3)
    results = await fetcher.fetch([make_account(1)])

    assert source.calls == [1, 1]
    assert results[0].usage == make_usage(10, 3)


@pytest.mark.asyncio
async def test_slow_fetch_times_out_as_missing_usage(cache):
    source = FakeUsageSource(
        {1: make_usage(10, 1), 2: make_usage(10, 2)},
        delays={2: 1.0},
    )
    fetcher = BatchedUsageFetcher(source, cache, timeout=0.05)

    results = await fetcher.fetch([make_account(1), make_account(2)])

    assert results[0].usage == make_usage(10, 1)
    assert results[1].usage is None
    assert await cache.get(2) is None


@pytest.mark.asyncio
async def test_pool_caps_concurrent_fetches(cache):
    ids = list(range(30))
    source = FakeUsageSource({i: make_usage(5, 1) for i in ids}, delays={i: 0.005 for i in ids})
    fetcher = BatchedUsageFetcher(source, cache, strategy="pool", concurrency=4)

    await fetcher.fetch([make_account(i) for i in ids])

    assert source.max_active == 4


@pytest.mark.asyncio
async def test_batch_waits_for_each_group(cache):
    ids = list(range(10))
    source = FakeUsageSource({i: make_usage(5, 1) for i in ids}, delays={i: 0.005 for i in ids})
    fetcher = BatchedUsageFetcher(source, cache, strategy="batch", batch_size=3)

    await fetcher.fetch([make_account(i) for i in ids])

    assert source.max_active == 3
    assert source.calls[:3] == [0, 1, 2]


@pytest.mark.asyncio
async def test_empty_input_returns_empty_list(cache):
    fetcher = BatchedUsageFetcher(FakeUsageSource({}), cache)

    assert await fetcher.fetch([]) == []


def test_rejects_unknown_strategy(cache):
    with pytest.raises(ValueError):
        BatchedUsageFetcher(FakeUsageSource({}), cache, strategy="stream")
