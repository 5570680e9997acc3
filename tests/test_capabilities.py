import asyncio

from batterywarn.notify.capabilities import CapabilityCache
from batterywarn.notify.models import CapabilitySnapshot
from batterywarn.notify.protocols import ErrorSimulatingChannel, MockNotificationChannel


def test_snapshot_from_capabilities() -> None:
    assert CapabilitySnapshot.from_capabilities({"actions", "body"}).actions_supported is True
    assert CapabilitySnapshot.from_capabilities({"body"}).actions_supported is False


def test_query_is_memoized() -> None:
    channel = MockNotificationChannel(capabilities={"actions"})
    cache = CapabilityCache(channel)
    assert cache.cached is None

    async def scenario() -> list[CapabilitySnapshot]:
        return list(await asyncio.gather(cache.get(), cache.get(), cache.get()))

    snapshots = asyncio.run(scenario())

    assert channel.capability_queries == 1
    assert all(s.actions_supported for s in snapshots)
    assert cache.cached == CapabilitySnapshot(actions_supported=True)


def test_failure_is_cached_as_unsupported() -> None:
    channel = ErrorSimulatingChannel(fail_on_methods=["query_capabilities"])
    cache = CapabilityCache(channel)

    async def scenario() -> None:
        await cache.get()
        await cache.get()

    asyncio.run(scenario())

    assert channel.capability_queries == 1
    assert cache.cached == CapabilitySnapshot(actions_supported=False)
