# type: ignore
import asyncio
import time

import pytest

from semindex.queue import MessageItem, NotFoundError

from ._data import messages
from ._providers import QueueProvider
from ._sync_and_async_client import QueueSyncAndAsyncClient

providers = [
    QueueProvider.MEMORY,
    QueueProvider.REDIS,
]


async def wait(async_call: bool, seconds: float):
    if async_call:
        await asyncio.sleep(seconds)
    else:
        time.sleep(seconds)


def assert_message(item: MessageItem, message: dict):
    assert item.key is not None
    assert item.value == message["value"]
    assert item.metadata == message["metadata"]
    assert item.properties.delivery_count == 1


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider_type",
    providers,
)
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_put_pull(provider_type: str, async_call: bool):
    client = QueueSyncAndAsyncClient(
        provider_type=provider_type, async_call=async_call
    )
    await client.purge()

    res = await client.pull()
    assert len(res.result) == 0

    for message in messages:
        await client.put(**message)
        res = await client.pull()
        assert len(res.result) == 1
        assert_message(res.result[0], message)
        await client.ack(key=res.result[0].key)

    # ack twice
    with pytest.raises(NotFoundError):
        await client.ack(key=res.result[0].key)

    res = await client.get_queue()
    assert res.result.active_message_count == 0
    assert res.result.inflight_message_count == 0
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider_type",
    providers,
)
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_delay(provider_type: str, async_call: bool):
    client = QueueSyncAndAsyncClient(
        provider_type=provider_type, async_call=async_call
    )
    await client.purge()

    await client.put(value="later", config={"delay": 1})
    res = await client.pull()
    assert len(res.result) == 0

    res = await client.get_queue()
    assert res.result.scheduled_message_count == 1

    await wait(async_call, 1.5)
    res = await client.pull()
    assert len(res.result) == 1
    assert res.result[0].value == "later"
    await client.ack(key=res.result[0].key)
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider_type",
    providers,
)
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_visibility_timeout(provider_type: str, async_call: bool):
    client = QueueSyncAndAsyncClient(
        provider_type=provider_type,
        async_call=async_call,
        visibility_timeout=1,
    )
    await client.purge()

    await client.put(value="redeliver")
    res = await client.pull()
    assert len(res.result) == 1

    # invisible while in flight
    res = await client.pull()
    assert len(res.result) == 0

    await wait(async_call, 1.5)
    res = await client.pull()
    assert len(res.result) == 1
    assert res.result[0].properties.delivery_count == 2
    await client.ack(key=res.result[0].key)
    await client.close()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "provider_type",
    providers,
)
@pytest.mark.parametrize(
    "async_call",
    [False, True],
)
async def test_pull_max_count(provider_type: str, async_call: bool):
    client = QueueSyncAndAsyncClient(
        provider_type=provider_type, async_call=async_call
    )
    await client.purge()
    for message in messages:
        await client.put(**message)

    res = await client.pull(config={"max_count": 2})
    assert len(res.result) == 2
    res = await client.pull(config={"max_count": 10})
    assert len(res.result) == 1

    await client.purge()
    res = await client.get_queue()
    assert res.result.inflight_message_count == 0
    await client.close()
