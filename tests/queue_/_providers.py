from typing import Any

import pytest
from common.settings import get_redis_url

from semindex.queue import Queue


class QueueProvider:
    MEMORY = "memory"
    REDIS = "redis"


provider_parameters: dict[str, dict[str, Any]] = {
    QueueProvider.MEMORY: {},
    QueueProvider.REDIS: {"url": get_redis_url()},
}


def get_component(provider_type: str, visibility_timeout: float = 30):
    if provider_type == QueueProvider.REDIS and get_redis_url() is None:
        pytest.skip("SEMINDEX_TEST_REDIS_URL not set")
    component = Queue(
        queue="semindex-test",
        visibility_timeout=visibility_timeout,
        __provider__=dict(
            type=provider_type,
            parameters=provider_parameters[provider_type],
        ),
    )
    return component
