from typing import Any

import pytest
from common.settings import get_redis_url

from semindex.cache import Cache


class CacheProvider:
    MEMORY = "memory"
    REDIS = "redis"


provider_parameters: dict[str, dict[str, Any]] = {
    CacheProvider.MEMORY: {},
    CacheProvider.REDIS: {"url": get_redis_url()},
}


def get_component(provider_type: str, namespace: str = "test") -> Cache:
    if provider_type == CacheProvider.REDIS and get_redis_url() is None:
        pytest.skip("SEMINDEX_TEST_REDIS_URL not set")
    component = Cache(
        namespace=namespace,
        __provider__=dict(
            type=provider_type,
            parameters=provider_parameters[provider_type],
        ),
    )
    return component
