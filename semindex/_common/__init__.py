from .redis_provider import RedisProvider

__all__ = ["RedisProvider"]
