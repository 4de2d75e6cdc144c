from semindex.core.exceptions import NotFoundError

from .component import Cache

__all__ = ["Cache", "NotFoundError"]
