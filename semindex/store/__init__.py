from semindex.core.exceptions import BackendUnavailableError

from .component import ElasticStore

__all__ = ["BackendUnavailableError", "ElasticStore"]
