__all__ = [
    "BaseError",
    "BackendUnavailableError",
    "BadRequestError",
    "CircularReferenceError",
    "CompileError",
    "ConfigurationError",
    "ConflictError",
    "InternalError",
    "LoadError",
    "NotFoundError",
    "NotSupportedError",
    "PreconditionFailedError",
]


class BaseError(Exception):
    status_code: int


class BadRequestError(BaseError):
    status_code = 400


class NotFoundError(BaseError):
    status_code = 404


class ConflictError(BaseError):
    status_code = 409


class PreconditionFailedError(BaseError):
    status_code = 412


class NotSupportedError(BaseError):
    status_code = 415


class BackendUnavailableError(BaseError):
    """Search backend is unreachable or locked."""

    status_code = 503


class CompileError(BaseError):
    """Description could not be translated.

    Compile errors are collected on the compiler and returned
    with the query result. They are not raised to the caller.
    """

    status_code = 400

    code: str = "semindex-query-compile-error"

    def __init__(self, message: str, query: str | None = None):
        super().__init__(message)
        self.message = message
        self.query = query

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "query": self.query,
        }


class CircularReferenceError(CompileError):
    """Concept refers back to itself."""

    code = "semindex-query-condition-circular"


class ConfigurationError(Exception):
    """Index or alias is missing; setup or rebuild is required."""

    status_code = 500


class InternalError(Exception):
    status_code = 500


class LoadError(Exception):
    status_code = 500
