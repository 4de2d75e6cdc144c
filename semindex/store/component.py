from __future__ import annotations

from typing import Any

from semindex.core import Component, Response, operation
from semindex.elastic import (
    ChangeDiff,
    Query,
    QueryResult,
    RecoveryJobStatus,
)
from semindex.ql import EntityRef


class ElasticStore(Component):
    """Semantic query and replication store.

    Answers description queries and keeps the search backend in
    sync with entity changes. Writes that cannot reach the
    backend are deferred to recovery jobs.
    """

    def __init__(self, **kwargs):
        """Initialize."""
        super().__init__(**kwargs)

    @operation()
    def query(
        self,
        query: dict | Query,
        **kwargs: Any,
    ) -> Response[QueryResult]:
        """Execute a description query.

        Args:
            query: Query request.

        Returns:
            Query result. Compile errors are reported in the result.

        Raises:
            BackendUnavailableError:
                Backend not reachable and no fallback configured.
        """
        raise NotImplementedError

    @operation()
    def replicate(
        self,
        change_diff: dict | ChangeDiff,
        **kwargs: Any,
    ) -> Response[bool]:
        """Replicate the changes of one update.

        Args:
            change_diff: Change diff of the update.

        Returns:
            False when the write was deferred to a recovery job.
        """
        raise NotImplementedError

    @operation()
    def create(
        self,
        entity: dict | EntityRef,
        **kwargs: Any,
    ) -> Response[bool]:
        """Index the subject of an entity.

        Args:
            entity: Entity to index.

        Returns:
            False when the write was deferred to a recovery job.
        """
        raise NotImplementedError

    @operation()
    def delete(
        self,
        ids: list[int],
        is_concept: bool = False,
        **kwargs: Any,
    ) -> Response[bool]:
        """Delete documents.

        Args:
            ids: Document ids.
            is_concept: Whether the ids belong to concepts.

        Returns:
            False when the write was deferred to a recovery job.
        """
        raise NotImplementedError

    @operation()
    def setup(self, **kwargs: Any) -> Response[dict[str, str]]:
        """Create the indices and aliases.

        Returns:
            Active version index per index type.
        """
        raise NotImplementedError

    @operation()
    def drop(self, **kwargs: Any) -> Response[None]:
        """Delete the indices and release the locks."""
        raise NotImplementedError

    @operation()
    def rollover(
        self,
        type: str,
        version: str,
        **kwargs: Any,
    ) -> Response[str | None]:
        """Point an index alias at a new generation.

        Args:
            type: Index type, data or lookup.
            version: Generation to activate, v1 or v2.

        Returns:
            Name of the removed generation, if any.
        """
        raise NotImplementedError

    @operation()
    def run_recovery_jobs(
        self,
        max_count: int = 10,
        **kwargs: Any,
    ) -> Response[list[RecoveryJobStatus]]:
        """Run due recovery jobs.

        Args:
            max_count: Maximum number of jobs to run.

        Returns:
            Status of every job run.
        """
        raise NotImplementedError

    @operation()
    def close(self, **kwargs: Any) -> Response[None]:
        """Close the client."""
        raise NotImplementedError

    @operation()
    async def aquery(
        self,
        query: dict | Query,
        **kwargs: Any,
    ) -> Response[QueryResult]:
        raise NotImplementedError

    @operation()
    async def areplicate(
        self,
        change_diff: dict | ChangeDiff,
        **kwargs: Any,
    ) -> Response[bool]:
        raise NotImplementedError

    @operation()
    async def acreate(
        self,
        entity: dict | EntityRef,
        **kwargs: Any,
    ) -> Response[bool]:
        raise NotImplementedError

    @operation()
    async def adelete(
        self,
        ids: list[int],
        is_concept: bool = False,
        **kwargs: Any,
    ) -> Response[bool]:
        raise NotImplementedError

    @operation()
    async def asetup(self, **kwargs: Any) -> Response[dict[str, str]]:
        raise NotImplementedError

    @operation()
    async def adrop(self, **kwargs: Any) -> Response[None]:
        raise NotImplementedError

    @operation()
    async def arollover(
        self,
        type: str,
        version: str,
        **kwargs: Any,
    ) -> Response[str | None]:
        raise NotImplementedError

    @operation()
    async def arun_recovery_jobs(
        self,
        max_count: int = 10,
        **kwargs: Any,
    ) -> Response[list[RecoveryJobStatus]]:
        raise NotImplementedError

    @operation()
    async def aclose(self, **kwargs: Any) -> Response[None]:
        raise NotImplementedError
