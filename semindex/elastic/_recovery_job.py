from __future__ import annotations

import time
from enum import Enum
from typing import TYPE_CHECKING, Any

from elasticsearch import ApiError

from semindex.core import DataModel, info, warn
from semindex.core.exceptions import BackendUnavailableError, BadRequestError
from semindex.ql import EntityRef
from semindex.queue import MessageItem, Queue

from ._config import ReplicationConfig
from ._connection import ElasticConnection
from ._models import ChangeDiff

if TYPE_CHECKING:
    from ._indexer import Indexer


class RecoveryJobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    REQUEUED = "requeued"
    GIVEN_UP = "given_up"
    FAILED = "failed"


class RecoveryJobParams(DataModel):
    """Parameters of a deferred write.

    Exactly one of `delete`, `create` and `replicate` is set.
    """

    delete: list[int] | None = None
    """Ids of the documents to delete."""

    is_concept: bool = False
    """Whether the deleted ids are concepts."""

    create: str | None = None
    """Hash of the entity to index."""

    replicate: str | None = None
    """Hash of the subject whose change diff is cached."""

    retry_count: int = 0
    created_at: float | None = None
    origin: str = ""

    def get_subject(self) -> str:
        if self.delete is not None:
            return f"delete:{self.delete}"
        if self.create is not None:
            return f"create:{self.create}"
        return f"replicate:{self.replicate}"


class RecoveryJob:
    """Retries a deferred write once the backend is back.

    A job that still finds the backend unavailable enqueues a new
    job with an incremented retry count and a fixed delay. After
    the retry budget is spent the job gives up silently. Replays
    are plain upserts and deletes, running one twice is harmless.
    """

    TYPE = "semindex.elastic.recovery"

    params: RecoveryJobParams
    indexer: Indexer
    queue: Queue
    config: ReplicationConfig
    status: RecoveryJobStatus

    def __init__(
        self,
        params: RecoveryJobParams,
        indexer: Indexer,
        queue: Queue,
        config: ReplicationConfig | None = None,
    ):
        self.params = params
        self.indexer = indexer
        self.queue = queue
        self.config = config or ReplicationConfig()
        self.status = RecoveryJobStatus.QUEUED

    @staticmethod
    def to_message(params: RecoveryJobParams) -> dict[str, Any]:
        return {
            "type": RecoveryJob.TYPE,
            "params": params.model_dump(mode="json"),
        }

    @staticmethod
    def from_message(value: Any) -> RecoveryJobParams:
        if (
            not isinstance(value, dict)
            or value.get("type") != RecoveryJob.TYPE
        ):
            raise BadRequestError(f"Not a recovery job message: {value!r}")
        return RecoveryJobParams.from_dict(value["params"])

    @staticmethod
    def enqueue(
        queue: Queue,
        params: RecoveryJobParams,
        delay: float | None = None,
    ) -> MessageItem:
        """Put a job into the queue without waiting for it.

        Args:
            queue: Job queue.
            params: Job parameters.
            delay: Seconds before the job becomes visible.
        """
        return queue.put(
            value=RecoveryJob.to_message(params),
            config={"delay": delay},
        ).result

    def insert(self, delay: float | None = None) -> MessageItem:
        return RecoveryJob.enqueue(self.queue, self.params, delay)

    def run(self) -> RecoveryJobStatus:
        """Run the job.

        Returns:
            Terminal status of this job instance.
        """
        self.status = RecoveryJobStatus.RUNNING
        connection = self.indexer.connection
        locked = connection.has_lock(ElasticConnection.TYPE_DATA)
        if locked or not connection.ping():
            # A rebuild is not a failure, wait for it with a full budget
            if locked:
                self.params = self.params.copy(update={"retry_count": 0})
            self.status = self._requeue()
            return self.status

        try:
            self._replay()
        except BackendUnavailableError as e:
            # Lost the backend after the check, the write is retried
            warn("Recovery job interrupted: %s", e)
            self.status = self._requeue()
            return self.status
        self.status = RecoveryJobStatus.SUCCEEDED
        return self.status

    def _replay(self) -> None:
        params = self.params
        if params.delete is not None:
            self.indexer.delete_documents(params.delete, params.is_concept)
        if params.create is not None:
            self.indexer.index_entity(EntityRef.from_hash(params.create))
        if params.replicate is None:
            return
        change_diff = ChangeDiff.fetch(
            self.indexer.connection.cache,
            EntityRef.from_hash(params.replicate),
        )
        if change_diff is None:
            warn("No change diff cached for %s", params.replicate)
            return
        self.indexer.replicate(change_diff)

    def _requeue(self) -> RecoveryJobStatus:
        if self.params.retry_count >= self.config.recovery_job_retries:
            warn(
                "Recovery job gave up after %d retries: %s",
                self.params.retry_count,
                self.params.get_subject(),
            )
            return RecoveryJobStatus.GIVEN_UP
        params = self.params.copy(
            update={
                "retry_count": self.params.retry_count + 1,
                "created_at": self.params.created_at or time.time(),
            }
        )
        RecoveryJob.enqueue(
            self.queue, params, delay=self.config.recovery_job_delay
        )
        info(
            "Recovery job requeued (%d): %s",
            params.retry_count,
            params.get_subject(),
        )
        return RecoveryJobStatus.REQUEUED


class RecoveryJobRunner:
    """Pulls due recovery jobs and runs them."""

    def __init__(
        self,
        queue: Queue,
        indexer: Indexer,
        config: ReplicationConfig | None = None,
    ):
        self.queue = queue
        self.indexer = indexer
        self.config = config or ReplicationConfig()

    def run(self, max_count: int = 10) -> list[RecoveryJobStatus]:
        """Run the jobs that are due.

        Args:
            max_count: Maximum number of jobs to run.

        Returns:
            Status of every job run.
        """
        items = self.queue.pull(config={"max_count": max_count}).result
        statuses = []
        for item in items:
            try:
                params = RecoveryJob.from_message(item.value)
            except BadRequestError as e:
                warn("Dropping message %s: %s", item.key, e)
                self.queue.ack(key=item.key)
                continue
            job = RecoveryJob(params, self.indexer, self.queue, self.config)
            try:
                statuses.append(job.run())
            except ApiError as e:
                # Result level failures are not retried
                warn("Recovery job failed: %s", e)
                statuses.append(RecoveryJobStatus.FAILED)
            finally:
                self.queue.ack(key=item.key)
        return statuses
