from __future__ import annotations

import re
import time
import unicodedata
from typing import Any

from semindex.core import info, warn
from semindex.core.exceptions import BackendUnavailableError
from semindex.ql import EntityRef, ValueType
from semindex.queue import Queue

from ._collaborators import EntityLookup, IdResolver
from ._config import ElasticConfig
from ._connection import ElasticConnection
from ._field_mapper import FieldMapper
from ._models import ChangeDiff, FieldChangeOp, PropertyInfo
from ._recovery_job import RecoveryJob, RecoveryJobParams
from ._terms_lookup import concept_lookup_id

_LINK_TARGET = re.compile(r"\[\[:[^|]*\|")


class Indexer:
    """Writes entities and change diffs into the data index.

    Every public write first checks that the backend is reachable
    and not locked by a rebuild. Otherwise, or when the backend
    drops during the write, the parameters of the write are handed
    to a recovery job and the call returns False. The plain writes
    `index_entity`, `delete_documents` and `replicate` raise instead
    and are what recovery jobs replay with.
    """

    connection: ElasticConnection
    entities: EntityLookup
    ids: IdResolver
    queue: Queue | None
    config: ElasticConfig
    origin: str

    def __init__(
        self,
        connection: ElasticConnection,
        entities: EntityLookup,
        ids: IdResolver,
        queue: Queue | None = None,
        config: ElasticConfig | None = None,
        origin: str = "",
    ):
        self.connection = connection
        self.entities = entities
        self.ids = ids
        self.queue = queue
        self.config = config or ElasticConfig()
        self.origin = origin

    def setup(self) -> dict[str, str]:
        """Create the data and lookup indices and their aliases.

        Returns:
            Active version index per index type.
        """
        return {
            type: self._setup_index(type)
            for type in (
                ElasticConnection.TYPE_DATA,
                ElasticConnection.TYPE_LOOKUP,
            )
        }

    def drop(self) -> None:
        for type in (
            ElasticConnection.TYPE_DATA,
            ElasticConnection.TYPE_LOOKUP,
        ):
            self._drop_index(type)

    def rollover(self, type: str, version: str) -> str | None:
        """Point the alias of `type` at `version`.

        The other generation is removed and the rebuild lock
        released.

        Args:
            type: Index type.
            version: Generation that becomes active, v1 or v2.

        Returns:
            Name of the deleted generation, if any.
        """
        if version not in ElasticConnection.VERSIONS:
            raise ValueError(f"Unknown index version {version}")
        c = self.connection
        alias = c.get_index_name(type)
        new = c.get_version_name(type, version)
        other = next(v for v in ElasticConnection.VERSIONS if v != version)
        old = c.get_version_name(type, other)

        if not c.index_exists(new):
            c.create_index(new, c.get_index_body(type))
        actions: list[dict] = []
        old_exists = c.index_exists(old)
        if old_exists and old in c.get_alias_targets(alias):
            actions.append({"remove": {"index": old, "alias": alias}})
        actions.append({"add": {"index": new, "alias": alias}})
        c.update_aliases(actions)
        if old_exists:
            c.delete_index(old)
        c.release_lock(type)
        info("Rollover of %s to %s", alias, new)
        return old if old_exists else None

    def _setup_index(self, type: str) -> str:
        c = self.connection
        alias = c.get_index_name(type)
        v1 = c.get_version_name(type, "v1")
        v2 = c.get_version_name(type, "v2")

        # A concrete index under the alias name blocks the alias
        if c.index_exists(alias) and not c.alias_exists(alias):
            c.delete_index(alias)

        # Both generations exist after an unfinished rebuild, v1 wins
        if c.index_exists(v1):
            if c.index_exists(v2):
                c.delete_index(v2)
            version = v1
        elif c.index_exists(v2):
            version = v2
        else:
            c.create_index(v1, c.get_index_body(type))
            version = v1
        c.update_aliases([{"add": {"index": version, "alias": alias}}])
        return version

    def _drop_index(self, type: str) -> None:
        c = self.connection
        alias = c.get_index_name(type)
        for version in ElasticConnection.VERSIONS:
            name = c.get_version_name(type, version)
            if c.index_exists(name):
                c.delete_index(name)
        if c.index_exists(alias) and not c.alias_exists(alias):
            c.delete_index(alias)
        c.release_lock(type)

    def is_safe(self, params: RecoveryJobParams) -> bool:
        """Check the backend before a write.

        Enqueues a recovery job carrying `params` when the backend
        is locked or unreachable.

        Args:
            params: Parameters to replay later.
        """
        if not self.connection.has_lock(
            ElasticConnection.TYPE_DATA
        ) and self.connection.ping():
            return True
        self.defer(params)
        return False

    def defer(self, params: RecoveryJobParams) -> None:
        """Hand a write to a recovery job."""
        if self.queue is None:
            warn("Backend unavailable, no queue to defer %s", params)
            return
        RecoveryJob.enqueue(self.queue, params)
        info("Deferred to recovery job: %s", params.get_subject())

    def create(self, entity: EntityRef) -> bool:
        """Index the subject of an entity.

        Args:
            entity: Entity to index.

        Returns:
            False when the write was deferred.
        """
        params = RecoveryJobParams(create=entity.hash, origin=self.origin)
        if not self.is_safe(params):
            return False
        try:
            self.index_entity(entity)
        except BackendUnavailableError as e:
            warn("Indexing %s failed: %s", entity.hash, e)
            self.defer(params)
            return False
        return True

    def index_entity(self, entity: EntityRef) -> None:
        """Write the subject document of an entity.

        Raises:
            BackendUnavailableError: Backend not reachable.
        """
        self.connection.index(
            index=self.connection.get_index_name(
                ElasticConnection.TYPE_DATA
            ),
            id=self.ids.get_id(entity),
            document={"subject": self._get_subject(entity)},
        )

    def delete(self, ids: list[int], is_concept: bool = False) -> bool:
        """Delete documents.

        Args:
            ids: Document ids.
            is_concept: Whether the ids belong to concepts, whose
                prefetched lookup documents are removed as well.

        Returns:
            False when the write was deferred.
        """
        params = RecoveryJobParams(
            delete=list(ids), is_concept=is_concept, origin=self.origin
        )
        if not self.is_safe(params):
            return False
        try:
            self.delete_documents(ids, is_concept)
        except BackendUnavailableError as e:
            warn("Deleting %s failed: %s", ids, e)
            self.defer(params)
            return False
        return True

    def delete_documents(self, ids: list[int], is_concept: bool) -> None:
        """Delete documents with one bulk request.

        Raises:
            BackendUnavailableError: Backend not reachable.
        """
        start = time.monotonic()
        index = self.connection.get_index_name(ElasticConnection.TYPE_DATA)
        lookup = self.connection.get_index_name(
            ElasticConnection.TYPE_LOOKUP
        )
        operations: list[dict] = []
        for id in ids:
            operations.append({"delete": {"_index": index, "_id": str(id)}})
            if is_concept:
                operations.append(
                    {
                        "delete": {
                            "_index": lookup,
                            "_id": concept_lookup_id(id),
                        }
                    }
                )
        self.connection.bulk(operations)
        info(
            "Deleted: %s, procTime (in sec): %.4f",
            ids,
            time.monotonic() - start,
        )

    def safe_replicate(self, change_diff: ChangeDiff) -> bool:
        """Replicate a change diff unless the backend is unavailable.

        An unavailable backend, found before or during the write,
        saves the diff to the cache for the recovery job.

        Args:
            change_diff: Changes of one update.

        Returns:
            False when the replication was deferred.
        """
        params = RecoveryJobParams(
            replicate=change_diff.subject.hash, origin=self.origin
        )
        if self.is_safe(params):
            try:
                self.replicate(change_diff)
                return True
            except BackendUnavailableError as e:
                warn(
                    "Replicating %s failed: %s", change_diff.subject.hash, e
                )
                self.defer(params)
        change_diff.save(
            self.connection.cache,
            ttl=self.config.replication.change_diff_ttl,
        )
        return False

    def replicate(self, change_diff: ChangeDiff) -> dict:
        """Write a change diff with one bulk request.

        Args:
            change_diff: Changes of one update.

        Returns:
            Bulk response.

        Raises:
            BackendUnavailableError: Backend not reachable.
        """
        start = time.monotonic()
        index = self.connection.get_write_index(ElasticConnection.TYPE_DATA)
        operations = self.map_change_diff(change_diff, index)
        response = self.connection.bulk(operations)
        info(
            "Replicated: %s, procTime (in sec): %.4f",
            change_diff.subject.hash,
            time.monotonic() - start,
        )
        return response

    def map_change_diff(self, change_diff: ChangeDiff, index: str) -> list:
        """Convert a change diff into bulk operations.

        Args:
            change_diff: Changes of one update.
            index: Target index.
        """
        operations: list[dict] = []
        inserts: dict[int, dict[str, Any]] = dict()
        inverted: dict[int, dict[str, Any]] = dict()

        # Embedded objects are not deleted through the entity
        # delete, remove them directly
        for table in change_diff.table_change_ops:
            if not table.is_embedded_object():
                continue
            for op in table.get_field_change_ops("delete"):
                if op.entity_id is None:
                    continue
                operations.append(
                    {"delete": {"_index": index, "_id": str(op.entity_id)}}
                )

        for table in change_diff.data_ops:
            for op in table.get_field_change_ops():
                if op.subject_id is None:
                    continue
                self._map_row(op, change_diff, inserts, inverted)

        for id, update in inverted.items():
            operations.append({"update": {"_index": index, "_id": str(id)}})
            operations.append({"doc": update, "doc_as_upsert": True})
        for id, document in inserts.items():
            operations.append({"index": {"_index": index, "_id": str(id)}})
            operations.append(document)
        return operations

    def _map_row(
        self,
        op: FieldChangeOp,
        change_diff: ChangeDiff,
        inserts: dict[int, dict[str, Any]],
        inverted: dict[int, dict[str, Any]],
    ) -> None:
        sid = op.subject_id
        if sid not in inserts:
            if sid == change_diff.subject_id:
                entity: EntityRef | None = change_diff.subject
            else:
                entity = self.entities.get_entity(sid)
            if entity is None:
                warn("Unknown subject id %s in change diff", sid)
                return
            inserts[sid] = {"subject": self._get_subject(entity)}

        # Rows without property only register the subject
        if op.property_id is None:
            return

        property = change_diff.properties.get(op.property_id)
        document = inserts[sid].setdefault(
            FieldMapper.get_pid(op.property_id), dict()
        )
        for field, value in self._get_field_values(op, property):
            document.setdefault(field, []).append(value)

        if op.entity_id is not None:
            # Minimal document so that inverse queries match objects
            # that have no document of their own
            inverted.setdefault(op.entity_id, {"noop": []})

    def _get_field_values(
        self, op: FieldChangeOp, property: PropertyInfo | None
    ) -> list[tuple[str, Any]]:
        if op.text is not None or op.text_hash is not None:
            value = op.text if op.text is not None else op.text_hash
            if (
                property is not None
                and property.value_type == ValueType.KEYWORD
                and self.config.indexer.keyword_normalize
            ):
                value = FieldMapper.normalize_keyword(op.text_hash or value)
            if not self.config.indexer.raw_text:
                value = self.remove_links(value)
            return [("txtField", value)]
        if op.uri is not None:
            return [("uriField", op.uri)]
        if op.date is not None:
            return [("datField", float(op.date))]
        if op.number is not None:
            return [("numField", float(op.number))]
        if op.boolean is not None:
            return [("booField", bool(op.boolean))]
        if op.geo is not None:
            return [("geoField", op.geo)]
        if op.entity_id is not None:
            entity = self.entities.get_entity(op.entity_id)
            label = entity.get_sortkey() if entity else str(op.entity_id)
            return [
                ("wpgField", label),
                (FieldMapper.ID_FIELD, int(op.entity_id)),
            ]
        return []

    def _get_subject(self, entity: EntityRef) -> dict[str, Any]:
        return {
            "title": entity.text,
            "subobject": entity.subobject,
            "namespace": entity.namespace,
            "interwiki": entity.interwiki,
            "sortkey": clean_sortkey(entity.get_sortkey()),
        }

    @staticmethod
    def remove_links(text: str) -> str:
        """Drop the target of colon links, `[[:A|B]]` becomes `[[B]]`."""
        return _LINK_TARGET.sub("[[", text)


def clean_sortkey(value: str) -> str:
    """Strip control and formatting characters."""
    return "".join(
        ch for ch in value if unicodedata.category(ch) not in ("Cc", "Cf")
    )
