from __future__ import annotations

import json
import os
from typing import Any

import yaml

from semindex.core import DataModel
from semindex.core.exceptions import BadRequestError


class QueryConfig(DataModel):
    """Compiler and engine switches."""

    constant_score: bool = True
    """Wrap filter only queries in constant_score."""

    sort_property_exists: bool = True
    """Require documents to carry the properties they are sorted by."""

    must_not_property_exists: bool = True
    """Require the property to exist for negated value conditions
    inside a disjunction."""

    text_case_insensitive: bool = False
    """Use phrase matching on analyzed fields for text equality."""

    uri_case_insensitive: bool = False
    """Use the lowercase sub-field for URI matching."""

    boolean_operators: bool = True
    """Allow query_string boolean operators (+, -) in like values."""

    wide_proximity_fields: list[str] = ["text_all"]
    """Fields used by `~` prefixed full-text values without property."""

    wide_proximity_as_match_phrase: bool = True
    """Quote wide proximity values that contain no wildcard."""

    concept_terms_lookup: bool = True
    """Materialize concept results through the terms lookup."""

    hierarchy_depth: int | None = None
    """Default category/property hierarchy depth, None for unlimited."""

    profile: bool = False
    """Request a profile of the search."""

    debug_description_log: bool = False
    """Record description metrics while compiling."""

    no_connection_fallback: bool = False
    """Fall back to the alternate engine when the backend is down."""

    score_sortfield: str = "es.score"
    """Sort key that maps onto the relevance score."""


class SubqueryConfig(DataModel):
    """Terms lookup settings."""

    terms_lookup_result_size_index_write_threshold: int = 100
    """Result count at or above which ids are persisted
    as a lookup document."""

    size: int = 100
    """Result size of an intermediate query."""

    terms_lookup_cache_lifetime: float = 60
    """Cache lifetime of a lookup in seconds."""

    constant_score: bool = True
    """Wrap materialized terms in constant_score."""

    concept_terms_lookup_result_size_index_write_threshold: int = 100
    """Member count at or above which a prefetched concept is
    persisted as a lookup document."""

    concept_terms_lookup_cache_lifetime: float = 60
    """Cache lifetime of a prefetched concept in seconds."""


class IndexerConfig(DataModel):
    raw_text: bool = False
    """Keep wiki link markup in text values."""

    keyword_normalize: bool = True
    """Normalize keyword typed text values."""


class ReplicationConfig(DataModel):
    recovery_job_retries: int = 5
    """Maximum requeues of a recovery job."""

    recovery_job_delay: float = 600
    """Delay in seconds before a requeued recovery job runs."""

    change_diff_ttl: float = 86400
    """Cache lifetime of a change diff captured for recovery."""


class IndexConfig(DataModel):
    prefix: str = "semindex"
    """Prefix of the data and lookup index names."""

    settings: dict[str, Any] = dict()
    """Extra index settings merged into the defaults."""

    mappings: dict[str, Any] = dict()
    """Extra data index mappings merged into the defaults."""


class ElasticConfig(DataModel):
    """Configuration of the Elasticsearch subsystem."""

    query: QueryConfig = QueryConfig()
    subquery: SubqueryConfig = SubqueryConfig()
    indexer: IndexerConfig = IndexerConfig()
    replication: ReplicationConfig = ReplicationConfig()
    index: IndexConfig = IndexConfig()

    @staticmethod
    def load(config: str | dict | ElasticConfig | None) -> ElasticConfig:
        """Load config from a model, a dict, a JSON/YAML string or a file.

        Args:
            config: Config source. None gives the defaults.
        """
        if config is None:
            return ElasticConfig()
        if isinstance(config, ElasticConfig):
            return config
        if isinstance(config, dict):
            return ElasticConfig.from_dict(config)
        return ElasticConfig.from_yaml(config)

    @staticmethod
    def from_yaml(source: str) -> ElasticConfig:
        if os.path.isfile(source):
            with open(source, "r", encoding="utf-8") as f:
                source = f.read()
        try:
            data = yaml.safe_load(source)
        except yaml.YAMLError as e:
            raise BadRequestError(f"Invalid config: {e}") from e
        if data is None:
            return ElasticConfig()
        if not isinstance(data, dict):
            raise BadRequestError("Config must be a mapping")
        return ElasticConfig.from_dict(data)

    def to_yaml(self) -> str:
        return yaml.safe_dump(json.loads(self.to_json()), sort_keys=False)
