from __future__ import annotations

import copy

from ._config import IndexConfig

_SORT = {"type": "keyword", "normalizer": "sort_normalizer"}
_KEYWORD = {"type": "keyword", "ignore_above": 500}


def _text(copy_to: str | None = None, **subfields: dict) -> dict:
    mapping: dict = {
        "type": "text",
        "fields": {"keyword": _KEYWORD, "sort": _SORT, **subfields},
    }
    if copy_to:
        mapping["copy_to"] = copy_to
    return mapping


def _template(name: str, field: str, mapping: dict) -> dict:
    return {name: {"path_match": f"P:*.{field}", "mapping": mapping}}


class IndexMappings:
    """Settings and mappings of the data and lookup indices."""

    @staticmethod
    def data(config: IndexConfig) -> dict:
        settings = {
            "analysis": {
                "normalizer": {
                    "sort_normalizer": {
                        "type": "custom",
                        "filter": ["lowercase", "asciifolding"],
                    },
                    "lowercase_normalizer": {
                        "type": "custom",
                        "filter": ["lowercase"],
                    },
                }
            },
        }
        mappings = {
            "dynamic_templates": [
                _template("txt", "txtField", _text(copy_to="text_all")),
                _template("wpg", "wpgField", _text()),
                _template("wpg_id", "wpgID", {"type": "long"}),
                _template(
                    "uri",
                    "uriField",
                    _text(
                        lowercase={
                            "type": "keyword",
                            "normalizer": "lowercase_normalizer",
                        }
                    ),
                ),
                _template("num", "numField", {"type": "double"}),
                _template("dat", "datField", {"type": "double"}),
                _template("boo", "booField", {"type": "boolean"}),
                _template(
                    "geo",
                    "geoField",
                    {
                        "type": "keyword",
                        "fields": {"point": {"type": "geo_point"}},
                    },
                ),
            ],
            "properties": {
                "subject": {
                    "properties": {
                        "title": _text(),
                        "subobject": _text(),
                        "namespace": {"type": "long"},
                        "interwiki": {"type": "keyword"},
                        "sortkey": _text(),
                    }
                },
                "text_all": {"type": "text"},
            },
        }
        return {
            "settings": _merge(settings, config.settings),
            "mappings": _merge(mappings, config.mappings),
        }

    @staticmethod
    def lookup(config: IndexConfig) -> dict:
        return {
            "settings": copy.deepcopy(config.settings),
            "mappings": {
                "dynamic": False,
                "properties": {"id": {"type": "long"}},
            },
        }


def _merge(base: dict, override: dict) -> dict:
    result = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result
