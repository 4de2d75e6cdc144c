from __future__ import annotations

from typing import Any
from urllib.parse import unquote

from semindex.core import debug
from semindex.core.exceptions import (
    BadRequestError,
    CircularReferenceError,
    CompileError,
    InternalError,
)
from semindex.ql import (
    Boolean,
    ClassDescription,
    Comparator,
    ConceptDescription,
    Conjunction,
    Description,
    DescriptionParser,
    Disjunction,
    EntityRef,
    GeoArea,
    GeoCoord,
    NamespaceDescription,
    Number,
    Property,
    SomeProperty,
    Text,
    ThingDescription,
    Time,
    Uri,
    ValueDescription,
    ValueType,
)

from ._collaborators import ConceptLookup, HierarchyLookup, IdResolver
from ._config import QueryConfig
from ._field_mapper import FieldMapper
from ._terms_lookup import TermsLookup

# Position of a node in the description tree, child indexes from the root
Path = tuple[int, ...]

NEGATED_COMPARATORS = (Comparator.NEQ, Comparator.NLIKE)


class CompileContext:
    """State of a single compile.

    Attributes:
        errors: Compile errors, in the order they were found.
        query_info: Diagnostics of the executed subqueries.
        description_log: Visited nodes, when the description log
            is enabled.
        must_exist: Fields that must exist for a negated member of
            a disjunction, keyed by the member position.
        concepts: Hashes of the concepts being expanded.
        sort_fields: Fields the result is sorted by.
        is_constant_score: Whether scoring can be dropped.
    """

    errors: list[CompileError]
    query_info: list[dict[str, Any]]
    description_log: list[dict[str, Any]]
    must_exist: dict[Path, str]
    concepts: list[str]
    sort_fields: list[str]
    is_constant_score: bool

    def __init__(
        self,
        sort_fields: list[str] | None = None,
        is_constant_score: bool = True,
    ):
        self.errors = []
        self.query_info = []
        self.description_log = []
        self.must_exist = dict()
        self.concepts = []
        self.sort_fields = list(sort_fields or [])
        self.is_constant_score = is_constant_score

    def add_error(self, error: CompileError) -> None:
        debug("Compile error: %s", error.message)
        self.errors.append(error)


class QueryBuilder:
    """Compiles a description tree into an Elasticsearch query.

    One method per description variant, dispatched on the
    description type. The builder holds configuration and
    collaborators only. Everything collected while compiling lives
    on the `CompileContext` of the call, so one builder serves
    concurrent requests. Nodes are never modified; annotations are
    kept in side tables keyed by the node position.
    """

    ids: IdResolver
    hierarchy: HierarchyLookup
    concepts: ConceptLookup
    terms_lookup: TermsLookup
    config: QueryConfig

    def __init__(
        self,
        ids: IdResolver,
        hierarchy: HierarchyLookup,
        concepts: ConceptLookup,
        terms_lookup: TermsLookup,
        config: QueryConfig | None = None,
        keyword_normalize: bool = True,
    ):
        self.ids = ids
        self.hierarchy = hierarchy
        self.concepts = concepts
        self.terms_lookup = terms_lookup
        self.config = config or QueryConfig()
        self.keyword_normalize = keyword_normalize

    def get_id(self, item: EntityRef | Property) -> int:
        return int(self.ids.get_id(item))

    def add_description_log(
        self, description: Description, context: CompileContext
    ) -> None:
        if not self.config.debug_description_log:
            return
        context.description_log.append(
            {
                "type": type(description).__name__,
                "query": description.query_string,
                "fingerprint": description.fingerprint,
                "size": description.get_size(),
                "depth": description.get_depth(),
            }
        )

    def compile(
        self,
        description: Description,
        context: CompileContext | None = None,
    ) -> tuple[dict, list[CompileError], list[dict[str, Any]]]:
        """Compile a description.

        Args:
            description: Root description.
            context: Compile state to fill, a new one by default.

        Returns:
            Query (empty when the description has no constraint),
            compile errors and materializer diagnostics.
        """
        context = context or CompileContext()
        query = self.interpret_description(description, context)
        return query, list(context.errors), list(context.query_info)

    def make_from_description(
        self,
        description: Description,
        is_constant_score: bool = True,
        sort_fields: list[str] | None = None,
        context: CompileContext | None = None,
    ) -> dict:
        """Compile a description into the query of a search request.

        Adds the sort field existence checks and the constant score
        wrap. An unconstrained description matches all documents.

        Args:
            description: Root description.
            is_constant_score: Whether scoring can be dropped.
            sort_fields: Fields the result is sorted by.
            context: Compile state to fill, for callers that need
                the errors and diagnostics.
        """
        if context is None:
            context = CompileContext()
        context.sort_fields = list(sort_fields or [])
        context.is_constant_score = is_constant_score
        query = self.interpret_description(description, context)
        if self.config.sort_property_exists and context.sort_fields:
            exists = [FieldMapper.exists(f) for f in context.sort_fields]
            query = FieldMapper.bool(
                "must", ([query] if query else []) + exists
            )
        if not query:
            query = {"match_all": {}}
        if context.is_constant_score:
            query = FieldMapper.constant_score(query)
        return query

    def interpret_description(
        self,
        description: Description,
        context: CompileContext,
        is_conjunction: bool = False,
        path: Path = (),
    ) -> dict:
        """Compile one node.

        Args:
            description: Node to compile.
            context: State of the running compile.
            is_conjunction: Whether the node is the member of a
                conjunction (or disjunction) and needs no own bool.
            path: Position of the node in the tree.

        Returns:
            Query fragment, empty when the node has no constraint.
        """
        handler = getattr(self, f"_interpret_{description.type}", None)
        if handler is None:
            raise InternalError(
                f"Description type {description.type} not supported"
            )
        self.add_description_log(description, context)
        return handler(description, context, is_conjunction, path)

    def _interpret_conjunction(
        self,
        description: Conjunction,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        params = []
        for i, desc in enumerate(description.descriptions):
            p = self.interpret_description(desc, context, True, path + (i,))
            if p:
                params.append(p)
        if not params:
            return {}
        return FieldMapper.bool("must", params)

    def _interpret_disjunction(
        self,
        description: Disjunction,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        params = []
        fields: list[str] = []
        for i, desc in enumerate(description.descriptions):
            child = path + (i,)
            p = self.interpret_description(desc, context, True, child)
            if not p:
                continue
            field = context.must_exist.get(child)
            if field is not None and field not in fields:
                fields.append(field)
            params.append(p)
        if not params:
            return {}
        query = FieldMapper.bool("should", params)
        # A negated member only matches documents carrying the
        # property, restore that outside of the OR
        if fields:
            exists = [FieldMapper.exists(f) for f in fields]
            query = FieldMapper.bool("must", [query, *exists])
        return query

    def _interpret_class(
        self,
        description: ClassDescription,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        pid = FieldMapper.get_pid(self.get_id(Property.instance_of()))
        field = f"{pid}.{FieldMapper.ID_FIELD}"
        depth = description.hierarchy_depth
        if depth is None:
            depth = self.config.hierarchy_depth
        should = not is_conjunction or len(description.categories) > 1

        members = sorted(
            (
                (self.get_id(category), category)
                for category in description.categories
            ),
            key=lambda member: member[0],
        )
        params = []
        for id, category in members:
            p = FieldMapper.term(field, id)
            ids = self._find_hierarchy_members(category, depth)
            if ids:
                p = FieldMapper.bool(
                    "should", [p, FieldMapper.terms(field, ids)]
                )
            params.append(p)

        query = FieldMapper.bool("should" if should else "must", params)
        if description.negated:
            query = FieldMapper.bool("must_not", query)
        return query

    def _interpret_concept(
        self,
        description: ConceptDescription,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        concept = description.concept
        value = self.concepts.get_concept_query(concept)
        if not value:
            return {}
        try:
            inner = DescriptionParser.parse(value)
        except BadRequestError as e:
            context.add_error(CompileError(str(e), description.query_string))
            return FieldMapper.match_nothing()

        if (
            concept.hash in context.concepts
            or self._is_circular(inner, concept)
        ):
            context.add_error(
                CircularReferenceError(
                    f"Concept {concept} refers to itself",
                    inner.query_string,
                )
            )
            return FieldMapper.match_nothing()

        context.concepts.append(concept.hash)
        try:
            params = self.interpret_description(
                inner, context, is_conjunction, path + (0,)
            )
        finally:
            context.concepts.pop()
        if not params or not self.config.concept_terms_lookup:
            return params

        return self.terms_lookup.lookup_concept(
            concept,
            self.get_id(concept),
            inner,
            params,
            query_info=context.query_info,
        )

    def _is_circular(
        self, description: Description, concept: EntityRef
    ) -> bool:
        if isinstance(description, ConceptDescription):
            return description.concept.hash == concept.hash
        if isinstance(description, (Conjunction, Disjunction)):
            return any(
                self._is_circular(d, concept)
                for d in description.descriptions
            )
        return False

    def _interpret_namespace(
        self,
        description: NamespaceDescription,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        params = FieldMapper.term("subject.namespace", description.namespace)
        if not is_conjunction:
            params = FieldMapper.bool("filter", params)
        return params

    def _interpret_thing(
        self,
        description: ThingDescription,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        if description.negated:
            return FieldMapper.match_nothing()
        return {}

    def _interpret_value(
        self,
        description: ValueDescription,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
    ) -> dict:
        data_item = description.data_item
        comparator = description.comparator.normalize()
        property = description.property
        negated = comparator in NEGATED_COMPARATORS
        is_filter = False

        pid = None
        hierarchy: list[int] = []
        if property is None:
            field: Any = "subject.sortkey"
        else:
            pid = FieldMapper.get_pid(self.get_id(property))
            if property.inverse:
                raise InternalError(
                    "Value description with an inverse property: "
                    f"{pid}, {description.query_string}"
                )
            field = f"{pid}.{FieldMapper.get_field(property)}"
            hierarchy = self._find_hierarchy_members(property, None)

        is_page = isinstance(data_item, EntityRef)
        # Marker for "not a subobject", never an entity of its own
        no_subobject = is_page and data_item.title == "NO_SUBOBJECT"
        if (
            is_page
            and not no_subobject
            and comparator in (Comparator.EQ, Comparator.NEQ)
        ):
            field = "_id" if pid is None else f"{pid}.{FieldMapper.ID_FIELD}"
            value: Any = self.get_id(data_item)
        else:
            value = _get_value(data_item)

        if isinstance(data_item, GeoArea):
            if pid is None:
                context.add_error(
                    CompileError(
                        "Area comparison requires a property",
                        description.query_string,
                    )
                )
                return FieldMapper.match_nothing()
            params = _bounding_box(f"{field}.point", data_item)
        elif is_page and comparator.is_range():
            params = FieldMapper.range(f"{field}.keyword", value, comparator)
        elif no_subobject:
            params = FieldMapper.term("subject.subobject.keyword", "")
            is_filter = True
        elif isinstance(data_item, Text) and comparator == Comparator.EQ:
            params = FieldMapper.match(field, f'"{value}"')
        elif comparator in (Comparator.EQ, Comparator.NEQ):
            params = FieldMapper.terms(field, value)
        elif comparator in (Comparator.LIKE, Comparator.NLIKE):
            value = str(value)
            has_wildcard = "*" in value
            # Wide proximity search over the full-text fields
            if value.startswith("~"):
                value = value[1:]
                if (
                    not has_wildcard
                    and self.config.wide_proximity_as_match_phrase
                ):
                    value = f'"{value}"'
                field = list(self.config.wide_proximity_fields)
            if has_wildcard:
                params = FieldMapper.query_string(field, value)
            else:
                params = FieldMapper.match(field, value)
        elif comparator.is_range():
            params = FieldMapper.range(field, value, comparator)
        else:
            params = FieldMapper.match(field, value)

        if pid is not None:
            params = FieldMapper.hierarchy(params, pid, hierarchy)
        if negated:
            return FieldMapper.bool("must_not", params)
        if not is_conjunction:
            occur = "filter" if is_filter else "must"
            params = FieldMapper.bool(occur, params)
        return params

    def _interpret_some_property(
        self,
        description: SomeProperty,
        context: CompileContext,
        is_conjunction: bool,
        path: Path,
        chain_field: str | None = None,
    ) -> dict:
        property = description.property
        pid = FieldMapper.get_pid(self.get_id(property))
        depth = description.hierarchy_depth
        if depth is None:
            depth = self.config.hierarchy_depth
        hierarchy = self._find_hierarchy_members(property, depth)
        desc = description.description
        field = FieldMapper.get_field(property)

        if isinstance(desc, SomeProperty):
            query = self._interpret_chain(desc, context, property, pid, path)
            occur = "must"
        else:
            if isinstance(desc, ValueDescription):
                params, field, occur = self._interpret_property_value(
                    desc, context, property, pid, field
                )
                if not property.inverse:
                    params = FieldMapper.hierarchy(params, pid, hierarchy)
            elif isinstance(desc, ThingDescription):
                params, field, occur = self._interpret_property_thing(
                    desc, property, pid, field
                )
                params = FieldMapper.hierarchy(params, pid, hierarchy)
            elif isinstance(desc, Disjunction):
                params = self._interpret_inner_disjunction(
                    desc, description, context, path
                )
                occur = "should"
            elif isinstance(desc, Conjunction):
                params = self._interpret_inner_conjunction(
                    desc.descriptions,
                    desc.query_string,
                    context,
                    property,
                    pid,
                    field,
                    path + (0,),
                )
                occur = "must"
            else:
                params = self._interpret_inner_conjunction(
                    (desc,),
                    desc.query_string,
                    context,
                    property,
                    pid,
                    field,
                    path,
                )
                occur = "must"
            query = FieldMapper.bool(occur, params) if params else {}

        if not query:
            return {}

        # Keep "property is absent" apart from "value does not match"
        if occur == "must_not" and not isinstance(desc, ThingDescription):
            exists_field = f"{pid}.{field}"
            if self.config.must_not_property_exists:
                context.must_exist[path] = exists_field
            query = FieldMapper.bool(
                "must", [FieldMapper.exists(exists_field), query]
            )

        if chain_field is None:
            return query
        return self.terms_lookup.lookup_some_property(
            description, chain_field, query, query_info=context.query_info
        )

    def _interpret_property_value(
        self,
        desc: ValueDescription,
        context: CompileContext,
        property: Property,
        pid: str,
        field: str,
    ) -> tuple[dict, str, str]:
        data_item = desc.data_item
        comparator = desc.comparator.normalize()
        must_not = comparator in NEGATED_COMPARATORS
        is_filter = False

        is_page = isinstance(data_item, EntityRef)
        is_text = isinstance(data_item, Text)
        is_uri = isinstance(data_item, Uri)
        if is_page and comparator in (Comparator.EQ, Comparator.NEQ):
            field = FieldMapper.ID_FIELD
            value: Any = self.get_id(data_item)
        elif is_uri:
            value = unquote(data_item.value)
        else:
            value = _get_value(data_item)

        if isinstance(data_item, GeoArea):
            # Geo fields do not support exact matching, areas use the
            # geo_point sub-field
            match = _bounding_box(f"{pid}.{field}.point", data_item)
        elif comparator.is_range():
            if is_text:
                field = f"{field}.keyword"
            match = FieldMapper.range(f"{pid}.{field}", value, comparator)
        elif is_text and comparator == Comparator.EQ:
            if property.value_type == ValueType.KEYWORD:
                if self.keyword_normalize:
                    value = FieldMapper.normalize_keyword(value)
                match = FieldMapper.term(f"{pid}.{field}.keyword", value)
                is_filter = True
            elif self.config.text_case_insensitive:
                match = FieldMapper.match_phrase(f"{pid}.{field}", value)
            else:
                match = FieldMapper.term(f"{pid}.{field}.keyword", value)
                is_filter = True
        elif is_uri and comparator == Comparator.EQ:
            if self.config.uri_case_insensitive:
                match = FieldMapper.match_phrase(
                    f"{pid}.{field}.lowercase", value
                )
            else:
                match = FieldMapper.term(f"{pid}.{field}.keyword", value)
        elif is_text and comparator == Comparator.LIKE:
            fields = [f"{pid}.{field}", f"{pid}.{field}.keyword"]
            match = FieldMapper.query_string(fields, value)
        elif (is_text or is_page) and comparator == Comparator.NLIKE:
            # `!~elastic*, +sear*` excludes the first term but requires
            # the second, which turns the negation into a positive match
            if self.config.boolean_operators and "+" in value:
                must_not = False
                value = f"-{value}"
            match = FieldMapper.query_string(f"{pid}.{field}", value)
        elif is_uri and comparator in (Comparator.LIKE, Comparator.NLIKE):
            for token in ("http://", "https://", "="):
                value = value.replace(token, "")
            if "tel:" in value or "mailto:" in value:
                value = value.replace("tel:", "").replace("mailto:", "")
                field = f"{field}.keyword"
            elif self.config.uri_case_insensitive:
                field = f"{field}.lowercase"
            match = FieldMapper.query_string(f"{pid}.{field}", value)
        elif is_page and comparator == Comparator.LIKE:
            match = FieldMapper.query_string(f"{pid}.{field}", value)
        elif isinstance(data_item, GeoCoord) and comparator == Comparator.EQ:
            match = FieldMapper.terms(f"{pid}.{field}", value)
        elif comparator == Comparator.LIKE:
            match = FieldMapper.match(f"{pid}.{field}", value, "and")
        elif comparator == Comparator.EQ:
            is_filter = True
            match = FieldMapper.term(f"{pid}.{field}", value)
        elif comparator == Comparator.NEQ:
            match = FieldMapper.term(f"{pid}.{field}", value)
        else:
            match = FieldMapper.match(f"{pid}.{field}", value, "and")

        params = match
        if property.inverse:
            params = self._lookup_inverse_value(
                desc, context, property, pid, comparator, value, match
            )

        occur = "must_not" if must_not else ("filter" if is_filter else "must")
        return params, field, occur

    def _lookup_inverse_value(
        self,
        desc: ValueDescription,
        context: CompileContext,
        property: Property,
        pid: str,
        comparator: Comparator,
        value: Any,
        match: dict,
    ) -> dict:
        id_field = f"{pid}.{FieldMapper.ID_FIELD}"
        identifier = f"{property.key} ← {desc.query_string}"
        if comparator in (Comparator.EQ, Comparator.NEQ):
            return self.terms_lookup.lookup_inverse(
                identifier, id_field, value, query_info=context.query_info
            )

        # Find the objects fulfilling the condition first, then follow
        # the property back from them
        p = self.terms_lookup.lookup(
            desc.query_string, "_id", match, query_info=context.query_info
        )
        return self.terms_lookup.lookup_inverse(
            identifier,
            id_field,
            FieldMapper.field_filter("_id", p),
            query_info=context.query_info,
        )

    def _interpret_property_thing(
        self,
        desc: ThingDescription,
        property: Property,
        pid: str,
        field: str,
    ) -> tuple[dict, str, str]:
        if property.is_page():
            field = FieldMapper.ID_FIELD
        occur = "must_not" if desc.negated else "filter"
        return FieldMapper.exists(f"{pid}.{field}"), field, occur

    def _interpret_inner_conjunction(
        self,
        descriptions: tuple[Description, ...],
        query_string: str,
        context: CompileContext,
        property: Property,
        pid: str,
        field: str,
        path: Path,
    ) -> dict:
        id_field = f"{pid}.{FieldMapper.ID_FIELD}"
        params = []
        for i, desc in enumerate(descriptions):
            p = self.interpret_description(desc, context, True, path + (i,))
            if p:
                params.append(p)
        if not params:
            return {}

        # Ids are matched on the entity field or, for literal values,
        # on the document id
        f = id_field if field.startswith("wpg") else "_id"
        query = self.terms_lookup.lookup(
            query_string, f, params, query_info=context.query_info
        )

        # Inverse matches are always entity related
        if property.inverse:
            identifier = f"{property.key} ← {query_string}"
            query = self.terms_lookup.lookup_inverse(
                identifier,
                id_field,
                FieldMapper.field_filter(f, query),
                query_info=context.query_info,
            )
        return FieldMapper.bool("must", query)

    def _interpret_inner_disjunction(
        self,
        desc: Disjunction,
        description: SomeProperty,
        context: CompileContext,
        path: Path,
    ) -> dict:
        params = []
        for i, d in enumerate(desc.descriptions):
            member = SomeProperty(
                property=description.property,
                description=d,
                hierarchy_depth=description.hierarchy_depth,
            )
            p = self._interpret_some_property(
                member, context, True, path + (0, i)
            )
            if p:
                params.append(p)
        if not params:
            return {}
        return FieldMapper.bool("should", params)

    def _interpret_chain(
        self,
        desc: SomeProperty,
        context: CompileContext,
        property: Property,
        pid: str,
        path: Path,
    ) -> dict:
        chain_field = f"{pid}.{FieldMapper.ID_FIELD}"
        inner = desc.description
        if isinstance(inner, Disjunction):
            params = []
            for i, d in enumerate(inner.descriptions):
                member = SomeProperty(
                    property=desc.property,
                    description=d,
                    hierarchy_depth=desc.hierarchy_depth,
                )
                p = self._interpret_some_property(
                    member, context, True, path + (0, i), chain_field
                )
                if p:
                    params.append(p)
            query = FieldMapper.bool("should", params) if params else {}
        else:
            query = self._interpret_some_property(
                desc, context, True, path + (0,), chain_field
            )

        if property.inverse and query:
            identifier = f"{property.key} ← {desc.query_string}"
            query = self.terms_lookup.lookup_inverse(
                identifier,
                chain_field,
                FieldMapper.field_filter(chain_field, query),
                query_info=context.query_info,
            )
        return query

    def _find_hierarchy_members(
        self, item: EntityRef | Property, depth: int | None
    ) -> list[int]:
        members = self.hierarchy.get_consecutive_members(item)
        if depth is not None:
            members = members[:depth]
        return [self.get_id(member) for member in members]


def _get_value(data_item: Any) -> Any:
    if isinstance(data_item, EntityRef):
        return data_item.get_sortkey()
    if isinstance(data_item, Time):
        return data_item.to_julian_day()
    if isinstance(data_item, (Boolean, Number)):
        return data_item.value
    if isinstance(data_item, (GeoCoord, GeoArea)):
        return str(data_item)
    return data_item.value


def _bounding_box(field: str, area: GeoArea) -> dict:
    return FieldMapper.geo_bounding_box(
        field, area.north, area.west, area.south, area.east
    )
