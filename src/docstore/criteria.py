"""
Criteria: chainable, lazily executed queries.

A Criteria is bound to one document class and never changes once built:
every chaining method returns a new Criteria, so a criteria held by one
caller can't be altered by another. Nothing touches the backend until an
execution method (count, first, entries, ...) is called.
"""

import copy
import logging
from typing import Any, Iterator, Optional

from docstore.backends import get_backend
from docstore.backends.base import is_operator_mapping, project
from docstore.config import config
from docstore.errors import DocumentNotFound, InvalidOptions

logger = logging.getLogger(__name__)

DIRECTIONS = {
    "asc": 1,
    "ascending": 1,
    "1": 1,
    "desc": -1,
    "descending": -1,
    "-1": -1,
}

SEARCH_OPTIONS = ("sort", "limit", "skip", "fields")


def _direction(value: Any) -> int:
    try:
        return DIRECTIONS[str(value).lower()]
    except KeyError:
        raise InvalidOptions(f"Invalid sort direction: {value!r}") from None


def _sort_spec(spec: Any) -> list[tuple[str, int]]:
    """Normalize "name", "name desc", ("name", -1) or a list of those."""
    if isinstance(spec, str):
        parts = spec.split()
        if len(parts) == 1:
            return [(parts[0], 1)]
        if len(parts) == 2:
            return [(parts[0], _direction(parts[1]))]
        raise InvalidOptions(f"Invalid sort spec: {spec!r}")
    if isinstance(spec, tuple) and len(spec) == 2 and isinstance(spec[0], str):
        return [(spec[0], _direction(spec[1]))]
    if isinstance(spec, dict):
        return [(field, _direction(direction)) for field, direction in spec.items()]
    if isinstance(spec, list):
        specs = []
        for item in spec:
            specs.extend(_sort_spec(item))
        return specs
    raise InvalidOptions(f"Invalid sort spec: {spec!r}")


def _conditions(mapping: Optional[dict], kwargs: dict) -> dict:
    merged = dict(mapping or {})
    merged.update(kwargs)
    return merged


class Criteria:
    def __init__(self, klass: type):
        self.klass = klass
        self.selector: dict = {}
        self.sort: list[tuple[str, int]] = []
        self.limit_value: Optional[int] = None
        self.skip_value: int = 0
        self.fields: dict[str, int] = {}
        self.inclusions: list[str] = []

    def _clone(self) -> "Criteria":
        clone = Criteria(self.klass)
        clone.selector = copy.deepcopy(self.selector)
        clone.sort = list(self.sort)
        clone.limit_value = self.limit_value
        clone.skip_value = self.skip_value
        clone.fields = dict(self.fields)
        clone.inclusions = list(self.inclusions)
        return clone

    @property
    def collection(self) -> str:
        return self.klass.collection_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Criteria):
            return NotImplemented
        return (
            self.klass is other.klass
            and self.selector == other.selector
            and self.sort == other.sort
            and self.limit_value == other.limit_value
            and self.skip_value == other.skip_value
            and self.fields == other.fields
            and self.inclusions == other.inclusions
        )

    def __repr__(self) -> str:
        return (
            f"<Criteria {self.klass.__name__} selector={self.selector!r} sort={self.sort!r} "
            f"limit={self.limit_value!r} skip={self.skip_value!r}>"
        )

    # =========================================================================
    # Conditions
    # =========================================================================

    def where(self, selector: Optional[dict] = None, **conditions) -> "Criteria":
        """Add equality or operator conditions."""
        clone = self._clone()
        for field, condition in _conditions(selector, conditions).items():
            existing = clone.selector.get(field)
            if field in ("$and", "$or") and isinstance(existing, list):
                clone.selector[field] = existing + list(condition)
            elif is_operator_mapping(existing) and is_operator_mapping(condition):
                clone.selector[field] = {**existing, **condition}
            else:
                clone.selector[field] = copy.deepcopy(condition)
        return clone

    def _operator(self, op: str, mapping: Optional[dict], kwargs: dict) -> "Criteria":
        return self.where({field: {op: value} for field, value in _conditions(mapping, kwargs).items()})

    def all_in(self, mapping: Optional[dict] = None, **fields) -> "Criteria":
        """Match documents whose array field holds all the given values."""
        return self._operator("$all", mapping, {k: list(v) for k, v in fields.items()})

    def any_in(self, mapping: Optional[dict] = None, **fields) -> "Criteria":
        """Match documents whose field equals any of the given values."""
        return self._operator("$in", mapping, {k: list(v) for k, v in fields.items()})

    def not_in(self, mapping: Optional[dict] = None, **fields) -> "Criteria":
        return self._operator("$nin", mapping, {k: list(v) for k, v in fields.items()})

    def excludes(self, mapping: Optional[dict] = None, **fields) -> "Criteria":
        return self._operator("$ne", mapping, fields)

    def near(self, mapping: Optional[dict] = None, **fields) -> "Criteria":
        """Match documents with a point in the field, closest first."""
        return self._operator("$near", mapping, {k: list(v) for k, v in fields.items()})

    def all_of(self, *selectors: dict) -> "Criteria":
        return self.where({"$and": [dict(s) for s in selectors]})

    def any_of(self, *selectors: dict) -> "Criteria":
        return self.where({"$or": [dict(s) for s in selectors]})

    # =========================================================================
    # Options
    # =========================================================================

    def order_by(self, *specs) -> "Criteria":
        clone = self._clone()
        for spec in specs:
            clone.sort.extend(_sort_spec(spec))
        return clone

    def asc(self, *fields: str) -> "Criteria":
        return self.order_by(*[(field, 1) for field in fields])

    def desc(self, *fields: str) -> "Criteria":
        return self.order_by(*[(field, -1) for field in fields])

    ascending = asc
    descending = desc

    def limit(self, value: int) -> "Criteria":
        clone = self._clone()
        clone.limit_value = int(value)
        return clone

    def skip(self, value: int) -> "Criteria":
        clone = self._clone()
        clone.skip_value = int(value)
        return clone

    def only(self, *fields: str) -> "Criteria":
        clone = self._clone()
        clone.fields = {field: 1 for field in fields}
        return clone

    def without(self, *fields: str) -> "Criteria":
        clone = self._clone()
        clone.fields = {field: 0 for field in fields}
        return clone

    def includes(self, *relations: str) -> "Criteria":
        """Record relations to eager load. The bundled backends load nothing extra."""
        clone = self._clone()
        clone.inclusions.extend(r for r in relations if r not in clone.inclusions)
        return clone

    def extras(self, options: dict) -> "Criteria":
        """Merge raw query options: sort, limit, skip, fields."""
        unknown = set(options) - set(SEARCH_OPTIONS)
        if unknown:
            raise InvalidOptions(f"Unknown options: {sorted(unknown)}")

        clone = self._clone()
        if "sort" in options:
            clone.sort.extend(_sort_spec(options["sort"]))
        if "limit" in options:
            clone.limit_value = int(options["limit"])
        if "skip" in options:
            clone.skip_value = int(options["skip"])
        if "fields" in options:
            fields = options["fields"]
            clone.fields = dict(fields) if isinstance(fields, dict) else {f: 1 for f in fields}
        return clone

    def search(self, conditions: Optional[dict] = None, **options) -> "Criteria":
        """
        Build a criteria from finder-style arguments.

        Example:
            Person.search(conditions={"title": "Sir"}, sort="age desc", limit=10)
        """
        criteria = self.where(conditions) if conditions else self._clone()
        return criteria.extras(options) if options else criteria

    # =========================================================================
    # Execution
    # =========================================================================

    def _instantiate(self, rows: list[dict]) -> list:
        partial = bool(self.fields)
        return [self.klass.instantiate(project(row, self.fields), partial=partial) for row in rows]

    def entries(self) -> list:
        """Execute the query and return all matching documents."""
        rows = get_backend().select(
            self.collection,
            self.selector,
            sort=self.sort,
            limit=self.limit_value,
            skip=self.skip_value,
        )
        return self._instantiate(rows)

    def __iter__(self) -> Iterator:
        return iter(self.entries())

    def count(self) -> int:
        """Count matching documents. Limit and skip are ignored."""
        return get_backend().count(self.collection, self.selector)

    def exists(self) -> bool:
        return get_backend().exists(self.collection, self.selector)

    def first(self):
        """The first match in sort order, or None."""
        rows = get_backend().select(
            self.collection, self.selector, sort=self.sort, limit=1, skip=self.skip_value
        )
        documents = self._instantiate(rows)
        return documents[0] if documents else None

    def last(self):
        """The last match in sort order, or None."""
        inverted = [(field, -direction) for field, direction in self.sort]
        rows = get_backend().select(
            self.collection, self.selector, sort=inverted, limit=1, reverse=True
        )
        documents = self._instantiate(rows)
        return documents[0] if documents else None

    def find(self, *ids):
        """
        Find documents by id.

        One id returns one document; several ids, or one list of ids,
        return a list. Missing ids raise DocumentNotFound unless
        config.raise_not_found_error is off, in which case a single
        lookup yields None and a multiple lookup yields what was found.
        """
        if len(ids) == 1 and isinstance(ids[0], (list, tuple, set)):
            ids = tuple(ids[0])
            multiple = True
        else:
            multiple = len(ids) != 1

        wanted = list(dict.fromkeys(ids))
        documents = self.where(_id={"$in": wanted}).entries() if wanted else []
        found_ids = {document.id for document in documents}
        missing = [i for i in wanted if i not in found_ids]

        if missing and config.raise_not_found_error:
            raise DocumentNotFound(self.klass, list(ids), missing=missing)

        if multiple:
            by_id = {document.id: document for document in documents}
            return [by_id[i] for i in wanted if i in by_id]
        return documents[0] if documents else None

    def _aggregate(self, func: str, field: str):
        return get_backend().aggregate(self.collection, self.selector, func, field)

    def avg(self, field: str):
        return self._aggregate("avg", field)

    def sum(self, field: str):
        return self._aggregate("sum", field)

    def min(self, field: str):
        return self._aggregate("min", field)

    def max(self, field: str):
        return self._aggregate("max", field)

    def update(self, attributes: Optional[dict] = None, **kwargs) -> int:
        """Set attributes on the first match. Returns the number of documents touched."""
        changes = _conditions(attributes, kwargs)
        document = self.first()
        if document is None:
            return 0
        return get_backend().update(self.collection, {"_id": document.id}, changes)

    def update_all(self, attributes: Optional[dict] = None, **kwargs) -> int:
        """Set attributes on every match. Returns the number of documents touched."""
        changes = _conditions(attributes, kwargs)
        touched = get_backend().update(self.collection, self.selector, changes)
        logger.debug("update_all %s %r -> %d", self.collection, self.selector, touched)
        return touched
