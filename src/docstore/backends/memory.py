import copy
import logging
import numbers
from typing import Any, Optional

from docstore.backends.base import (
    AGGREGATES,
    Backend,
    distance,
    find_near,
    is_operator_mapping,
    is_point,
    resolve,
)
from docstore.errors import DuplicateKey, InvalidOptions

logger = logging.getLogger(__name__)


class MemoryBackend(Backend):
    """
    Process-local document store.

    Keeps one list per collection in insertion order and evaluates
    selectors in Python. Documents are copied on the way in and out.
    """

    def __init__(self):
        self._collections: dict[str, list[dict]] = {}

    def _rows(self, collection: str) -> list[dict]:
        return self._collections.setdefault(collection, [])

    def insert(self, collection: str, document: dict) -> None:
        rows = self._rows(collection)
        if any(row["_id"] == document["_id"] for row in rows):
            raise DuplicateKey(f"{collection}: duplicate _id {document['_id']!r}")
        rows.append(copy.deepcopy(document))

    def replace(self, collection: str, document_id: Any, document: dict) -> int:
        rows = self._rows(collection)
        for i, row in enumerate(rows):
            if row["_id"] == document_id:
                rows[i] = copy.deepcopy(document)
                return 1
        return 0

    def select(
        self,
        collection: str,
        selector: dict,
        sort: list = (),
        limit: Optional[int] = None,
        skip: int = 0,
        reverse: bool = False,
    ) -> list[dict]:
        rows = [row for row in self._rows(collection) if matches(row, selector)]

        near = find_near(selector)
        if near:
            field, point = near
            rows.sort(key=lambda row: distance(resolve(row, field)[1], point))
        if reverse:
            rows.reverse()
        # Stable sorts applied from the least significant key up
        for field, direction in reversed(list(sort)):
            rows.sort(key=lambda row: _sort_key(resolve(row, field)[1]), reverse=direction < 0)

        rows = rows[skip:] if skip else rows
        if limit is not None:
            rows = rows[:limit]
        logger.debug("select %s %r -> %d rows", collection, selector, len(rows))
        return [copy.deepcopy(row) for row in rows]

    def count(self, collection: str, selector: dict) -> int:
        return sum(1 for row in self._rows(collection) if matches(row, selector))

    def exists(self, collection: str, selector: dict) -> bool:
        return any(matches(row, selector) for row in self._rows(collection))

    def update(self, collection: str, selector: dict, changes: dict) -> int:
        touched = 0
        for row in self._rows(collection):
            if matches(row, selector):
                row.update(copy.deepcopy(changes))
                touched += 1
        return touched

    def aggregate(self, collection: str, selector: dict, func: str, field: str):
        if func not in AGGREGATES:
            raise InvalidOptions(f"Unknown aggregate: {func}")
        values = []
        for row in self._rows(collection):
            if not matches(row, selector):
                continue
            found, value = resolve(row, field)
            if found and isinstance(value, numbers.Number) and not isinstance(value, bool):
                values.append(value)

        if func == "sum":
            return sum(values)
        if not values:
            return None
        if func == "avg":
            return sum(values) / len(values)
        return min(values) if func == "min" else max(values)

    def clear(self, collection: Optional[str] = None) -> None:
        if collection is None:
            self._collections.clear()
        else:
            self._collections.pop(collection, None)


# =============================================================================
# Selector evaluation
# =============================================================================


def matches(document: dict, selector: dict) -> bool:
    """Evaluate a Mongo-style selector against one document."""
    for key, condition in selector.items():
        if key == "$and":
            if not all(matches(document, sub) for sub in condition):
                return False
        elif key == "$or":
            if not any(matches(document, sub) for sub in condition):
                return False
        elif not _match_field(document, key, condition):
            return False
    return True


def _match_field(document: dict, field: str, condition: Any) -> bool:
    found, value = resolve(document, field)
    if is_operator_mapping(condition):
        return all(_apply(op, found, value, arg) for op, arg in condition.items())
    return _equals(found, value, condition)


def _same(value: Any, expected: Any) -> bool:
    # JSON keeps booleans and numbers apart: true never equals 1
    if isinstance(value, bool) != isinstance(expected, bool):
        return False
    if isinstance(value, list) and isinstance(expected, list):
        return len(value) == len(expected) and all(map(_same, value, expected))
    if isinstance(value, dict) and isinstance(expected, dict):
        return value.keys() == expected.keys() and all(_same(value[k], expected[k]) for k in value)
    return value == expected


def _equals(found: bool, value: Any, expected: Any) -> bool:
    if expected is None:
        return not found or value is None
    if not found:
        return False
    if _same(value, expected):
        return True
    # Array fields match when any element matches
    return isinstance(value, list) and any(_same(item, expected) for item in value)


def _compare(op: str, found: bool, value: Any, arg: Any) -> bool:
    if not found or value is None or isinstance(value, bool) != isinstance(arg, bool):
        return False
    try:
        if op == "$gt":
            return value > arg
        if op == "$gte":
            return value >= arg
        if op == "$lt":
            return value < arg
        return value <= arg
    except TypeError:
        return False


def _apply(op: str, found: bool, value: Any, arg: Any) -> bool:
    if op == "$eq":
        return _equals(found, value, arg)
    if op == "$ne":
        return not _equals(found, value, arg)
    if op == "$in":
        return any(_equals(found, value, expected) for expected in arg)
    if op == "$nin":
        return not any(_equals(found, value, expected) for expected in arg)
    if op == "$all":
        if not found:
            return False
        items = value if isinstance(value, list) else [value]
        return all(any(_same(item, expected) for item in items) for expected in arg)
    if op in ("$gt", "$gte", "$lt", "$lte"):
        return _compare(op, found, value, arg)
    if op == "$exists":
        return found == bool(arg)
    if op == "$near":
        return found and is_point(value)
    raise InvalidOptions(f"Unsupported operator: {op}")


def _sort_key(value: Any) -> tuple:
    # None < numbers < strings < everything else
    if value is None:
        return (0, 0)
    if isinstance(value, numbers.Number) and not isinstance(value, bool):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    return (3, repr(value))
