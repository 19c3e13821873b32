import math
from abc import ABC, abstractmethod
from typing import Any, Optional

AGGREGATES = ("avg", "sum", "min", "max")


class Backend(ABC):
    """
    Storage interface consumed by Criteria and Document.

    Documents travel as plain dicts carrying their "_id". Selectors are
    Mongo-style mappings; sort is a list of (field, 1 | -1) pairs.
    """

    @abstractmethod
    def insert(self, collection: str, document: dict) -> None:
        """Store a new document."""

    @abstractmethod
    def replace(self, collection: str, document_id: Any, document: dict) -> int:
        """Overwrite the stored document with this id. Returns rows touched."""

    @abstractmethod
    def select(
        self,
        collection: str,
        selector: dict,
        sort: list = (),
        limit: Optional[int] = None,
        skip: int = 0,
        reverse: bool = False,
    ) -> list[dict]:
        """
        Return matching documents.

        Without a sort, documents come back in natural order (insertion
        order, or distance when the selector holds a $near). reverse flips
        the natural order and is how Criteria.last() finds the tail.
        """

    @abstractmethod
    def count(self, collection: str, selector: dict) -> int:
        """Count matching documents, ignoring limit and skip."""

    def exists(self, collection: str, selector: dict) -> bool:
        return self.count(collection, selector) > 0

    @abstractmethod
    def update(self, collection: str, selector: dict, changes: dict) -> int:
        """Set top-level fields on every match. Returns rows touched."""

    @abstractmethod
    def aggregate(self, collection: str, selector: dict, func: str, field: str):
        """Run avg/sum/min/max over the numeric values of a field."""

    @abstractmethod
    def clear(self, collection: Optional[str] = None) -> None:
        """Drop every document, or every document of one collection."""


# =============================================================================
# Helpers shared by backends
# =============================================================================


def is_operator_mapping(condition: Any) -> bool:
    return (
        isinstance(condition, dict)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


def resolve(document: Any, path: str) -> tuple[bool, Any]:
    """Walk a dotted path. Returns (found, value)."""
    current = document
    for part in path.split("."):
        if isinstance(current, dict):
            if part not in current:
                return False, None
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            return False, None
    return True, current


def find_near(selector: dict) -> Optional[tuple[str, list]]:
    """Return (field, point) for the first top-level $near condition."""
    for field, condition in selector.items():
        if is_operator_mapping(condition) and "$near" in condition:
            return field, list(condition["$near"])
    return None


def is_point(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) >= 2
        and all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value[:2])
    )


def distance(value: Any, point: list) -> float:
    if not is_point(value):
        return math.inf
    return (value[0] - point[0]) ** 2 + (value[1] - point[1]) ** 2


def project(document: dict, fields: dict) -> dict:
    """Apply an only()/without() projection. _id always survives inclusion."""
    if not fields:
        return document
    if any(flag for flag in fields.values()):
        keep = {field.split(".")[0] for field, flag in fields.items() if flag}
        keep.add("_id")
        return {k: v for k, v in document.items() if k in keep}
    drop = {field.split(".")[0] for field in fields}
    return {k: v for k, v in document.items() if k not in drop}
