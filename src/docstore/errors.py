"""
Errors raised by docstore itself.

Driver and backend failures (connection errors, unique violations, ...)
are never wrapped; only the conditions below are signalled by docstore.
"""

from typing import Any


class DocstoreError(Exception):
    """Base class for docstore errors."""


class DocumentNotFound(DocstoreError):
    """
    Raised when a lookup expected to yield a document found nothing.

    Args:
        klass: The document class that was searched
        params: The attribute mapping (find_by) or the ids (find) searched for
        missing: For id lookups, the ids that were not found
    """

    def __init__(self, klass: type, params: Any, missing: list | None = None):
        self.klass = klass
        self.params = params
        self.missing = missing
        super().__init__(self._message())

    def _message(self) -> str:
        name = getattr(self.klass, "__name__", str(self.klass))
        if isinstance(self.params, dict):
            return f"Document not found for class {name} with attributes {self.params!r}."
        ids = ", ".join(str(i) for i in (self.missing or self.params))
        return f"Document(s) not found for class {name} with id(s) {ids}."


class InvalidOptions(DocstoreError):
    """Raised when a criteria is given options it does not understand."""


class DuplicateKey(DocstoreError):
    """Raised by the memory backend when an _id is inserted twice."""


class UnknownBackend(DocstoreError):
    """Raised when config names a backend that does not exist."""
