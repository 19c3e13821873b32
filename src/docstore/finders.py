"""
Class-level finder methods for documents.

Every method here starts from a fresh, unconditioned criteria for the
class (cls.criteria()) and either hands it back, narrows it, executes it,
or runs find-or-act on top of it. Nothing is cached between calls.

Absence is not an error: first(), last() and find_or_initialize_by()
give back None or a new unsaved document. find_by() is the one finder
that raises, with DocumentNotFound. Backend errors pass through as-is.
"""

import logging
from typing import Callable, Optional

from docstore.errors import DocumentNotFound

logger = logging.getLogger(__name__)


def _attributes(attrs: Optional[dict], kwargs: dict) -> dict:
    merged = dict(attrs or {})
    merged.update(kwargs)
    return merged


class Finders:
    """Finder mixin. Requires criteria(), create() and build() on the class."""

    @classmethod
    def all(cls):
        """All documents, as an unexecuted criteria."""
        return cls.criteria()

    @classmethod
    def count(cls) -> int:
        """
        Number of documents in the collection.
        For conditions, use where(): Person.where(title="Sir").count()
        """
        return cls.criteria().count()

    @classmethod
    def is_empty(cls) -> bool:
        return cls.count() == 0

    @classmethod
    def exists(cls) -> bool:
        return cls.criteria().exists()

    @classmethod
    def find(cls, *ids):
        """
        Find by id. Person.find(id) gives one document, Person.find(a, b)
        or Person.find([a, b]) a list. What happens on a miss is up to the
        criteria (see config.raise_not_found_error).
        """
        return cls.criteria().find(*ids)

    @classmethod
    def first(cls):
        return cls.criteria().first()

    @classmethod
    def last(cls):
        return cls.criteria().last()

    @classmethod
    def find_by(cls, attrs: Optional[dict] = None, **kwargs):
        """
        Find the first document matching the attributes.

        Raises:
            DocumentNotFound: If nothing matches
        """
        attrs = _attributes(attrs, kwargs)
        document = cls.where(attrs).first()
        if document is None:
            logger.debug("find_by %s %r: no match", cls.__name__, attrs)
            raise DocumentNotFound(cls, attrs)
        return document

    @classmethod
    def find_or_create_by(
        cls, attrs: Optional[dict] = None, callback: Optional[Callable] = None, **kwargs
    ):
        """
        Find the first document matching the attributes, or create one
        from them. callback, if given, receives the new document before
        it is saved.
        """
        return cls._find_or(cls.create, _attributes(attrs, kwargs), callback)

    @classmethod
    def find_or_initialize_by(
        cls, attrs: Optional[dict] = None, callback: Optional[Callable] = None, **kwargs
    ):
        """
        Find the first document matching the attributes, or build an
        unsaved one from them. callback, if given, receives the new document.
        """
        return cls._find_or(cls.build, _attributes(attrs, kwargs), callback)

    @classmethod
    def _find_or(cls, build: Callable, attrs: dict, callback: Optional[Callable]):
        document = cls.where(attrs).first()
        if document is not None:
            return document
        logger.debug("%s %r: no match, calling %s", cls.__name__, attrs, build.__name__)
        return build(attrs, callback)

    # Pass-throughs to a fresh criteria

    @classmethod
    def all_in(cls, *args, **kwargs):
        return cls.criteria().all_in(*args, **kwargs)

    @classmethod
    def all_of(cls, *args, **kwargs):
        return cls.criteria().all_of(*args, **kwargs)

    @classmethod
    def any_in(cls, *args, **kwargs):
        return cls.criteria().any_in(*args, **kwargs)

    @classmethod
    def any_of(cls, *args, **kwargs):
        return cls.criteria().any_of(*args, **kwargs)

    @classmethod
    def asc(cls, *args, **kwargs):
        return cls.criteria().asc(*args, **kwargs)

    @classmethod
    def ascending(cls, *args, **kwargs):
        return cls.criteria().ascending(*args, **kwargs)

    @classmethod
    def avg(cls, *args, **kwargs):
        return cls.criteria().avg(*args, **kwargs)

    @classmethod
    def desc(cls, *args, **kwargs):
        return cls.criteria().desc(*args, **kwargs)

    @classmethod
    def descending(cls, *args, **kwargs):
        return cls.criteria().descending(*args, **kwargs)

    @classmethod
    def excludes(cls, *args, **kwargs):
        return cls.criteria().excludes(*args, **kwargs)

    @classmethod
    def extras(cls, *args, **kwargs):
        return cls.criteria().extras(*args, **kwargs)

    @classmethod
    def includes(cls, *args, **kwargs):
        return cls.criteria().includes(*args, **kwargs)

    @classmethod
    def limit(cls, *args, **kwargs):
        return cls.criteria().limit(*args, **kwargs)

    @classmethod
    def max(cls, *args, **kwargs):
        return cls.criteria().max(*args, **kwargs)

    @classmethod
    def min(cls, *args, **kwargs):
        return cls.criteria().min(*args, **kwargs)

    @classmethod
    def not_in(cls, *args, **kwargs):
        return cls.criteria().not_in(*args, **kwargs)

    @classmethod
    def only(cls, *args, **kwargs):
        return cls.criteria().only(*args, **kwargs)

    @classmethod
    def order_by(cls, *args, **kwargs):
        return cls.criteria().order_by(*args, **kwargs)

    @classmethod
    def search(cls, *args, **kwargs):
        return cls.criteria().search(*args, **kwargs)

    @classmethod
    def skip(cls, *args, **kwargs):
        return cls.criteria().skip(*args, **kwargs)

    @classmethod
    def sum(cls, *args, **kwargs):
        return cls.criteria().sum(*args, **kwargs)

    @classmethod
    def without(cls, *args, **kwargs):
        return cls.criteria().without(*args, **kwargs)

    @classmethod
    def where(cls, *args, **kwargs):
        return cls.criteria().where(*args, **kwargs)

    @classmethod
    def update(cls, *args, **kwargs):
        return cls.criteria().update(*args, **kwargs)

    @classmethod
    def update_all(cls, *args, **kwargs):
        return cls.criteria().update_all(*args, **kwargs)

    @classmethod
    def near(cls, *args, **kwargs):
        return cls.criteria().near(*args, **kwargs)
