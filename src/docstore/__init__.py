"""
docstore

Document classes with class-level finders over chainable criteria.

    class Person(Document):
        pass

    Person.find_or_create_by(name="Dev")
    Person.where(status="open").order_by("name").limit(10).entries()

The library logs through the "docstore" logger, which has a NullHandler
attached: nothing is printed unless the application configures logging.
"""

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from docstore.criteria import Criteria  # noqa: E402
from docstore.document import Document  # noqa: E402
from docstore.errors import (  # noqa: E402
    DocstoreError,
    DocumentNotFound,
    DuplicateKey,
    InvalidOptions,
    UnknownBackend,
)
from docstore.finders import Finders  # noqa: E402

__all__ = [
    "Criteria",
    "DocstoreError",
    "Document",
    "DocumentNotFound",
    "DuplicateKey",
    "Finders",
    "InvalidOptions",
    "UnknownBackend",
]
