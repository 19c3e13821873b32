import logging
import uuid
from typing import Any, Callable, ClassVar, Optional

from docstore.backends import get_backend
from docstore.criteria import Criteria
from docstore.finders import Finders

logger = logging.getLogger(__name__)


class Document(Finders):
    """
    Base class for stored documents.

    Attributes live in a plain dict and can be read as items or
    attributes (person["name"], person.name). Subclasses may set
    collection_name; it defaults to the lowercased class name plus "s".
    """

    collection_name: ClassVar[str] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        # Subclasses share their parent's collection
        if cls.collection_name is None:
            cls.collection_name = f"{cls.__name__.lower()}s"

    def __init__(self, attributes: Optional[dict] = None, **kwargs):
        attrs = dict(attributes or {})
        attrs.update(kwargs)
        attrs.setdefault("_id", uuid.uuid4().hex)
        self.__dict__["attributes"] = attrs
        self.__dict__["new_record"] = True
        self.__dict__["partial"] = False

    def __getattr__(self, name: str) -> Any:
        attributes = self.__dict__.get("attributes", {})
        if name in attributes:
            return attributes[name]
        raise AttributeError(f"{type(self).__name__} has no attribute {name!r}")

    def __setattr__(self, name: str, value: Any) -> None:
        # Private names and document state stay on the object; fields go to attributes
        if name.startswith("_") or name in ("attributes", "new_record", "partial"):
            super().__setattr__(name, value)
        else:
            self.attributes[name] = value

    def __getitem__(self, name: str) -> Any:
        return self.attributes[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self.attributes[name] = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return type(self) is type(other) and self.id == other.id

    def __hash__(self) -> int:
        return hash((type(self), self.id))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.attributes!r}>"

    @property
    def id(self) -> Any:
        return self.attributes["_id"]

    @property
    def persisted(self) -> bool:
        return not self.new_record

    def assign_attributes(self, attributes: Optional[dict] = None, **kwargs) -> None:
        self.attributes.update(attributes or {})
        self.attributes.update(kwargs)

    def save(self) -> bool:
        """
        Insert if new, replace otherwise. Documents loaded through only()
        or without() hold a subset of their fields, so those merge their
        attributes into the stored row instead. Backend errors propagate.
        """
        backend = get_backend()
        if self.new_record:
            backend.insert(self.collection_name, self.attributes)
            self.__dict__["new_record"] = False
            logger.debug("inserted %s %s", self.collection_name, self.id)
        elif self.partial:
            backend.update(self.collection_name, {"_id": self.id}, self.attributes)
        else:
            backend.replace(self.collection_name, self.id, self.attributes)
        return True

    @classmethod
    def criteria(cls) -> Criteria:
        """A fresh criteria with no conditions."""
        return Criteria(cls)

    @classmethod
    def instantiate(cls, attributes: dict, partial: bool = False) -> "Document":
        """Wrap a stored row as a persisted document. partial marks a projected row."""
        document = cls(attributes)
        document.__dict__["new_record"] = False
        document.__dict__["partial"] = partial
        return document

    @classmethod
    def build(cls, attributes: Optional[dict] = None, callback: Optional[Callable] = None):
        """Make a new, unsaved document."""
        document = cls(attributes)
        if callback is not None:
            callback(document)
        return document

    @classmethod
    def create(cls, attributes: Optional[dict] = None, callback: Optional[Callable] = None):
        """Make and save a new document. callback runs before the save."""
        document = cls.build(attributes, callback)
        document.save()
        return document
