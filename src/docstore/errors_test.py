"""
Tests for docstore errors.

Run with: DOCSTORE_ENV=test pytest src/docstore/errors_test.py -v
"""
from docstore.errors import DocstoreError, DocumentNotFound


class Person:
    pass


class TestDocumentNotFound:
    def test_attribute_lookup_message(self):
        error = DocumentNotFound(Person, {"name": "Dev"})

        assert isinstance(error, DocstoreError)
        assert error.klass is Person
        assert error.params == {"name": "Dev"}
        assert str(error) == "Document not found for class Person with attributes {'name': 'Dev'}."

    def test_id_lookup_names_missing_ids(self):
        error = DocumentNotFound(Person, ["a", "b", "c"], missing=["b"])

        assert str(error) == "Document(s) not found for class Person with id(s) b."

    def test_id_lookup_without_missing_lists_all(self):
        assert str(DocumentNotFound(Person, ["a"])).endswith("with id(s) a.")
