"""
Store-reader capability consumed by the policy engine.

The engine only ever needs to fetch one document by locator, before a
mutation. Hosts adapt their own document store to this interface.

Why ABC over Protocol?
    - Adapters subclass explicitly, so a missing read() fails at
      instantiation rather than at the first mutation
"""

from abc import ABC, abstractmethod

from authorguard.schema import Document, ResourceLocator


class DocumentReader(ABC):
    """
    Reads single documents from a document store.

    Example:
        class DictReader(DocumentReader):
            def __init__(self, docs):
                self.docs = docs

            def read(self, locator):
                try:
                    return self.docs[locator.document_id]
                except KeyError:
                    raise DocumentNotFoundError(document_id=locator.document_id)
    """

    @abstractmethod
    def read(self, locator: ResourceLocator) -> Document:
        """
        Fetch the document at locator.

        Raises:
            DocumentNotFoundError: If no such document exists
            Exception: Any other failure, which the engine propagates as-is
        """
        ...
