from typing import Dict, List

import pytest

from notestash.repos.remote import DocumentStore


class MemoryDocumentStore(DocumentStore):
    """Keeps collections in a dict. Exceptions queued in ``fail_on[method]`` are raised by the next calls."""

    def __init__(self):
        self.collections: Dict[str, Dict[str, str]] = {}
        self.fail_on: Dict[str, List[Exception]] = {}
        self.calls: List[str] = []

    def _record(self, method: str):
        self.calls.append(method)
        pending = self.fail_on.get(method)
        if pending:
            raise pending.pop(0)

    def collection_exists(self, collection):
        self._record('collection_exists')
        return collection in self.collections

    def create_collection(self, collection):
        self._record('create_collection')
        self.collections.setdefault(collection, {})

    def list(self, collection):
        self._record('list')
        return dict(self.collections.get(collection, {}))

    def get(self, collection, title):
        self._record('get')
        return self.collections.get(collection, {}).get(title)

    def put(self, collection, title, body):
        self._record('put')
        self.collections.setdefault(collection, {})[title] = body

    def delete(self, collection, title):
        self._record('delete')
        del self.collections[collection][title]


@pytest.fixture
def docstore():
    return MemoryDocumentStore()
