import copy
from typing import Any, Dict, Optional

from app.core.locator import Locator, parse_path


class InMemoryDocumentStore:
    """
    Dict-backed document store keyed by path. Used by the test suite and by
    RULES_STORE_BACKEND=memory, where it starts empty.
    """

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        self._documents: Dict[str, Dict[str, Any]] = {}
        for path, data in (documents or {}).items():
            self.set(path, data)

    def set(self, path: str, data: Dict[str, Any]):
        # Normalise through the parser so lookups by Locator.path always match
        self._documents[parse_path(path).path] = copy.deepcopy(data)

    async def get(self, locator: Locator) -> Optional[Dict[str, Any]]:
        data = self._documents.get(locator.path)
        # Callers get a copy; the store is never mutated through a read
        return copy.deepcopy(data) if data is not None else None
