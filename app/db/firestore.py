import asyncio
import logging
import os
from typing import Any, Dict, Optional
import firebase_admin
from firebase_admin import credentials, firestore

from app.core.config import PROJECT_ID, SA_KEY_PATH
from app.core.errors import StoreUnavailable
from app.core.locator import Locator

logger = logging.getLogger("rules.db")

_db = None


def initialize_app():
    if not firebase_admin._apps:
        # 1. Local Dev: Use Key File if it exists
        if SA_KEY_PATH and os.path.exists(SA_KEY_PATH):
            cred = credentials.Certificate(SA_KEY_PATH)
            firebase_admin.initialize_app(cred, {'projectId': PROJECT_ID})
            logger.info(f"Connected to Firestore (Key): {PROJECT_ID}")

        # 2. Production / Emulator: Use Default Identity
        else:
            firebase_admin.initialize_app(options={'projectId': PROJECT_ID})
            logger.info(f"Connected to Firestore (ADC): {PROJECT_ID}")


def get_db():
    """Returns the shared Firestore client, connecting on first use."""
    global _db
    if _db is None:
        initialize_app()
        _db = firestore.client()
    return _db


class FirestoreDocumentStore:
    """
    Read-only view of Firestore for the resolver. The admin SDK bypasses
    security rules, which is what the evaluator needs to see real state.
    """

    def __init__(self, client=None):
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_db()
        return self._client

    def _fetch(self, locator: Locator) -> Optional[Dict[str, Any]]:
        snapshot = self.client.document(locator.path).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    async def get(self, locator: Locator) -> Optional[Dict[str, Any]]:
        try:
            # The admin SDK is blocking; keep the event loop free
            return await asyncio.to_thread(self._fetch, locator)
        except Exception as e:
            logger.error(f"Firestore read failed for {locator.path}: {e}")
            raise StoreUnavailable(str(e)) from e
