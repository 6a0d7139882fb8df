"""
Batched writes - an all-or-nothing multi-document commit.

Usage:
    batch = WriteBatch()
    batch.insert(COLLECTIONS["applications"], {...})
    batch.update(COLLECTIONS["students"], {"_id": sid}, {"$inc": {"stats.applied": 1}})
    batch.commit()

With `mongodb_transactions` enabled the queued operations run inside one
MongoDB transaction. A standalone server cannot run transactions, so with the
flag off they are applied one by one in the order they were queued.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pymongo.client_session import ClientSession

from placement_portal.core.config import get_settings
from placement_portal.db.mongodb import get_collection, get_mongo_client

logger = logging.getLogger(__name__)

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"


class WriteBatch:
    """Queue of write operations committed together."""

    def __init__(self):
        self._ops: List[Tuple[str, str, Dict[str, Any], Optional[Dict[str, Any]]]] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    def insert(self, collection: str, document: Dict[str, Any]) -> "WriteBatch":
        self._ops.append((INSERT, collection, document, None))
        return self

    def update(self, collection: str, filter: Dict[str, Any], update: Dict[str, Any]) -> "WriteBatch":
        """Queue an update_one. A filter that matches nothing is a no-op."""
        self._ops.append((UPDATE, collection, filter, update))
        return self

    def delete(self, collection: str, filter: Dict[str, Any]) -> "WriteBatch":
        self._ops.append((DELETE, collection, filter, None))
        return self

    def _apply(self, session: Optional[ClientSession] = None) -> None:
        kwargs = {"session": session} if session is not None else {}
        for op, name, target, update in self._ops:
            collection = get_collection(name)
            if op == INSERT:
                collection.insert_one(target, **kwargs)
            elif op == UPDATE:
                collection.update_one(target, update, **kwargs)
            else:
                collection.delete_one(target, **kwargs)

    def commit(self) -> None:
        """Apply every queued operation. A batch can be committed once."""
        if self._committed:
            raise RuntimeError("WriteBatch already committed")
        self._committed = True

        if not self._ops:
            return

        if get_settings().mongodb_transactions:
            with get_mongo_client().start_session() as session:
                session.with_transaction(self._apply)
        else:
            self._apply()

        logger.debug("Committed batch of %d operations", len(self._ops))
