"""In-process document store with change subscriptions and optimistic transactions.

Documents live in named collections and are addressed by "collection" or
"collection/doc_id" paths. The store can be persisted to a JSON file so
state survives restarts.
"""
import copy
import json
import threading
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .errors import DocumentNotFoundError, StoreError, TransactionConflictError
from .logger import get_logger

logger = get_logger(__name__)


@dataclass
class DocumentSnapshot:
    """Point-in-time copy of one document."""
    id: str
    path: str
    data: Optional[Dict[str, Any]]

    @property
    def exists(self) -> bool:
        return self.data is not None


Snapshot = Union[DocumentSnapshot, List[DocumentSnapshot]]
Listener = Callable[[Snapshot], None]


class Transaction:
    """Read-modify-write handle for a single document."""

    def __init__(self, path: str, data: Optional[Dict[str, Any]]):
        self.path = path
        self._data = data
        self._writes: Optional[Dict[str, Any]] = None
        self._merge = True

    def get(self) -> Optional[Dict[str, Any]]:
        """The document as it was when the transaction attempt started."""
        return copy.deepcopy(self._data)

    def set(self, fields: Dict[str, Any], merge: bool = True) -> None:
        """Stage a write; applied only if nobody changed the document meanwhile."""
        self._writes = copy.deepcopy(fields)
        self._merge = merge

    @property
    def has_writes(self) -> bool:
        return self._writes is not None


class DocumentStore:
    """Transactional key-value document store with realtime listeners."""

    MAX_TRANSACTION_ATTEMPTS = 5

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            db_path: JSON file to persist to; None keeps everything in memory
        """
        self.db_path = Path(db_path) if db_path else None
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._versions: Dict[str, int] = {}
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = threading.RLock()
        self._notify_lock = threading.RLock()
        self.load()

    # ── Paths ────────────────────────────────────────────────────────

    @staticmethod
    def _split(path: str) -> Tuple[str, Optional[str]]:
        parts = [p for p in path.strip('/').split('/') if p]
        if len(parts) == 1:
            return parts[0], None
        if len(parts) == 2:
            return parts[0], parts[1]
        raise ValueError(f"Invalid store path: {path!r}")

    def _split_doc(self, path: str) -> Tuple[str, str]:
        collection, doc_id = self._split(path)
        if doc_id is None:
            raise ValueError(f"Expected a document path, got collection path {path!r}")
        return collection, doc_id

    # ── Persistence ──────────────────────────────────────────────────

    def load(self) -> None:
        """Load documents from the JSON file, if one is configured."""
        if not self.db_path:
            return
        if not self.db_path.exists():
            logger.info(f"[STORE] No store file at {self.db_path}, starting empty")
            return
        try:
            with open(self.db_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            self._collections = data.get('collections', {})
            total = sum(len(docs) for docs in self._collections.values())
            logger.info(f"[STORE] Loaded {total} document(s) in {len(self._collections)} collection(s) from {self.db_path}")
        except (json.JSONDecodeError, IOError) as e:
            logger.error(f"[STORE] Error loading store from {self.db_path}: {e}", exc_info=True)
            self._collections = {}

    def _save(self) -> None:
        if not self.db_path:
            return
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.db_path, 'w', encoding='utf-8') as f:
                json.dump({'collections': self._collections}, f, indent=2, ensure_ascii=False)
            logger.debug(f"[STORE] Saved store to {self.db_path}")
        except IOError as e:
            logger.error(f"[STORE] Error saving store to {self.db_path}: {e}")

    # ── Reads ────────────────────────────────────────────────────────

    def _read(self, path: str) -> Snapshot:
        collection, doc_id = self._split(path)
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id is None:
                return [
                    DocumentSnapshot(id=i, path=f"{collection}/{i}", data=copy.deepcopy(d))
                    for i, d in docs.items()
                ]
            data = docs.get(doc_id)
            return DocumentSnapshot(id=doc_id, path=f"{collection}/{doc_id}",
                                    data=copy.deepcopy(data) if data is not None else None)

    def get_once(self, path: str) -> Snapshot:
        """One-shot read of a document or a whole collection."""
        return self._read(path)

    def subscribe(self, path: str, listener: Listener) -> Callable[[], None]:
        """
        Listen to a document or collection.

        The listener receives the current snapshot right away and a full new
        snapshot after every committed change.

        Returns:
            Callable that removes the listener
        """
        self._split(path)
        key = path.strip('/')
        with self._lock:
            self._listeners.setdefault(key, []).append(listener)
        self._deliver(listener, key)

        def unsubscribe() -> None:
            with self._lock:
                listeners = self._listeners.get(key, [])
                if listener in listeners:
                    listeners.remove(listener)

        return unsubscribe

    # ── Writes ───────────────────────────────────────────────────────

    def _bump(self, collection: str, doc_id: str) -> None:
        path = f"{collection}/{doc_id}"
        self._versions[path] = self._versions.get(path, 0) + 1

    def _apply(self, collection: str, doc_id: str, fields: Dict[str, Any], merge: bool) -> None:
        docs = self._collections.setdefault(collection, {})
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(fields))
        else:
            docs[doc_id] = copy.deepcopy(fields)
        self._bump(collection, doc_id)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a generated id and return the id."""
        doc_id = uuid.uuid4().hex[:20]
        with self._lock:
            self._apply(collection, doc_id, data, merge=False)
            self._save()
        logger.debug(f"[STORE] Added {collection}/{doc_id}")
        self._notify(collection, doc_id)
        return doc_id

    def merge_write(self, path: str, fields: Dict[str, Any]) -> None:
        """Create the document or merge fields into it, leaving other fields untouched."""
        collection, doc_id = self._split_doc(path)
        with self._lock:
            self._apply(collection, doc_id, fields, merge=True)
            self._save()
        self._notify(collection, doc_id)

    def update(self, path: str, fields: Dict[str, Any]) -> None:
        """Merge fields into an existing document."""
        collection, doc_id = self._split_doc(path)
        with self._lock:
            if doc_id not in self._collections.get(collection, {}):
                raise DocumentNotFoundError(path)
            self._apply(collection, doc_id, fields, merge=True)
            self._save()
        self._notify(collection, doc_id)

    def delete(self, path: str) -> None:
        collection, doc_id = self._split_doc(path)
        with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                return
            del docs[doc_id]
            self._bump(collection, doc_id)
            self._save()
        logger.debug(f"[STORE] Deleted {path}")
        self._notify(collection, doc_id)

    def transaction(self, path: str, fn: Callable[[Transaction], Any]) -> Any:
        """
        Run an atomic read-modify-write on one document.

        fn reads through txn.get() and stages writes with txn.set(). The
        staged write commits only if the document did not change since the
        read; otherwise fn runs again on fresh data. fn may therefore run
        more than once and must not have other side effects.

        Returns:
            Whatever fn returned on the committed attempt

        Raises:
            TransactionConflictError: every attempt lost to a concurrent writer
        """
        collection, doc_id = self._split_doc(path)
        key = f"{collection}/{doc_id}"
        for attempt in range(1, self.MAX_TRANSACTION_ATTEMPTS + 1):
            with self._lock:
                current = self._collections.get(collection, {}).get(doc_id)
                data = copy.deepcopy(current) if current is not None else None
                version = self._versions.get(key, 0)

            txn = Transaction(key, data)
            result = fn(txn)

            with self._lock:
                if self._versions.get(key, 0) != version:
                    logger.debug(f"[STORE] Transaction conflict on {key} (attempt {attempt}), retrying")
                    continue
                if txn.has_writes:
                    self._apply(collection, doc_id, txn._writes, merge=txn._merge)
                    self._save()
            if txn.has_writes:
                self._notify(collection, doc_id)
            return result

        raise TransactionConflictError(key, self.MAX_TRANSACTION_ATTEMPTS)

    # ── Listeners ────────────────────────────────────────────────────

    def _deliver(self, listener: Listener, key: str) -> None:
        with self._notify_lock:
            snapshot = self._read(key)
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"[STORE] Listener for {key} failed: {e}", exc_info=True)

    def _notify(self, collection: str, doc_id: str) -> None:
        # Serialized so listeners never see an older snapshot after a newer one
        with self._notify_lock:
            for key in (f"{collection}/{doc_id}", collection):
                with self._lock:
                    listeners = list(self._listeners.get(key, []))
                for listener in listeners:
                    self._deliver(listener, key)


def require_document(snapshot: Snapshot) -> DocumentSnapshot:
    if not isinstance(snapshot, DocumentSnapshot):
        raise StoreError("Expected a document snapshot, got a collection snapshot")
    return snapshot
