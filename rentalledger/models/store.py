import logging
import os
import pickle
import threading
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from rentalledger.exceptions import MissingIndexError, PermissionDeniedError, TransportError
from rentalledger.utils.constants import Collection

from .subscription import Subscription

logger = logging.getLogger(__name__)

# ---- Paths ----
BASE_DIR = Path(__file__).resolve().parents[2]
DEFAULT_DATA_PATH = BASE_DIR / "data.pkl"

OPERATORS = ("==", "in")


# ------------------------- helpers -------------------------
def _normalize_where(where: Optional[Iterable]) -> tuple:
    """Turn user filters into a tuple of (field, op, value); reject unknown operators."""
    out = []
    for field_name, op, value in where or ():
        if op not in OPERATORS:
            raise ValueError(f"Unsupported operator {op!r}; use one of {OPERATORS}")
        if op == "in":
            value = tuple(value)
        out.append((field_name, op, value))
    return tuple(out)


def _matches(doc: dict, where: tuple) -> bool:
    for field_name, op, value in where:
        actual = doc.get(field_name)
        if op == "==" and actual != value:
            return False
        if op == "in" and actual not in value:
            return False
    return True


def _sort_key(value):
    # Missing values sort before any present value.
    return (value is not None, value if value is not None else 0)


@dataclass
class _Watch:
    watch_id: str
    collection: str
    where: tuple
    order_by: Optional[str]
    descending: bool
    callback: Callable[[list], None]


class Transaction:
    """
    Writes made through a transaction are applied immediately under the store
    lock and undone in reverse order if the block raises.
    """

    def __init__(self, store: "Store") -> None:
        self._store = store
        self._undo: list[tuple[str, str, Optional[dict]]] = []
        self.changes: list[tuple[str, str, Optional[dict], Optional[dict]]] = []

    # ---------- reads ----------
    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        return self._store._get(collection, doc_id)

    def query(self, collection: str, where=(), order_by: Optional[str] = None,
              descending: bool = False) -> list[dict]:
        return self._store._query(collection, _normalize_where(where), order_by, descending)

    # ---------- writes ----------
    def add(self, collection: str, doc: dict, doc_id: Optional[str] = None) -> str:
        doc_id = str(doc_id or uuid.uuid4())
        self._write(collection, doc_id, dict(doc))
        return doc_id

    def set(self, collection: str, doc_id: str, doc: dict) -> None:
        self._write(collection, str(doc_id), dict(doc))

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        current = self._store._docs(collection).get(str(doc_id))
        if current is None:
            return False
        merged = dict(current)
        merged.update(fields)
        self._write(collection, str(doc_id), merged)
        return True

    def delete(self, collection: str, doc_id: str) -> bool:
        if str(doc_id) not in self._store._docs(collection):
            return False
        self._write(collection, str(doc_id), None)
        return True

    def _write(self, collection: str, doc_id: str, new: Optional[dict]) -> None:
        docs = self._store._docs(collection)
        before = docs.get(doc_id)
        self._undo.append((collection, doc_id, before))
        if new is None:
            del docs[doc_id]
        else:
            docs[doc_id] = new
        self.changes.append((collection, doc_id, before, new))

    def rollback(self) -> None:
        for collection, doc_id, before in reversed(self._undo):
            docs = self._store._docs(collection)
            if before is None:
                docs.pop(doc_id, None)
            else:
                docs[doc_id] = before
        self._undo.clear()
        self.changes.clear()


class Store:
    """
    Document store shared by every surface: named collections of dict
    documents, equality/``in`` queries, push-style watches and transactions.

    ``path=None`` keeps everything in memory; otherwise the whole store is
    pickled to ``path`` after each committed write.
    """

    _inst = None
    _inst_lock = threading.Lock()

    def __init__(self, path: str | os.PathLike | None = None, indexes: Iterable = ()):
        self.path = str(path) if path else None
        self._data: dict[str, dict[str, dict]] = {
            Collection.USERS: {},
            Collection.VEHICLES: {},
            Collection.RENTALS: {},
        }
        self._indexes: set[tuple[str, frozenset, str]] = set()
        self._unreadable: set[str] = set()
        self._watches: dict[str, _Watch] = {}
        self._rw = threading.RLock()

        for index in indexes:
            self.add_index(*index)

        if self.path:
            logger.info("[Store] Using file: %s", self.path)
            self._load()

    # ---------- Singleton ----------
    @classmethod
    def instance(cls, path: str | os.PathLike | None = None):
        """Return the process-wide Store used by scripts outside an app context."""
        with cls._inst_lock:
            if cls._inst is None:
                cls._inst = Store(path or DEFAULT_DATA_PATH)
        return cls._inst

    # ---------- Raw collections (seeding and maintenance scripts) ----------
    @property
    def users(self) -> dict[str, dict]:
        return self._docs(Collection.USERS)

    @property
    def vehicles(self) -> dict[str, dict]:
        return self._docs(Collection.VEHICLES)

    @property
    def rentals(self) -> dict[str, dict]:
        return self._docs(Collection.RENTALS)

    def _docs(self, collection: str) -> dict[str, dict]:
        return self._data.setdefault(collection, {})

    def clear(self) -> None:
        """Drop every document in every collection and persist the empty store."""
        with self._rw:
            for docs in self._data.values():
                docs.clear()
            self.save()

    # ---------- Persistence ----------
    def _load(self):
        """Load data from the pickle file, or start empty if unavailable or invalid."""
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "rb") as f:
                data = pickle.load(f)
        except Exception as e:
            logger.warning("[Store] Load failed (%s); starting empty.", e)
            return

        if isinstance(data, dict) and all(isinstance(v, dict) for v in data.values()):
            for name, docs in data.items():
                self._data[name] = docs
            logger.info(
                "[Store] Loaded: %s",
                ", ".join(f"{name}={len(docs)}" for name, docs in self._data.items()),
            )
        else:
            # Incompatible data format: back up the old file and start empty
            try:
                bak = self.path + ".bak"
                os.replace(self.path, bak)
                logger.warning("[Store] Incompatible store (%s); backed up to %s. Starting empty.",
                               type(data).__name__, bak)
            except OSError as e:
                logger.error("[Store] Backup failed: %s", e)

    def _dump(self):
        """Write the in-memory data to the pickle file safely (atomic replace)."""
        if not self.path:
            return
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp = self.path + ".tmp"
        with open(tmp, "wb") as f:
            pickle.dump(self._data, f, protocol=pickle.HIGHEST_PROTOCOL)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, self.path)

    def save(self):
        """Thread-safe save method."""
        with self._rw:
            try:
                self._dump()
            except OSError as e:
                raise TransportError(f"Error: could not persist store ({e})") from e

    # ---------- Indexes ----------
    def add_index(self, collection: str, *fields: str) -> None:
        """
        Declare a composite index: the leading fields are filtered on, the
        last one is the ordering field.
        """
        if len(fields) < 2:
            raise ValueError("A composite index needs at least one filter field and an order field")
        self._indexes.add((collection, frozenset(fields[:-1]), fields[-1]))

    def _check_index(self, collection: str, where: tuple, order_by: Optional[str]) -> None:
        if not order_by:
            return
        filtered = frozenset(f for f, _, _ in where if f != order_by)
        if filtered and (collection, filtered, order_by) not in self._indexes:
            raise MissingIndexError(
                f"The query on '{collection}' filtered by {sorted(filtered)} "
                f"and ordered by '{order_by}' requires an index"
            )

    # ---------- Access rules ----------
    def deny_reads(self, collection: str) -> None:
        """Refuse every read of ``collection`` (and watches on it) until allowed again."""
        with self._rw:
            self._unreadable.add(collection)

    def allow_reads(self, collection: str) -> None:
        with self._rw:
            self._unreadable.discard(collection)

    def _check_access(self, collection: str) -> None:
        if collection in self._unreadable:
            raise PermissionDeniedError(
                f"Error: missing or insufficient permissions to read '{collection}'"
            )

    # ---------- Reads ----------
    def _get(self, collection: str, doc_id: str) -> Optional[dict]:
        self._check_access(collection)
        doc = self._docs(collection).get(str(doc_id))
        if doc is None:
            return None
        return {"id": str(doc_id), **doc}

    def _query(self, collection: str, where: tuple, order_by: Optional[str],
               descending: bool) -> list[dict]:
        self._check_access(collection)
        self._check_index(collection, where, order_by)
        rows = [{"id": k, **v} for k, v in self._docs(collection).items() if _matches(v, where)]
        if order_by:
            rows.sort(key=lambda d: _sort_key(d.get(order_by)), reverse=descending)
        return rows

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        """Return a copy of the document with its id under ``"id"``, or None."""
        with self._rw:
            return self._get(collection, doc_id)

    def query(self, collection: str, where=(), order_by: Optional[str] = None,
              descending: bool = False) -> list[dict]:
        """Return copies of every matching document, optionally ordered."""
        where = _normalize_where(where)
        with self._rw:
            return self._query(collection, where, order_by, descending)

    # ---------- Writes ----------
    @contextmanager
    def transaction(self):
        """
        Run a read-check-write block atomically. Raising inside the block
        undoes every write made through the transaction.
        """
        with self._rw:
            tx = Transaction(self)
            try:
                yield tx
            except BaseException:
                if tx.changes:
                    logger.warning("[Store] Transaction aborted; rolled back %d write(s)", len(tx.changes))
                tx.rollback()
                raise
            self._commit(tx)

    def _commit(self, tx: Transaction) -> None:
        if not tx.changes:
            return
        changes = list(tx.changes)
        try:
            self._dump()
        except OSError as e:
            tx.rollback()
            logger.error("[Store] Persist failed (%s); rolled back %d write(s)", e, len(changes))
            raise TransportError(f"Error: could not persist changes ({e})") from e
        self._notify(changes)

    def add(self, collection: str, doc: dict) -> str:
        """Create a document and return its store-assigned id."""
        with self.transaction() as tx:
            return tx.add(collection, doc)

    def set(self, collection: str, doc_id: str, doc: dict) -> None:
        with self.transaction() as tx:
            tx.set(collection, doc_id, doc)

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        """Merge ``fields`` into an existing document; False if it does not exist."""
        with self.transaction() as tx:
            return tx.update(collection, doc_id, fields)

    def delete(self, collection: str, doc_id: str) -> bool:
        with self.transaction() as tx:
            return tx.delete(collection, doc_id)

    # ---------- Watches ----------
    def watch(self, collection: str, callback: Callable[[list], None], where=(),
              order_by: Optional[str] = None, descending: bool = False) -> Subscription:
        """
        Register a live query. ``callback`` gets the full result set now and
        after every committed write touching a matching document.
        """
        where = _normalize_where(where)
        with self._rw:
            self._check_access(collection)
            self._check_index(collection, where, order_by)
            w = _Watch(str(uuid.uuid4()), collection, where, order_by, descending, callback)
            self._watches[w.watch_id] = w
            self._deliver(w)
        return Subscription(self, w.watch_id)

    def unwatch(self, watch_id: str) -> bool:
        with self._rw:
            return self._watches.pop(watch_id, None) is not None

    def watch_count(self, collection: Optional[str] = None) -> int:
        with self._rw:
            return sum(1 for w in self._watches.values() if collection in (None, w.collection))

    def _notify(self, changes: list) -> None:
        for w in list(self._watches.values()):
            touched = any(
                coll == w.collection and (
                    (before is not None and _matches(before, w.where))
                    or (after is not None and _matches(after, w.where))
                )
                for coll, _, before, after in changes
            )
            # A listener may have cancelled another watch during this loop.
            if touched and w.watch_id in self._watches:
                self._deliver(w)

    def _deliver(self, w: _Watch) -> None:
        try:
            rows = self._query(w.collection, w.where, w.order_by, w.descending)
        except PermissionDeniedError as e:
            logger.warning("[Store] Listener %s on '%s' skipped: %s", w.watch_id[:8], w.collection, e)
            return
        try:
            w.callback(rows)
        except Exception:
            logger.exception("[Store] Listener %s on '%s' failed", w.watch_id[:8], w.collection)
