from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .store import Store


class Subscription:
    """
    Handle for a live query registered with ``Store.watch``.

    The watch keeps redelivering the full result set until the handle is
    cancelled. The handle is also callable, so it can be used wherever a
    plain disposer function is expected, and it works as a context manager.
    """

    def __init__(self, store: "Store", watch_id: str) -> None:
        self._store = store
        self._watch_id = watch_id
        self._active = True

    @property
    def watch_id(self) -> str:
        return self._watch_id

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        """Stop deliveries and release the watch. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._store.unwatch(self._watch_id)

    dispose = cancel

    def __call__(self) -> None:
        self.cancel()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"<Subscription {self._watch_id[:8]} {state}>"
