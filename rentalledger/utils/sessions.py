"""
Explicit session contexts for the two surfaces.

Customers and admins are signed in under separate session keys, so a
browser can hold both without one leaking into the other. Views receive
the context they asked for instead of inspecting a shared global.
"""
from dataclasses import dataclass
from typing import Optional

from flask import session

from rentalledger.exceptions import UserNotFoundError
from rentalledger.models.user import UserBase
from rentalledger.services.user_service import UserService
from rentalledger.utils.constants import SessionKind


def _key(kind: str) -> str:
    return f"{kind}_uid"


@dataclass(frozen=True)
class SessionContext:
    kind: str
    user: UserBase

    @property
    def uid(self) -> str:
        return self.user.uid

    @property
    def is_admin(self) -> bool:
        return self.kind == SessionKind.ADMIN and self.user.is_admin


def load_context(kind: str) -> Optional[SessionContext]:
    """Resolve the signed-in account for ``kind``; None when absent or stale."""
    uid = session.get(_key(kind))
    if not uid:
        return None
    try:
        user = UserService().get_profile(uid)
    except UserNotFoundError:
        session.pop(_key(kind), None)
        return None
    if kind == SessionKind.ADMIN and not user.is_admin:
        return None
    if kind == SessionKind.CUSTOMER and user.is_admin:
        return None
    return SessionContext(kind=kind, user=user)


def sign_in(kind: str, user: UserBase) -> SessionContext:
    session[_key(kind)] = user.uid
    return SessionContext(kind=kind, user=user)


def sign_out(kind: str) -> None:
    session.pop(_key(kind), None)
