from __future__ import annotations

import logging
import re
from typing import Optional

from rentalledger.exceptions import AuthenticationError, UserNotFoundError, ValidationError
from rentalledger.models.store import Store
from rentalledger.models.user import UserBase, user_from_doc
from rentalledger.services.common import _store, now_iso, text
from rentalledger.utils.constants import Collection, Role
from rentalledger.utils.security import check_hash, generate_hash

logger = logging.getLogger(__name__)

# Compile once at module import
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{6,}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _norm_email(email: Optional[str]) -> str:
    return text(email, "email").lower()


def _password(value) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError("Error: password must be text")
    return value or ""


class UserService:
    """Account registration, sign-in and profile reads/updates."""

    def __init__(self, store: Optional[Store] = None) -> None:
        self._store = store

    @property
    def store(self) -> Store:
        return self._store or _store()

    def register(self, email: str, password: str, name: str, phone: str,
                 role: str = Role.USER) -> UserBase:
        email = _norm_email(email)
        name = text(name, "name")
        phone = text(phone, "phone")
        password = _password(password)

        if not email or not password or not name or not phone:
            raise ValidationError("Error: email, password, name and phone are required")
        if not EMAIL_PATTERN.match(email):
            raise ValidationError("Error: email address is not valid")
        # Password policy (server-side enforcement)
        if not PASSWORD_PATTERN.match(password):
            raise ValidationError(
                "Error: password must have at least 6 characters, including A-Z, a-z, and 0-9"
            )
        if role not in (Role.USER, Role.ADMIN):
            raise ValidationError("Error: invalid role")

        with self.store.transaction() as tx:
            if tx.query(Collection.USERS, where=[("email", "==", email)]):
                raise ValidationError("Error: an account with this email already exists")
            now = now_iso()
            doc = {
                "email": email,
                "name": name,
                "phone": phone,
                "role": role,
                "passwordHash": generate_hash(password),
                "createdAt": now,
                "updatedAt": now,
            }
            uid = tx.add(Collection.USERS, doc)

        logger.info("Account %s registered (%s)", uid, role)
        return user_from_doc({"id": uid, **doc})

    def authenticate(self, email: str, password: str, role: Optional[str] = None) -> UserBase:
        """
        Check credentials. With ``role`` set, only accounts of that role may
        sign in; admins use the admin console, customers the booking surface.
        """
        password = _password(password)
        docs = self.store.query(Collection.USERS, where=[("email", "==", _norm_email(email))])
        doc = docs[0] if docs else None
        if not doc or not check_hash(password, doc.get("passwordHash") or ""):
            raise AuthenticationError("Error: invalid email or password")
        if role is not None and (doc.get("role") or Role.USER) != role:
            raise AuthenticationError("Error: this account cannot sign in here")
        return user_from_doc(doc)

    def get_profile(self, uid: str) -> UserBase:
        user = user_from_doc(self.store.get(Collection.USERS, uid))
        if user is None:
            raise UserNotFoundError(f"Error: user '{uid}' not found")
        return user

    def update_profile(self, uid: str, name: Optional[str] = None,
                       phone: Optional[str] = None) -> UserBase:
        """
        Update the profile fields a renter can edit. Existing rentals keep
        the identity they were booked with.
        """
        fields = {}
        if name is not None:
            fields["name"] = text(name, "name")
            if not fields["name"]:
                raise ValidationError("Error: name cannot be empty")
        if phone is not None:
            fields["phone"] = text(phone, "phone")
            if not fields["phone"]:
                raise ValidationError("Error: phone cannot be empty")
        if not fields:
            raise ValidationError("Error: nothing to update")
        fields["updatedAt"] = now_iso()
        if not self.store.update(Collection.USERS, uid, fields):
            raise UserNotFoundError(f"Error: user '{uid}' not found")
        return self.get_profile(uid)

    def ensure_admin(self, email: str, password: str, name: str = "Administrator") -> str:
        """
        Ensure an admin account with ``email`` exists.
        - If exists: reset its password hash and role (idempotent).
        - If not:   create it.
        """
        email = _norm_email(email)
        with self.store.transaction() as tx:
            existing = tx.query(Collection.USERS, where=[("email", "==", email)])
            if existing:
                uid = existing[0]["id"]
                tx.update(Collection.USERS, uid, {
                    "role": Role.ADMIN,
                    "passwordHash": generate_hash(password),
                    "updatedAt": now_iso(),
                })
                return uid
            now = now_iso()
            uid = tx.add(Collection.USERS, {
                "email": email,
                "name": name,
                "phone": "",
                "role": Role.ADMIN,
                "passwordHash": generate_hash(password),
                "createdAt": now,
                "updatedAt": now,
            })
        logger.info("Admin account %s created", email)
        return uid
