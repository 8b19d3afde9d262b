from dataclasses import dataclass
from typing import Optional

from rentalledger.utils.constants import Role


@dataclass
class UserBase:
    """
    Base account model. The store keeps raw dicts; we wrap them into rich
    objects so permission rules live on the account type.
    """
    uid: str
    email: str
    name: str = ""
    phone: str = ""
    role: str = Role.USER

    @property
    def is_admin(self) -> bool:
        return False

    def can_manage(self, rental) -> bool:
        """Whether this account may act on ``rental``; status legality is checked by the ledger."""
        return False

    def to_dict(self) -> dict:
        return {
            "uid": self.uid,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "role": self.role,
        }


class CustomerUser(UserBase):
    """
    Customers may only act on their own rentals.
    """

    def can_manage(self, rental) -> bool:
        return rental.user_id == self.uid


class AdminUser(UserBase):
    """
    Admins manage every rental.
    """

    @property
    def is_admin(self) -> bool:
        return True

    def can_manage(self, rental) -> bool:
        return True


def user_from_doc(doc: Optional[dict]) -> Optional[UserBase]:
    """Map a stored user dict to a rich user object."""
    if not doc:
        return None
    role = (doc.get("role") or Role.USER).lower()
    base = dict(
        uid=doc.get("id") or doc.get("uid"),
        email=doc.get("email") or "",
        name=doc.get("name") or "",
        phone=doc.get("phone") or "",
        role=role,
    )
    if role == Role.ADMIN:
        return AdminUser(**base)
    return CustomerUser(**base)
