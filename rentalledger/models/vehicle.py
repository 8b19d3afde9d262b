from dataclasses import dataclass, field
from typing import Optional


@dataclass
class Vehicle:
    """
    Catalog entry. ``price`` is the per-day rate shown to renters.
    ``available`` is the admin's manual toggle, not the live occupancy
    derived from rentals.
    """
    id: Optional[str]
    name: str
    type: str
    price: float
    image: str = ""
    rating: float = 0.0
    description: str = ""
    available: Optional[bool] = True
    extra: dict = field(default_factory=dict, repr=False)

    FIELDS = ("name", "type", "price", "image", "rating", "description", "available")

    def snapshot(self) -> dict:
        """Vehicle fields copied into a rental at booking time."""
        return {
            "vehicleName": self.name,
            "vehicleImage": self.image,
            "vehicleType": self.type,
            "dailyRate": self.price,
        }

    @classmethod
    def from_doc(cls, doc: dict) -> "Vehicle":
        known = set(cls.FIELDS) | {"id"}
        return cls(
            id=doc.get("id"),
            name=doc.get("name") or "",
            type=doc.get("type") or "",
            price=doc.get("price") or 0,
            image=doc.get("image") or doc.get("imageUrl") or "",
            rating=doc.get("rating") or 0.0,
            description=doc.get("description") or "",
            available=doc.get("available", True),
            extra={k: v for k, v in doc.items() if k not in known},
        )

    def to_doc(self) -> dict:
        doc = dict(self.extra)
        doc.update({name: getattr(self, name) for name in self.FIELDS})
        return doc

    def to_dict(self) -> dict:
        return {"id": self.id, **self.to_doc()}
