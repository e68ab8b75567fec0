"""Catalog domain models — pure dataclasses, no SQLAlchemy dependency.

Category -> Subcategory -> Service -> AddOn. Prices are int cents.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Category:
    id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class Subcategory:
    id: str
    category_id: str
    name: str
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class AddOn:
    id: str
    service_id: str
    title: str
    duration_days: int
    price: int
    created_at: datetime | None = None


@dataclass
class Service:
    id: str
    freelancer_id: str
    category_id: str
    subcategory_id: str
    title: str
    description: str
    price: int
    image_url: str | None = None
    is_approved: bool = False
    add_ons: list[AddOn] = field(default_factory=list)
    category_name: str | None = None
    subcategory_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_owned_by(self, freelancer_id: str) -> bool:
        return self.freelancer_id == freelancer_id

    def add_on_ids(self) -> set[str]:
        return {a.id for a in self.add_ons}


def group_services(
    services: list[Service], key: str
) -> dict[str, list[Service]]:
    """Group services by 'category' or 'subcategory' name, preserving order."""
    attr = "category_name" if key == "category" else "subcategory_name"
    groups: dict[str, list[Service]] = {}
    for svc in services:
        groups.setdefault(getattr(svc, attr) or "", []).append(svc)
    return groups
