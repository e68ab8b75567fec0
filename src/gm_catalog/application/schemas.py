"""Pydantic schemas for gm_catalog API."""

from pydantic import BaseModel, Field

from src.gm_catalog.domain.models import AddOn, Category, Service, Subcategory
from src.gm_common.cents import cents_to_display
from src.gm_common.datetime_utils import iso_or_none

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)


class SubcategoryCreate(BaseModel):
    category_id: str
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = Field(None, max_length=1000)


class SubcategoryUpdate(CategoryUpdate):
    pass


class AddOnCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    duration_days: int = Field(..., gt=0, le=365)
    price_cents: int = Field(..., gt=0, description="Add-on price in cents")


class AddOnUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    duration_days: int | None = Field(None, gt=0, le=365)
    price_cents: int | None = Field(None, gt=0)


class ServiceCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    price_cents: int = Field(..., gt=0, description="Service price in cents")
    category_id: str
    subcategory_id: str
    add_ons: list[AddOnCreate] = Field(default_factory=list, max_length=20)


class ServiceUpdate(BaseModel):
    title: str | None = Field(None, min_length=3, max_length=200)
    description: str | None = Field(None, min_length=1, max_length=5000)
    price_cents: int | None = Field(None, gt=0)
    category_id: str | None = None
    subcategory_id: str | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str | None

    @classmethod
    def from_domain(cls, c: Category) -> "CategoryResponse":
        return cls(id=c.id, name=c.name, description=c.description)


class SubcategoryResponse(BaseModel):
    id: str
    category_id: str
    name: str
    description: str | None

    @classmethod
    def from_domain(cls, s: Subcategory) -> "SubcategoryResponse":
        return cls(id=s.id, category_id=s.category_id, name=s.name, description=s.description)


class AddOnResponse(BaseModel):
    id: str
    service_id: str
    title: str
    duration_days: int
    price_cents: int
    price_display: str

    @classmethod
    def from_domain(cls, a: AddOn) -> "AddOnResponse":
        return cls(
            id=a.id,
            service_id=a.service_id,
            title=a.title,
            duration_days=a.duration_days,
            price_cents=a.price,
            price_display=cents_to_display(a.price),
        )


class ServiceResponse(BaseModel):
    id: str
    freelancer_id: str
    category_id: str
    category_name: str | None
    subcategory_id: str
    subcategory_name: str | None
    title: str
    description: str
    price_cents: int
    price_display: str
    image_url: str | None
    is_approved: bool
    add_ons: list[AddOnResponse]
    created_at: str | None

    @classmethod
    def from_domain(cls, s: Service) -> "ServiceResponse":
        return cls(
            id=s.id,
            freelancer_id=s.freelancer_id,
            category_id=s.category_id,
            category_name=s.category_name,
            subcategory_id=s.subcategory_id,
            subcategory_name=s.subcategory_name,
            title=s.title,
            description=s.description,
            price_cents=s.price,
            price_display=cents_to_display(s.price),
            image_url=s.image_url,
            is_approved=s.is_approved,
            add_ons=[AddOnResponse.from_domain(a) for a in s.add_ons],
            created_at=iso_or_none(s.created_at),
        )


class ServiceGroup(BaseModel):
    name: str
    services: list[ServiceResponse]
