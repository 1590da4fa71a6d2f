"""Request/response schemas for product endpoints."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProductWrite(BaseModel):
    """Body for creating or updating a product. No image upload: img_url is a plain link."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=4000)
    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    img_url: str | None = Field(default=None, max_length=2048)
    sku: str = Field(default="", max_length=64)
    stock: int = Field(default=0, ge=0)
    category_id: int = Field(..., ge=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must be non-empty")
        return v.strip()


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    price: Decimal
    img_url: str | None = None
    sku: str
    stock: int
    category_id: int
    created_at: datetime
    updated_at: datetime | None = None


class ProductPage(BaseModel):
    """One page of products plus the numbers needed to request the others."""

    page_number: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    items: list[ProductRead] = Field(default_factory=list)


class PurchaseResponse(BaseModel):
    message: str
    remaining_stock: int = Field(..., ge=0)
