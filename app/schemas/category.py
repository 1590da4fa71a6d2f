"""Request/response schemas for category endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CategoryWrite(BaseModel):
    """Body for creating or renaming a category."""

    name: str = Field(..., min_length=3, max_length=50, description="Category name")

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 3:
            raise ValueError("name must have at least 3 non-blank characters")
        return v


class CategoryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    created_at: datetime
