from typing import Optional

from pydantic import BaseModel, Field

from fintrack.models.enums import CategoryType


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType
    icon: Optional[str] = Field(None, max_length=255)


class CategoryResponse(BaseModel):
    id: str
    name: str
    type: CategoryType
    icon: Optional[str] = None

    class Config:
        from_attributes = True
