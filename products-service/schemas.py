from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from models import CATEGORY_MAX_LENGTH, NAME_MAX_LENGTH


class ProductCreate(BaseModel):
    category: str = Field(min_length=1, max_length=CATEGORY_MAX_LENGTH)
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class ProductUpdate(BaseModel):
    # l'id vient du chemin, pas du corps
    category: str = Field(min_length=1, max_length=CATEGORY_MAX_LENGTH)
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)


class ProductResponse(BaseModel):
    """Forme exposée sur le réseau, projetée depuis l'entité persistée."""
    id: int
    category: str
    name: str

    model_config = ConfigDict(from_attributes=True)


class ProductPageResponse(BaseModel):
    items: List[ProductResponse]
    total_pages: int = Field(alias="totalPages")
    total_elements: int = Field(alias="totalElements")
    page: int
    size: int

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ErrorResponse(BaseModel):
    status: int
    error_type: str = Field(alias="errorType")
    message: str
    invalid_fields: Optional[List[str]] = Field(default=None, alias="fields")

    model_config = ConfigDict(populate_by_name=True)
