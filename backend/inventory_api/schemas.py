from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional

class ProductBase(BaseModel):
    name: str
    unit: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    stock: int = Field(ge=0)
    status: Optional[str] = None
    image: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Name is required")
        return value

    @field_validator("stock", mode="before")
    @classmethod
    def _reject_bool_stock(cls, value):
        # JSON true/false would otherwise coerce to 1/0.
        if isinstance(value, bool):
            raise ValueError("Stock must be a number greater than or equal to 0")
        return value

class ProductCreate(ProductBase):
    pass

class ProductUpdate(ProductBase):
    """Full replacement record for PUT; every column is overwritten."""

class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    unit: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    stock: int
    status: Optional[str] = None
    image: Optional[str] = None

class InventoryLogResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

    id: int
    product_id: int
    old_stock: int
    new_stock: int
    changed_by: Optional[str] = None
    timestamp: str

class DuplicateEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    existing_id: int

class ImportSummary(BaseModel):
    added: int = 0
    skipped: int = 0
    duplicates: list[DuplicateEntry] = Field(default_factory=list)
