import uuid
from decimal import Decimal
from typing import Any, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator

Currency = Literal["EUR", "USD"]
MaterialType = Literal["book", "article", "presentation", "exercises"]

class MaterialCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=140)
    description: str = Field(..., min_length=1, max_length=520)
    price: Decimal = Field(..., ge=0)
    currency: Currency
    type: MaterialType

class MaterialUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=140)
    description: str | None = Field(None, min_length=1, max_length=520)
    price: Decimal | None = Field(None, ge=0)
    currency: Currency | None = None
    type: MaterialType | None = None

class MaterialOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: str
    price: float
    currency: str
    type: str
    file: str
    author: str
    purchasers: list[str] = []
    courses: list[str] = []

    @field_validator("price", mode="before")
    @classmethod
    def _price_as_float(cls, v):
        return float(v) if isinstance(v, Decimal) else v

class MaterialDetailOut(MaterialOut):
    review: Any = None

class PurchaserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    username: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    profile_picture: str | None = None
    plan: str | None = None

class MaterialPurchasersOut(BaseModel):
    purchasers: list[str]
    users: list[PurchaserProfile] = []
