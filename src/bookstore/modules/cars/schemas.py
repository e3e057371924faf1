"""Pydantic schemas for car operations."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from bookstore.core.constants import MAX_NAME_LENGTH, MAX_VIN_LENGTH


class CarBase(BaseModel):
    make: str = Field("", max_length=MAX_NAME_LENGTH)
    model: str = Field("", max_length=MAX_NAME_LENGTH)
    year: int = 0
    vin: str = Field("", max_length=MAX_VIN_LENGTH)


class CarCreate(CarBase):
    pass


class CarUpdate(CarBase):
    pass


class CarResponse(CarBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID


class CarListResponse(BaseModel):
    items: list[CarResponse]
    total: int
    page: int
    page_size: int
