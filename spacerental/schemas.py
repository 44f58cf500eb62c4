"""Pydantic schemas for bookings, line items, rooms and statistics."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .models import BookingStatus


class LineItem(BaseModel):
    """A service or product attached to a booking."""

    model_config = ConfigDict(extra="forbid")

    item_id: str = Field(..., min_length=1, max_length=64)
    price: float = Field(..., ge=0)
    quantity: int = Field(1, ge=1)

    @property
    def subtotal(self) -> float:
        return self.price * self.quantity


def items_total(items: List[LineItem]) -> float:
    return sum(item.subtotal for item in items)


class Booking(BaseModel):
    """A room reservation together with its priced line items.

    ``services_total``, ``products_total`` and ``total_price`` are derived and
    are recomputed by :meth:`reprice` whenever an addend changes.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    room_id: str
    status: BookingStatus = BookingStatus.PENDING
    start_time: datetime
    end_time: datetime
    duration: int = Field(..., gt=0)
    services: List[LineItem] = Field(default_factory=list)
    products: List[LineItem] = Field(default_factory=list)
    base_price: float = Field(..., ge=0)
    services_total: float = 0.0
    products_total: float = 0.0
    total_price: float = 0.0
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _sync_totals(self) -> "Booking":
        self.reprice()
        return self

    def reprice(self) -> None:
        self.services_total = items_total(self.services)
        self.products_total = items_total(self.products)
        self.total_price = self.base_price + self.services_total + self.products_total


class BookingCreate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    room_id: str = Field(..., min_length=1)
    start_time: datetime
    hours: int = Field(..., ge=1)
    services: List[LineItem] = Field(default_factory=list)
    products: List[LineItem] = Field(default_factory=list)


class BookingExtend(BaseModel):
    model_config = ConfigDict(extra="forbid")

    additional_hours: int = Field(..., ge=1)


class BookingItemsAdd(BaseModel):
    model_config = ConfigDict(extra="forbid")

    services: Optional[List[LineItem]] = None
    products: Optional[List[LineItem]] = None


class RoomRead(BaseModel):
    id: str
    name: str
    category: str
    hourly_rate: float
    min_hours: int
    max_hours: int
    capacity: int
    status: str

    model_config = {"from_attributes": True}


class OccupancyStats(BaseModel):
    room_id: str
    start_date: datetime
    end_date: datetime
    total_bookings: int
    total_hours: int
    total_revenue: float
    occupancy_rate: float


class ErrorBody(BaseModel):
    error: str
    code: str
