"""Smoobu API 응답 모델 (필드명은 kebab-case)"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


REVENUE_RESERVATION_TYPES = frozenset({"reservation", "modification of booking"})


class SmoobuRef(BaseModel):
    id: int
    name: Optional[str] = None


class SmoobuReservation(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int
    reference_id: Optional[str] = Field(default=None, alias="reference-id")
    type: str
    arrival: str  # "YYYY-MM-DD"
    departure: Optional[str] = None
    apartment: Optional[SmoobuRef] = None
    channel: Optional[SmoobuRef] = None
    guest_name: Optional[str] = Field(default=None, alias="guest-name")
    price: Optional[float] = None

    @property
    def counts_as_revenue(self) -> bool:
        return self.type in REVENUE_RESERVATION_TYPES


class SmoobuReservationPage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bookings: List[SmoobuReservation] = Field(default_factory=list)
    page_count: int = 1
    page_size: Optional[int] = None
    total_items: int = 0
    page: int = 1


class SmoobuApartment(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    currency: Optional[str] = None
    time_zone: Optional[str] = Field(default=None, alias="timeZone")
