"""
Event schemas.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import Field, model_validator

from entreprenapp.models.base import MediaFile
from entreprenapp.models.event import Currency, EventStatus, PaymentMethod
from entreprenapp.schemas.base import BaseSchema


class EventCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    category: str = "Autre"
    start_date: datetime
    end_date: datetime
    seats: int = Field(0, ge=0)
    is_paid: bool = False
    price: float = Field(0, ge=0)
    currency: Currency = Currency.EUR
    payment_methods: List[PaymentMethod] = Field(default_factory=list)
    image: Optional[MediaFile] = None

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.end_date <= self.start_date:
            raise ValueError("La date de fin doit être postérieure à la date de début")
        return self


class EventUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    location: Optional[str] = None
    category: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    seats: Optional[int] = Field(None, ge=0)
    is_paid: Optional[bool] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[Currency] = None
    payment_methods: Optional[List[PaymentMethod]] = None
    status: Optional[EventStatus] = None
    image: Optional[MediaFile] = None


class EventRegistrationRequest(BaseSchema):
    name: Optional[str] = None
    email: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
