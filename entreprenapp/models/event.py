"""
Event Document Model for MongoDB.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field

from entreprenapp.models.base import BaseDocument, MediaFile, utcnow


class EventStatus(str, Enum):
    UPCOMING = "Upcoming"
    ONGOING = "Ongoing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class Currency(str, Enum):
    USD = "USD"
    EUR = "EUR"
    XOF = "XOF"


class PaymentMethod(str, Enum):
    MOBILE_MONEY = "mobile_money"
    BANK_CARD = "bank_card"
    TRANSFER = "transfer"


# Registration is refused once an event reaches one of these
CLOSED_EVENT_STATUSES = (EventStatus.COMPLETED.value, EventStatus.CANCELLED.value)


class Registration(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True, use_enum_values=True)

    user: ObjectId
    name: Optional[str] = None
    email: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None
    paid: bool = False
    amount: float = 0
    registered_at: datetime = Field(default_factory=utcnow)


class EventDocument(BaseDocument):
    """
    Event document.

    Collection: events
    """

    __collection__ = "events"

    title: str
    description: str
    organizer: ObjectId
    image: Optional[MediaFile] = None
    location: str
    category: str = "Autre"
    start_date: datetime
    end_date: datetime
    seats: int = 0
    is_paid: bool = False
    price: float = 0
    currency: Currency = Currency.EUR
    payment_methods: List[PaymentMethod] = Field(default_factory=list)
    status: EventStatus = EventStatus.UPCOMING
    registrations: List[dict] = Field(default_factory=list)
    participants: List[ObjectId] = Field(default_factory=list)
