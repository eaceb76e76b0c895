"""
Challenge Document Model for MongoDB.
"""
from datetime import datetime
from typing import List

from bson import ObjectId
from pydantic import Field

from entreprenapp.models.base import BaseDocument


class ChallengeDocument(BaseDocument):
    """
    Challenge document published by an organisation.

    Collection: challenges
    """

    __collection__ = "challenges"

    title: str
    description: str
    organisation: ObjectId
    sector: str
    deadline: datetime
    funding_amount: float
    applicants: List[ObjectId] = Field(default_factory=list)
    selected_applicants: List[ObjectId] = Field(default_factory=list)
