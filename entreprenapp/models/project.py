"""
Project Document Model for MongoDB.
"""
from enum import Enum
from typing import List, Optional

from bson import ObjectId
from pydantic import Field

from entreprenapp.models.base import BaseDocument


class ProjectStage(str, Enum):
    IDEA = "Idea"
    PROTOTYPE = "Prototype"
    LAUNCHED = "Launched"


class ProjectStatus(str, Enum):
    ACTIVE = "Active"
    FUNDED = "Funded"
    CLOSED = "Closed"


class ProjectDocument(BaseDocument):
    """
    Project document. ``investors`` holds ``{investor, amount, invested_at}``.

    Collection: projects
    """

    __collection__ = "projects"

    title: str
    description: str
    creator: ObjectId
    sector: Optional[str] = None
    stage: ProjectStage = ProjectStage.IDEA
    funding_goal: float = 0
    raised_amount: float = 0
    investors: List[dict] = Field(default_factory=list)
    status: ProjectStatus = ProjectStatus.ACTIVE
