"""
Project and challenge schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from entreprenapp.models.project import ProjectStage, ProjectStatus
from entreprenapp.schemas.base import BaseSchema


class ProjectCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    sector: Optional[str] = None
    stage: ProjectStage = ProjectStage.IDEA
    funding_goal: float = Field(0, ge=0)


class ProjectUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    sector: Optional[str] = None
    stage: Optional[ProjectStage] = None
    status: Optional[ProjectStatus] = None


class InvestmentRequest(BaseSchema):
    amount: float = Field(..., gt=0)


class ChallengeCreate(BaseSchema):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    sector: str = Field(..., min_length=1)
    deadline: datetime
    funding_amount: float = Field(..., gt=0)


class ChallengeUpdate(BaseSchema):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    sector: Optional[str] = None
    deadline: Optional[datetime] = None
    funding_amount: Optional[float] = Field(None, gt=0)
