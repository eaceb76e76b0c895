"""
Project endpoints.

Entrepreneurs and startups publish projects; investors fund them. An
investor may invest once per project, and the project is marked Funded as
soon as the raised amount reaches its goal.
"""
import logging

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from entreprenapp.core.auth import require_roles
from entreprenapp.core.exceptions import BadRequestException, ConflictException, NotFoundException
from entreprenapp.core.ownership import collection_loader, require_ownership
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.project import ProjectDocument, ProjectStatus
from entreprenapp.models.user import UserRole
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.project import InvestmentRequest, ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/project", tags=["Projects"])

PROJECT_NOT_FOUND = "Project not found"

PROJECT_CREATOR_ROLES = (
    UserRole.ADMIN.value,
    UserRole.SUPER_ADMIN.value,
    UserRole.ENTREPRENEUR.value,
    UserRole.STARTUP.value,
)

owned_project = require_ownership(
    collection_loader("projects"),
    "creator",
    not_found=PROJECT_NOT_FOUND,
    forbidden="Not authorized to update this project",
)

deletable_project = require_ownership(
    collection_loader("projects"),
    "creator",
    not_found=PROJECT_NOT_FOUND,
    forbidden="Not authorized to delete this project",
    allow_admin=True,
)


async def populate_project(db: AsyncIOMotorDatabase, projects: list) -> list:
    await populate(db, projects, "creator")
    investments = [entry for project in projects for entry in project.get("investors", [])]
    await populate(db, investments, "investor")
    return projects


@router.post("/create-project", status_code=status.HTTP_201_CREATED, summary="Create a project")
async def create_project(
    data: ProjectCreate,
    current_user: dict = Depends(require_roles(*PROJECT_CREATOR_ROLES)),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    project = await ProjectDocument(creator=current_user["_id"], **data.model_dump()).insert(db)
    logger.info(f"Project created: {project['title']} by {current_user['_id']}")
    return success_response(project, "Project created successfully")


@router.get("/", summary="List projects")
async def list_projects(db: AsyncIOMotorDatabase = Depends(get_database)):
    projects = await db.projects.find().sort("created_at", DESCENDING).to_list(length=None)
    await populate_project(db, projects)
    return success_response(projects, count=len(projects))


@router.get("/{id}", summary="Get a project")
async def get_project(id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    project = await db.projects.find_one({"_id": parse_object_id(id, "Invalid project ID")})
    if not project:
        raise NotFoundException(PROJECT_NOT_FOUND)
    await populate_project(db, [project])
    return success_response(project)


@router.put("/{id}/edit", summary="Update a project")
async def update_project(
    data: ProjectUpdate,
    project: dict = Depends(owned_project),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    changes = data.changes()
    if not changes:
        raise BadRequestException(
            "Invalid updates! Only title, description, sector, stage, and status can be modified"
        )

    changes["updated_at"] = utcnow()
    updated = await db.projects.find_one_and_update(
        {"_id": project["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return success_response(updated, "Project updated successfully")


@router.delete("/{id}/delete", summary="Delete a project")
async def delete_project(
    project: dict = Depends(deletable_project),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await db.projects.delete_one({"_id": project["_id"]})
    return success_response(message="Project deleted successfully")


@router.post("/{id}/invest", summary="Invest in a project")
async def invest_in_project(
    id: str,
    data: InvestmentRequest,
    current_user: dict = Depends(require_roles(UserRole.INVESTOR.value)),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    project_id = parse_object_id(id, "Invalid project ID")
    project = await db.projects.find_one({"_id": project_id})
    if not project:
        raise NotFoundException(PROJECT_NOT_FOUND)
    if any(same_id(entry.get("investor"), current_user["_id"]) for entry in project.get("investors", [])):
        raise BadRequestException("You have already invested in this project")
    if project.get("status") != ProjectStatus.ACTIVE.value:
        raise BadRequestException("This project is not open for investment")

    investment = {"investor": current_user["_id"], "amount": data.amount, "invested_at": utcnow()}

    # Both checks are repeated in the filter so concurrent investments serialize on the document
    updated = await db.projects.find_one_and_update(
        {
            "_id": project_id,
            "status": ProjectStatus.ACTIVE.value,
            "investors.investor": {"$ne": current_user["_id"]},
        },
        {
            "$push": {"investors": investment},
            "$inc": {"raised_amount": data.amount},
            "$set": {"updated_at": utcnow()},
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise ConflictException("Investment could not be recorded, please retry")

    if updated["raised_amount"] >= updated.get("funding_goal", 0):
        updated = await db.projects.find_one_and_update(
            {"_id": project_id, "status": ProjectStatus.ACTIVE.value},
            {"$set": {"status": ProjectStatus.FUNDED.value}},
            return_document=ReturnDocument.AFTER,
        ) or await db.projects.find_one({"_id": project_id})
        logger.info(f"Project {project_id} reached its funding goal")

    return success_response(
        {
            "project_id": updated["_id"],
            "raised_amount": updated["raised_amount"],
            "funding_goal": updated.get("funding_goal", 0),
            "status": updated["status"],
        },
        "Investment successful",
    )
