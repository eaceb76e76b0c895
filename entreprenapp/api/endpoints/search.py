"""
Global search across posts, users, events, challenges and projects.

The query text is escaped before being used as a case-insensitive regex,
so user input never reaches MongoDB as a pattern.
"""
import re
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from entreprenapp.core.exceptions import BadRequestException
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import to_public, utcnow
from entreprenapp.models.event import EventStatus
from entreprenapp.models.post import PostVisibility
from entreprenapp.models.project import ProjectStatus
from entreprenapp.models.user import PUBLIC_USER_PROJECTION

router = APIRouter(prefix="/search", tags=["Search"])

MIN_QUERY_LENGTH = 2
MAX_QUERY_LENGTH = 200


@dataclass(frozen=True)
class SearchTarget:
    """How one result category is queried."""

    collection: str
    fields: Tuple[str, ...]
    sort: Tuple[str, int]
    extra_filter: Callable[[], dict]
    owner_field: Optional[str] = None
    projection: Optional[dict] = None


SEARCH_TARGETS = {
    "posts": SearchTarget(
        collection="posts",
        fields=("content",),
        sort=("created_at", DESCENDING),
        extra_filter=lambda: {
            "visibility": {"$in": [PostVisibility.PUBLIC.value, PostVisibility.CONNECTIONS.value]}
        },
        owner_field="author",
    ),
    "users": SearchTarget(
        collection="users",
        fields=("fullname", "username", "bio"),
        sort=("created_at", DESCENDING),
        extra_filter=lambda: {"deleted_at": None, "is_verified": True},
        projection={**PUBLIC_USER_PROJECTION, "bio": 1},
    ),
    "events": SearchTarget(
        collection="events",
        fields=("title", "description", "location", "category"),
        sort=("start_date", ASCENDING),
        extra_filter=lambda: {
            "status": {"$in": [EventStatus.UPCOMING.value, EventStatus.ONGOING.value]}
        },
        owner_field="organizer",
        projection={"registrations": 0},
    ),
    "challenges": SearchTarget(
        collection="challenges",
        fields=("title", "description", "sector"),
        sort=("created_at", DESCENDING),
        extra_filter=lambda: {"deadline": {"$gte": utcnow()}},
        owner_field="organisation",
    ),
    "projects": SearchTarget(
        collection="projects",
        fields=("title", "description", "sector"),
        sort=("created_at", DESCENDING),
        extra_filter=lambda: {"status": ProjectStatus.ACTIVE.value},
        owner_field="creator",
    ),
}


def clean_query(q: Optional[str]) -> str:
    query = (q or "").strip()
    if len(query) < MIN_QUERY_LENGTH:
        raise BadRequestException(f"Query must be at least {MIN_QUERY_LENGTH} characters long")
    if len(query) > MAX_QUERY_LENGTH:
        raise BadRequestException(f"Query must be less than {MAX_QUERY_LENGTH} characters")
    return query


def text_filter(target: SearchTarget, query: str) -> dict:
    pattern = {"$regex": re.escape(query), "$options": "i"}
    return {"$or": [{field: pattern} for field in target.fields], **target.extra_filter()}


async def run_search(
    db: AsyncIOMotorDatabase, target: SearchTarget, query: str, skip: int, limit: int
) -> Tuple[list, int]:
    criteria = text_filter(target, query)
    collection = db[target.collection]
    documents = await collection.find(criteria, target.projection).sort(*target.sort).skip(
        skip
    ).limit(limit).to_list(length=limit)
    total = await collection.count_documents(criteria)
    if target.owner_field:
        await populate(db, documents, target.owner_field)
    return documents, total


@router.get("/", summary="Search the whole application")
async def search(
    q: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    limit: int = Query(10, ge=1, le=50),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    query = clean_query(q)

    if type:
        if type.lower() not in SEARCH_TARGETS:
            raise BadRequestException(
                f"Invalid type, expected one of: {', '.join(SEARCH_TARGETS)}"
            )
        names = [type.lower()]
    else:
        names = list(SEARCH_TARGETS)

    results = {name: [] for name in SEARCH_TARGETS}
    counts = {name: 0 for name in SEARCH_TARGETS}
    for name in names:
        results[name], counts[name] = await run_search(db, SEARCH_TARGETS[name], query, offset, limit)

    return {
        "success": True,
        "query": query,
        "results": to_public(results),
        "count": counts,
        "total": sum(counts.values()),
    }


@router.get("/suggestions", summary="Autocomplete suggestions")
async def search_suggestions(
    q: Optional[str] = Query(None),
    limit: int = Query(5, ge=1, le=10),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    query = (q or "").strip()
    suggestions = {"users": [], "posts": [], "events": []}
    if len(query) < MIN_QUERY_LENGTH:
        return {"success": True, "suggestions": suggestions}

    query = query[:MAX_QUERY_LENGTH]
    for name in suggestions:
        suggestions[name], _ = await run_search(db, SEARCH_TARGETS[name], query, 0, limit)
    return {"success": True, "suggestions": to_public(suggestions)}
