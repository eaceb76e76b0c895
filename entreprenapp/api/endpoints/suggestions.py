"""
Connection suggestions and public profile pages.
"""
from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from entreprenapp.api.deps import get_notification_service
from entreprenapp.api.endpoints.friends import send_friend_request
from entreprenapp.core.auth import get_current_user
from entreprenapp.core.exceptions import NotFoundException
from entreprenapp.db.mongodb import get_database
from entreprenapp.models.base import parse_object_id, same_id
from entreprenapp.models.friend import FriendRequestStatus
from entreprenapp.models.post import PostVisibility
from entreprenapp.models.user import PUBLIC_USER_PROJECTION, active_user_filter, public_user
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.friend import SuggestionRequest
from entreprenapp.services.notifications import NotificationService

router = APIRouter(prefix="/suggestions", tags=["Suggestions"])

SUGGESTION_LIMIT = 10
PROFILE_EVENTS_LIMIT = 6
PROFILE_PROJECTS_LIMIT = 6
PROFILE_POSTS_LIMIT = 5


@router.get("/", summary="People the current user may know")
async def connection_suggestions(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    me = current_user["_id"]
    excluded = [me, *current_user.get("friends", [])]

    requests = await db.friend_requests.find({
        "$or": [{"sender": me}, {"receiver": me}],
        "status": {"$in": [FriendRequestStatus.PENDING.value, FriendRequestStatus.REJECTED.value]},
    }).to_list(length=None)
    excluded.extend(r["receiver"] if same_id(r["sender"], me) else r["sender"] for r in requests)

    suggestions = await db.users.find(
        active_user_filter(_id={"$nin": excluded}, is_verified=True),
        PUBLIC_USER_PROJECTION,
    ).limit(SUGGESTION_LIMIT).to_list(length=SUGGESTION_LIMIT)
    return success_response(suggestions, count=len(suggestions))


@router.post("/request", status_code=status.HTTP_201_CREATED, summary="Send a friend request from suggestions")
async def request_connection(
    data: SuggestionRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    request = await send_friend_request(db, notifications, current_user, data.target_user_id)
    return success_response(request, "Friend request sent successfully")


@router.get("/profile/{user_id}", summary="Public profile with recent activity")
async def user_profile(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    user_oid = parse_object_id(user_id, "Invalid user ID")
    user = await db.users.find_one(active_user_filter(_id=user_oid))
    if not user:
        raise NotFoundException("User not found")
    if not user.get("is_verified"):
        raise NotFoundException("User account not activated")

    events = await db.events.find(
        {"$or": [{"organizer": user_oid}, {"participants": user_oid}]},
        {"registrations": 0},
    ).sort("start_date", DESCENDING).limit(PROFILE_EVENTS_LIMIT).to_list(length=PROFILE_EVENTS_LIMIT)
    for event in events:
        event["participants"] = len(event.get("participants", []))

    projects = await db.projects.find({"creator": user_oid}).sort(
        "created_at", DESCENDING
    ).limit(PROFILE_PROJECTS_LIMIT).to_list(length=PROFILE_PROJECTS_LIMIT)

    is_self = same_id(user_oid, current_user["_id"])
    visible = [PostVisibility.PUBLIC.value]
    if is_self:
        visible.extend([PostVisibility.CONNECTIONS.value, PostVisibility.PRIVATE.value])
    elif any(same_id(f, user_oid) for f in current_user.get("friends", [])):
        visible.append(PostVisibility.CONNECTIONS.value)
    posts = await db.posts.find({"author": user_oid, "visibility": {"$in": visible}}).sort(
        "created_at", DESCENDING
    ).limit(PROFILE_POSTS_LIMIT).to_list(length=PROFILE_POSTS_LIMIT)

    return success_response({
        "user": public_user(user),
        "events": events,
        "projects": projects,
        "posts": posts,
    })
