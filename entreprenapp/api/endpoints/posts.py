"""
Post endpoints.

Visibility rules: ``public`` posts are readable by anyone, ``connections``
posts by the author's friends, ``private`` posts by the author only.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from entreprenapp.api.deps import get_notification_service
from entreprenapp.core.auth import get_current_user, get_current_user_optional
from entreprenapp.core.exceptions import ForbiddenException, NotFoundException
from entreprenapp.core.ownership import DELETE_FORBIDDEN, collection_loader, require_ownership
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.post import PostDocument, PostVisibility
from entreprenapp.schemas.base import paginate, success_response
from entreprenapp.schemas.post import PostCreate, PostUpdate
from entreprenapp.services.notifications import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/post", tags=["Posts"])

POST_NOT_FOUND = "Post non trouvé"

owned_post = require_ownership(
    collection_loader("posts"),
    "author",
    param="post_id",
    not_found=POST_NOT_FOUND,
    forbidden="Vous n'avez pas la permission de modifier ce post",
)

deletable_post = require_ownership(
    collection_loader("posts"),
    "author",
    param="post_id",
    not_found=POST_NOT_FOUND,
    forbidden=DELETE_FORBIDDEN,
    allow_admin=True,
)


def visibility_filter(viewer: Optional[dict]) -> dict:
    """Query matching the posts ``viewer`` may read."""
    if not viewer:
        return {"visibility": PostVisibility.PUBLIC.value}
    return {
        "$or": [
            {"visibility": PostVisibility.PUBLIC.value},
            {"author": viewer["_id"]},
            {
                "visibility": PostVisibility.CONNECTIONS.value,
                "author": {"$in": viewer.get("friends", [])},
            },
        ]
    }


def can_view(post: dict, viewer: Optional[dict]) -> bool:
    visibility = post.get("visibility", PostVisibility.PUBLIC.value)
    if visibility == PostVisibility.PUBLIC.value:
        return True
    if not viewer:
        return False
    if same_id(post["author"], viewer["_id"]):
        return True
    if visibility == PostVisibility.CONNECTIONS.value:
        return any(same_id(post["author"], friend) for friend in viewer.get("friends", []))
    return False


def with_engagement(post: dict, viewer: Optional[dict]) -> dict:
    likes = post.get("likes", [])
    post["likes_count"] = len(likes)
    post["comments_count"] = len(post.get("comments", []))
    post["is_liked"] = bool(viewer) and any(same_id(v, viewer["_id"]) for v in likes)
    post["is_bookmarked"] = bool(viewer) and any(
        same_id(v, viewer["_id"]) for v in post.get("bookmarked_by", [])
    )
    return post


async def _get_post(db: AsyncIOMotorDatabase, post_id: str) -> dict:
    post = await db.posts.find_one({"_id": parse_object_id(post_id)})
    if not post:
        raise NotFoundException(POST_NOT_FOUND)
    return post


async def _toggle_membership(db: AsyncIOMotorDatabase, post: dict, field: str, user_id) -> tuple[dict, bool]:
    """Add or remove ``user_id`` from a list field; returns (post, now_member)."""
    is_member = any(same_id(v, user_id) for v in post.get(field, []))
    operator = "$pull" if is_member else "$addToSet"
    updated = await db.posts.find_one_and_update(
        {"_id": post["_id"]},
        {operator: {field: user_id}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise NotFoundException(POST_NOT_FOUND)
    return updated, not is_member


@router.post("/create-post", status_code=status.HTTP_201_CREATED, summary="Create a post")
async def create_post(
    data: PostCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    post = await PostDocument(
        author=current_user["_id"],
        content=data.content,
        visibility=data.visibility,
        media=data.media,
    ).insert(db)

    if data.visibility != PostVisibility.PRIVATE.value:
        await notifications.notify_new_post(
            current_user["_id"], current_user.get("friends", []), post["_id"], data.content
        )

    await populate(db, [post], "author")
    return success_response(with_engagement(post, current_user), "Post created successfully")


@router.get("/", summary="Posts of the current user")
async def my_posts(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    posts = await db.posts.find({"author": current_user["_id"]}).sort(
        "created_at", DESCENDING
    ).to_list(length=None)
    await populate(db, posts, "author")
    return success_response([with_engagement(p, current_user) for p in posts], count=len(posts))


@router.get("/public", summary="Feed of posts visible to the caller")
async def public_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=50),
    viewer: Optional[dict] = Depends(get_current_user_optional),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    query = visibility_filter(viewer)
    total = await db.posts.count_documents(query)
    posts = await db.posts.find(query).sort("created_at", DESCENDING).skip(
        (page - 1) * limit
    ).limit(limit).to_list(length=limit)

    await populate(db, posts, "author")
    return success_response(
        [with_engagement(p, viewer) for p in posts],
        pagination=paginate(page, limit, total),
    )


@router.get("/bookmarks", summary="Posts bookmarked by the current user")
async def bookmarked_posts(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    posts = await db.posts.find({"bookmarked_by": current_user["_id"]}).sort(
        "created_at", DESCENDING
    ).to_list(length=None)
    posts = [p for p in posts if can_view(p, current_user)]
    await populate(db, posts, "author")
    return success_response([with_engagement(p, current_user) for p in posts], count=len(posts))


@router.get("/is-bookmarked/{post_id}", summary="Whether the current user bookmarked a post")
async def is_bookmarked(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await _get_post(db, post_id)
    bookmarked = any(same_id(v, current_user["_id"]) for v in post.get("bookmarked_by", []))
    return success_response({"is_bookmarked": bookmarked})


@router.get("/shares/{post_id}", summary="Share count of a post")
async def share_count(post_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    post = await _get_post(db, post_id)
    return success_response({"shares_count": post.get("shares_count", 0)})


@router.get("/{post_id}", summary="Get a post")
async def get_post(
    post_id: str,
    viewer: Optional[dict] = Depends(get_current_user_optional),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await _get_post(db, post_id)
    if not can_view(post, viewer):
        raise ForbiddenException("Vous n'avez pas accès à ce post")

    await populate(db, [post], "author")
    return success_response(with_engagement(post, viewer))


@router.post("/like/{post_id}", summary="Like or unlike a post")
async def toggle_like(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    post = await _get_post(db, post_id)
    if not can_view(post, current_user):
        raise ForbiddenException("Vous n'avez pas accès à ce post")

    post, liked = await _toggle_membership(db, post, "likes", current_user["_id"])
    if liked:
        await notifications.notify_post_liked(current_user["_id"], post["author"], post["_id"])

    return success_response(
        {"likes_count": len(post.get("likes", [])), "is_liked": liked},
        "Post liked" if liked else "Post unliked",
    )


@router.post("/bookmark/{post_id}", summary="Bookmark or unbookmark a post")
async def toggle_bookmark(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await _get_post(db, post_id)
    post, bookmarked = await _toggle_membership(db, post, "bookmarked_by", current_user["_id"])
    return success_response(
        {"is_bookmarked": bookmarked},
        "Post bookmarked" if bookmarked else "Bookmark removed",
    )


@router.post("/share/{post_id}", summary="Record a share")
async def share_post(
    post_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    post = await db.posts.find_one_and_update(
        {"_id": parse_object_id(post_id)},
        {"$inc": {"shares_count": 1}},
        return_document=ReturnDocument.AFTER,
    )
    if not post:
        raise NotFoundException(POST_NOT_FOUND)
    return success_response({"shares_count": post["shares_count"]}, "Post shared")


@router.put("/edit/{post_id}", summary="Edit a post")
async def edit_post(
    data: PostUpdate,
    post: dict = Depends(owned_post),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    changes = {"updated_at": utcnow()}
    if data.content is not None:
        changes["content"] = data.content
    if data.visibility is not None:
        changes["visibility"] = data.visibility

    media = [
        m for m in post.get("media", [])
        if m.get("public_id") not in set(data.media_to_delete)
    ]
    media.extend(m.model_dump() for m in data.media)
    changes["media"] = media

    updated = await db.posts.find_one_and_update(
        {"_id": post["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    await populate(db, [updated], "author")
    return success_response(with_engagement(updated, current_user), "Post updated successfully")


@router.delete("/delete/{post_id}", summary="Delete a post")
async def delete_post(
    post: dict = Depends(deletable_post),
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await db.posts.delete_one({"_id": post["_id"]})
    result = await db.comments.delete_many({"post": post["_id"]})
    logger.info(
        f"Post {post['_id']} deleted by {current_user['_id']} "
        f"({result.deleted_count} comments removed)"
    )
    return success_response(message="Post deleted successfully")
