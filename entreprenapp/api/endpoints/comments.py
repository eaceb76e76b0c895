"""
Comment endpoints.

Top-level comments are referenced from their post's ``comments`` list;
replies point to their parent through ``parent_comment``.
"""
from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from entreprenapp.api.deps import get_notification_service
from entreprenapp.core.auth import get_current_user
from entreprenapp.core.exceptions import NotFoundException
from entreprenapp.core.ownership import DELETE_FORBIDDEN, collection_loader, require_ownership
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.post import CommentDocument
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.post import CommentCreate, CommentUpdate
from entreprenapp.services.notifications import NotificationService

router = APIRouter(prefix="/comment", tags=["Comments"])

COMMENT_NOT_FOUND = "Commentaire non trouvé"


owned_comment = require_ownership(
    collection_loader("comments"),
    "author",
    param="comment_id",
    not_found=COMMENT_NOT_FOUND,
    forbidden="Vous n'avez pas la permission de modifier ce commentaire",
)

deletable_comment = require_ownership(
    collection_loader("comments"),
    "author",
    param="comment_id",
    not_found=COMMENT_NOT_FOUND,
    forbidden=DELETE_FORBIDDEN,
    allow_admin=True,
)


async def _get_comment(db: AsyncIOMotorDatabase, comment_id: str) -> dict:
    comment = await db.comments.find_one({"_id": parse_object_id(comment_id)})
    if not comment:
        raise NotFoundException(COMMENT_NOT_FOUND)
    return comment


async def _get_post(db: AsyncIOMotorDatabase, post_id: str) -> dict:
    post = await db.posts.find_one({"_id": parse_object_id(post_id)})
    if not post:
        raise NotFoundException("Post non trouvé")
    return post


@router.get("/post/{post_id}", summary="Comments of a post")
async def post_comments(post_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    post = await _get_post(db, post_id)
    comments = await db.comments.find(
        {"post": post["_id"], "parent_comment": None}
    ).sort("created_at", DESCENDING).to_list(length=None)
    await populate(db, comments, "author")
    return success_response(comments, count=len(comments))


@router.post("/post/{post_id}", status_code=status.HTTP_201_CREATED, summary="Comment on a post")
async def add_comment(
    post_id: str,
    data: CommentCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    post = await _get_post(db, post_id)
    comment = await CommentDocument(
        author=current_user["_id"],
        post=post["_id"],
        content=data.content,
    ).insert(db)

    await db.posts.update_one(
        {"_id": post["_id"]},
        {"$push": {"comments": comment["_id"]}, "$set": {"updated_at": utcnow()}},
    )
    await notifications.notify_post_commented(
        current_user["_id"], post["author"], post["_id"], data.content
    )

    await populate(db, [comment], "author")
    return success_response(comment, "Comment added successfully")


@router.get("/{comment_id}", summary="Get a comment")
async def get_comment(comment_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    comment = await _get_comment(db, comment_id)
    await populate(db, [comment], "author")
    return success_response(comment)


@router.put("/edit/{comment_id}", summary="Edit a comment")
async def edit_comment(
    data: CommentUpdate,
    comment: dict = Depends(owned_comment),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    updated = await db.comments.find_one_and_update(
        {"_id": comment["_id"]},
        {"$set": {"content": data.content, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    await populate(db, [updated], "author")
    return success_response(updated, "Comment updated successfully")


@router.delete("/delete/{comment_id}", summary="Delete a comment and its replies")
async def delete_comment(
    comment: dict = Depends(deletable_comment),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await db.comments.delete_many({"parent_comment": comment["_id"]})
    await db.comments.delete_one({"_id": comment["_id"]})

    await db.posts.update_one({"_id": comment["post"]}, {"$pull": {"comments": comment["_id"]}})
    if comment.get("parent_comment"):
        await db.comments.update_one(
            {"_id": comment["parent_comment"]},
            {"$pull": {"replies": comment["_id"]}},
        )
    return success_response(message="Comment deleted successfully")


@router.post("/{comment_id}/reply", status_code=status.HTTP_201_CREATED, summary="Reply to a comment")
async def reply_to_comment(
    comment_id: str,
    data: CommentCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    parent = await _get_comment(db, comment_id)
    reply = await CommentDocument(
        author=current_user["_id"],
        post=parent["post"],
        content=data.content,
        parent_comment=parent["_id"],
    ).insert(db)

    await db.comments.update_one({"_id": parent["_id"]}, {"$push": {"replies": reply["_id"]}})
    await notifications.notify_post_commented(
        current_user["_id"], parent["author"], parent["post"], data.content
    )

    await populate(db, [reply], "author")
    return success_response(reply, "Reply added successfully")


@router.get("/{comment_id}/replies", summary="Replies to a comment")
async def comment_replies(comment_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    parent = await _get_comment(db, comment_id)
    replies = await db.comments.find({"parent_comment": parent["_id"]}).sort(
        "created_at", ASCENDING
    ).to_list(length=None)
    await populate(db, replies, "author")
    return success_response(replies, count=len(replies))


@router.post("/{comment_id}/like", summary="Like or unlike a comment")
async def toggle_comment_like(
    comment_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    comment = await _get_comment(db, comment_id)
    adding = not any(same_id(v, current_user["_id"]) for v in comment.get("likes", []))
    if adding:
        update = {"$addToSet": {"likes": current_user["_id"]}, "$inc": {"likes_count": 1}}
        guard = {"likes": {"$ne": current_user["_id"]}}
    else:
        update = {"$pull": {"likes": current_user["_id"]}, "$inc": {"likes_count": -1}}
        guard = {"likes": current_user["_id"]}

    updated = await db.comments.find_one_and_update(
        {"_id": comment["_id"], **guard},
        update,
        return_document=ReturnDocument.AFTER,
    ) or await _get_comment(db, comment_id)
    liked = any(same_id(v, current_user["_id"]) for v in updated.get("likes", []))

    return success_response(
        {"likes_count": updated.get("likes_count", 0), "is_liked": liked},
        "Comment liked" if liked else "Comment unliked",
    )
