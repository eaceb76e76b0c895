"""
Notification endpoints. Every query is scoped to the current user.
"""
from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from entreprenapp.core.auth import get_current_user
from entreprenapp.core.exceptions import NotFoundException
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, utcnow
from entreprenapp.schemas.base import success_response

router = APIRouter(prefix="/notification", tags=["Notifications"])

NOTIFICATION_NOT_FOUND = "Notification non trouvée"
NOTIFICATION_LIST_LIMIT = 50


@router.get("/unread/count", summary="Number of unread notifications")
async def unread_count(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    count = await db.notifications.count_documents({"recipient": current_user["_id"], "read": False})
    return success_response({"count": count}, count=count)


@router.get("/", summary="Latest notifications")
async def list_notifications(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    notifications = await db.notifications.find({"recipient": current_user["_id"]}).sort(
        "created_at", DESCENDING
    ).limit(NOTIFICATION_LIST_LIMIT).to_list(length=NOTIFICATION_LIST_LIMIT)
    await populate(db, notifications, "actor")
    return success_response(notifications, count=len(notifications))


@router.put("/read/all", summary="Mark every notification as read")
async def mark_all_read(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await db.notifications.update_many(
        {"recipient": current_user["_id"], "read": False},
        {"$set": {"read": True, "read_at": utcnow()}},
    )
    return success_response(
        {"modified": result.modified_count},
        "Toutes les notifications ont été marquées comme lues",
    )


@router.put("/{notification_id}/read", summary="Mark a notification as read")
async def mark_read(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    notification = await db.notifications.find_one_and_update(
        {"_id": parse_object_id(notification_id), "recipient": current_user["_id"]},
        {"$set": {"read": True, "read_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not notification:
        raise NotFoundException(NOTIFICATION_NOT_FOUND)
    return success_response(notification, "Notification marquée comme lue")


@router.delete("/all", summary="Delete every notification")
async def delete_all(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await db.notifications.delete_many({"recipient": current_user["_id"]})
    return success_response(
        {"deleted": result.deleted_count},
        "Toutes les notifications ont été supprimées",
    )


@router.delete("/{notification_id}", summary="Delete a notification")
async def delete_notification(
    notification_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    result = await db.notifications.delete_one(
        {"_id": parse_object_id(notification_id), "recipient": current_user["_id"]}
    )
    if not result.deleted_count:
        raise NotFoundException(NOTIFICATION_NOT_FOUND)
    return success_response(message="Notification supprimée")
