"""
Direct message endpoints.

Every mutation is written to MongoDB first; connected participants are
then told about it through the real-time publisher.
"""
from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from entreprenapp.api.deps import get_notification_service, get_publisher
from entreprenapp.core.auth import get_current_user
from entreprenapp.core.exceptions import BadRequestException, NotFoundException
from entreprenapp.core.ownership import collection_loader, require_ownership
from entreprenapp.db.mongodb import get_database
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.message import MessageDocument
from entreprenapp.models.user import active_user_filter
from entreprenapp.realtime.publisher import RealtimePublisher
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.message import MessageCreate, MessageUpdate
from entreprenapp.services.notifications import NotificationService

router = APIRouter(prefix="/message", tags=["Messages"])

MESSAGE_NOT_FOUND = "Message not found"

CONVERSATION_PARTICIPANT_PROJECTION = {
    "fullname": 1,
    "username": 1,
    "email": 1,
    "profile_image": 1,
    "role": 1,
    "location": 1,
    "bio": 1,
}

updatable_message = require_ownership(
    collection_loader("messages"),
    "sender",
    param="message_id",
    not_found=MESSAGE_NOT_FOUND,
    forbidden="You can only update your own messages",
)

deletable_message = require_ownership(
    collection_loader("messages"),
    "sender",
    param="message_id",
    not_found=MESSAGE_NOT_FOUND,
    forbidden="You can only delete your own messages",
)


async def notify_participants(publisher: RealtimePublisher, message: dict, event: str) -> None:
    for user_id in (message["receiver"], message["sender"]):
        await publisher.publish_to_user(user_id, event, message)


@router.get("/conversations", summary="Conversations of the current user")
async def list_conversations(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    me = current_user["_id"]
    messages = await db.messages.find(
        {"$or": [{"sender": me}, {"receiver": me}]}
    ).sort("created_at", DESCENDING).to_list(length=None)

    # Newest first, so the first message seen per participant is the last one sent
    conversations = {}
    for message in messages:
        other = message["receiver"] if same_id(message["sender"], me) else message["sender"]
        conversation = conversations.setdefault(str(other), {
            "id": other,
            "last_message": message.get("text") or "",
            "last_message_at": message["created_at"],
            "unread_count": 0,
        })
        if same_id(message["receiver"], me) and not message.get("read"):
            conversation["unread_count"] += 1

    participants = await db.users.find(
        {"_id": {"$in": [c["id"] for c in conversations.values()]}},
        CONVERSATION_PARTICIPANT_PROJECTION,
    ).to_list(length=None)
    by_id = {str(user["_id"]): user for user in participants}
    for key, conversation in conversations.items():
        conversation["participant"] = by_id.get(key, {"_id": conversation["id"]})

    result = sorted(conversations.values(), key=lambda c: c["last_message_at"], reverse=True)
    return success_response(result, count=len(result), conversations=result)


@router.get("/{user_id}", summary="Conversation with a user")
async def get_messages(
    user_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    me = current_user["_id"]
    other = parse_object_id(user_id, "Invalid user ID")
    messages = await db.messages.find({
        "$or": [
            {"sender": me, "receiver": other},
            {"sender": other, "receiver": me},
        ]
    }).sort("created_at", ASCENDING).to_list(length=None)

    await db.messages.update_many(
        {"sender": other, "receiver": me, "read": False},
        {"$set": {"read": True}},
    )
    return success_response(messages, count=len(messages))


@router.post("/send/{user_id}", status_code=status.HTTP_201_CREATED, summary="Send a message")
async def send_message(
    user_id: str,
    data: MessageCreate,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    publisher: RealtimePublisher = Depends(get_publisher),
    notifications: NotificationService = Depends(get_notification_service),
):
    receiver_id = parse_object_id(user_id, "Invalid receiver ID format")
    if same_id(receiver_id, current_user["_id"]):
        raise BadRequestException("You cannot send a message to yourself")
    if not await db.users.find_one(active_user_filter(_id=receiver_id), {"_id": 1}):
        raise NotFoundException("Receiver not found")

    message = await MessageDocument(
        sender=current_user["_id"],
        receiver=receiver_id,
        text=data.text,
        image=data.image,
    ).insert(db)

    await notifications.notify_message_received(current_user["_id"], receiver_id, data.text)
    await publisher.publish_to_user(receiver_id, "receive_message", message)
    await publisher.publish_to_user(current_user["_id"], "message_sent", message)

    return success_response(message, "Message sent")


@router.put("/update/{message_id}", summary="Edit a message")
async def update_message(
    data: MessageUpdate,
    message: dict = Depends(updatable_message),
    db: AsyncIOMotorDatabase = Depends(get_database),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    updated = await db.messages.find_one_and_update(
        {"_id": message["_id"]},
        {"$set": {"text": data.text, "edited": True, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    await notify_participants(publisher, updated, "message_updated")
    return success_response(updated, "Message updated successfully")


@router.delete("/delete/{message_id}", summary="Delete a message")
async def delete_message(
    message: dict = Depends(deletable_message),
    db: AsyncIOMotorDatabase = Depends(get_database),
    publisher: RealtimePublisher = Depends(get_publisher),
):
    await db.messages.delete_one({"_id": message["_id"]})
    await notify_participants(publisher, message, "message_deleted")
    return success_response({"_id": message["_id"]}, "Message deleted successfully")
