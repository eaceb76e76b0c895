"""
Friend request endpoints.

A request moves from ``pending`` to ``accepted`` or ``rejected`` once and
never back. Accepting adds each user to the other's ``friends`` list.
"""
from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from entreprenapp.api.deps import get_notification_service
from entreprenapp.core.auth import get_current_user
from entreprenapp.core.exceptions import BadRequestException, ForbiddenException, NotFoundException
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.friend import FriendRequestDocument, FriendRequestStatus
from entreprenapp.models.user import PUBLIC_USER_PROJECTION, active_user_filter
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.friend import FriendInvitation, FriendResponse
from entreprenapp.services.notifications import NotificationService

router = APIRouter(prefix="/friend", tags=["Friends"])


def between(user_a, user_b) -> dict:
    """Filter matching requests between two users in either direction."""
    return {
        "$or": [
            {"sender": user_a, "receiver": user_b},
            {"sender": user_b, "receiver": user_a},
        ]
    }


async def send_friend_request(
    db: AsyncIOMotorDatabase,
    notifications: NotificationService,
    sender: dict,
    receiver_id: str,
) -> dict:
    """Create a pending request; shared by invitations and suggestions."""
    receiver_oid = parse_object_id(receiver_id, "Invalid receiver ID")
    if same_id(receiver_oid, sender["_id"]):
        raise BadRequestException("You cannot send a friend request to yourself")

    receiver = await db.users.find_one(active_user_filter(_id=receiver_oid))
    if not receiver:
        raise NotFoundException("User not found")

    if any(same_id(f, receiver_oid) for f in sender.get("friends", [])):
        raise BadRequestException("You are already friends")

    if await db.friend_requests.find_one(between(sender["_id"], receiver_oid)):
        raise BadRequestException("Request already sent")

    request = await FriendRequestDocument(sender=sender["_id"], receiver=receiver_oid).insert(db)
    await notifications.notify_friend_request(sender["_id"], receiver_oid)
    return request


@router.post("/invitation", status_code=status.HTTP_201_CREATED, summary="Send a friend request")
async def send_invitation(
    data: FriendInvitation,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    request = await send_friend_request(db, notifications, current_user, data.receiver_id)
    return success_response(request, "Friend request sent")


@router.post("/invitation/{request_id}", summary="Accept or reject a friend request")
async def respond_to_invitation(
    request_id: str,
    data: FriendResponse,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    request = await db.friend_requests.find_one({"_id": parse_object_id(request_id)})
    if not request:
        raise NotFoundException("Friend request not found")
    if not same_id(request["receiver"], current_user["_id"]):
        raise ForbiddenException("Only the receiver can respond to this request")

    new_status = (
        FriendRequestStatus.ACCEPTED if data.action == "accept" else FriendRequestStatus.REJECTED
    )
    # Only a pending request can change state
    updated = await db.friend_requests.find_one_and_update(
        {"_id": request["_id"], "status": FriendRequestStatus.PENDING.value},
        {"$set": {"status": new_status.value, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise BadRequestException("Request already handled")

    if new_status is FriendRequestStatus.ACCEPTED:
        sender_id, receiver_id = request["sender"], request["receiver"]
        await db.users.update_one({"_id": sender_id}, {"$addToSet": {"friends": receiver_id}})
        await db.users.update_one({"_id": receiver_id}, {"$addToSet": {"friends": sender_id}})
        await notifications.notify_friend_accepted(receiver_id, sender_id)

    return success_response(updated, f"Friend request {new_status.value}")


@router.get("/", summary="Friends of the current user")
async def list_friends(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    friends = await db.users.find(
        active_user_filter(_id={"$in": current_user.get("friends", [])}),
        PUBLIC_USER_PROJECTION,
    ).to_list(length=None)
    return success_response(friends, count=len(friends))


@router.get("/pending", summary="Pending requests received by the current user")
async def pending_requests(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    requests = await db.friend_requests.find({
        "receiver": current_user["_id"],
        "status": FriendRequestStatus.PENDING.value,
    }).sort("created_at", DESCENDING).to_list(length=None)
    await populate(db, requests, "sender")
    return success_response(requests, count=len(requests))


@router.get("/all", summary="All users with their friendship status")
async def all_users(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    users = await db.users.find(
        active_user_filter(_id={"$ne": current_user["_id"]}, is_verified=True),
        PUBLIC_USER_PROJECTION,
    ).to_list(length=None)

    requests = await db.friend_requests.find({
        "$or": [{"sender": current_user["_id"]}, {"receiver": current_user["_id"]}]
    }).to_list(length=None)

    by_other = {}
    for request in requests:
        other = request["receiver"] if same_id(request["sender"], current_user["_id"]) else request["sender"]
        by_other[str(other)] = request

    friend_ids = {str(f) for f in current_user.get("friends", [])}
    for user in users:
        request = by_other.get(str(user["_id"]))
        if str(user["_id"]) in friend_ids:
            user["friendship_status"] = FriendRequestStatus.ACCEPTED.value
        elif request:
            user["friendship_status"] = request["status"]
            user["request_id"] = request["_id"]
            user["request_sent_by_me"] = same_id(request["sender"], current_user["_id"])
        else:
            user["friendship_status"] = "none"

    return success_response(users, count=len(users))


@router.delete("/{friend_id}", summary="Remove a friend")
async def remove_friend(
    friend_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    friend_oid = parse_object_id(friend_id)
    if not any(same_id(f, friend_oid) for f in current_user.get("friends", [])):
        raise NotFoundException("Friend not found")

    await db.users.update_one({"_id": current_user["_id"]}, {"$pull": {"friends": friend_oid}})
    await db.users.update_one({"_id": friend_oid}, {"$pull": {"friends": current_user["_id"]}})
    await db.friend_requests.delete_many(between(current_user["_id"], friend_oid))
    return success_response(message="Friend removed successfully")
