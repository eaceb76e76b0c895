"""
Event endpoints.

Events are published by institutions and administrators; any verified
user may register while seats remain and the event is still open.
"""
import logging

from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument

from entreprenapp.api.deps import get_notification_service
from entreprenapp.core.auth import get_current_user, require_roles
from entreprenapp.core.exceptions import BadRequestException, NotFoundException
from entreprenapp.core.ownership import DELETE_FORBIDDEN, collection_loader, require_ownership
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.event import CLOSED_EVENT_STATUSES, EventDocument, Registration
from entreprenapp.models.user import UserRole, active_user_filter
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.event import EventCreate, EventRegistrationRequest, EventUpdate
from entreprenapp.services.notifications import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/event", tags=["Events"])

EVENT_NOT_FOUND = "Événement non trouvé"

EVENT_CREATOR_ROLES = (
    UserRole.SUPER_ADMIN.value,
    UserRole.ADMIN.value,
    UserRole.UNIVERSITY.value,
    UserRole.ORGANISATION.value,
)

owned_event = require_ownership(
    collection_loader("events"),
    "organizer",
    param="event_id",
    not_found=EVENT_NOT_FOUND,
    forbidden="Vous n'avez pas la permission de modifier cet événement",
)

deletable_event = require_ownership(
    collection_loader("events"),
    "organizer",
    param="event_id",
    not_found=EVENT_NOT_FOUND,
    forbidden=DELETE_FORBIDDEN,
    allow_admin=True,
)

# Registrations carry contact and payment details
viewable_registrations = require_ownership(
    collection_loader("events"),
    "organizer",
    param="event_id",
    not_found=EVENT_NOT_FOUND,
    forbidden="Seul l'organisateur peut voir les inscriptions",
    allow_admin=True,
)


def without_registrations(event: dict) -> dict:
    event.pop("registrations", None)
    return event


async def _get_event(db: AsyncIOMotorDatabase, event_id: str) -> dict:
    event = await db.events.find_one({"_id": parse_object_id(event_id)})
    if not event:
        raise NotFoundException(EVENT_NOT_FOUND)
    return event


@router.get("/", summary="List events")
async def list_events(db: AsyncIOMotorDatabase = Depends(get_database)):
    events = await db.events.find().sort("start_date", ASCENDING).to_list(length=None)
    await populate(db, events, "organizer")
    return success_response([without_registrations(e) for e in events], count=len(events))


@router.get("/user/my-events", summary="Events organised by the current user")
async def my_events(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    events = await db.events.find({"organizer": current_user["_id"]}).sort(
        "created_at", DESCENDING
    ).to_list(length=None)
    return success_response(events, count=len(events))


@router.get("/user/my-registrations", summary="Events the current user registered for")
async def my_registrations(
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    events = await db.events.find({"participants": current_user["_id"]}).sort(
        "start_date", ASCENDING
    ).to_list(length=None)
    for event in events:
        mine = [r for r in event.get("registrations", []) if same_id(r["user"], current_user["_id"])]
        event["my_registration"] = mine[0] if mine else None
        without_registrations(event)
    await populate(db, events, "organizer")
    return success_response(events, count=len(events))


@router.get("/{event_id}", summary="Get an event")
async def get_event(event_id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    event = await _get_event(db, event_id)
    await populate(db, [event], "organizer")
    event["registered_count"] = len(event.get("participants", []))
    return success_response(without_registrations(event))


@router.get("/{event_id}/registrations", summary="Registrations of an event")
async def event_registrations(
    event: dict = Depends(viewable_registrations),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    registrations = event.get("registrations", [])
    await populate(db, registrations, "user")
    return success_response(registrations, count=len(registrations))


@router.post("/", status_code=status.HTTP_201_CREATED, summary="Create an event")
async def create_event(
    data: EventCreate,
    current_user: dict = Depends(require_roles(*EVENT_CREATOR_ROLES)),
    db: AsyncIOMotorDatabase = Depends(get_database),
    notifications: NotificationService = Depends(get_notification_service),
):
    event = await EventDocument(organizer=current_user["_id"], **data.model_dump()).insert(db)
    logger.info(f"Event created: {event['title']} by {current_user['_id']}")

    recipients = await db.users.find(
        active_user_filter(_id={"$ne": current_user["_id"]}, is_verified=True), {"_id": 1}
    ).to_list(length=None)
    await notifications.notify_new_event(
        current_user["_id"], [u["_id"] for u in recipients], event["_id"], event["title"]
    )

    await populate(db, [event], "organizer")
    return success_response(event, "Événement créé avec succès")


@router.put("/{event_id}", summary="Update an event")
async def update_event(
    data: EventUpdate,
    event: dict = Depends(owned_event),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    changes = data.changes()
    if not changes:
        raise BadRequestException("No fields to update")

    start = changes.get("start_date", event["start_date"])
    end = changes.get("end_date", event["end_date"])
    if end <= start:
        raise BadRequestException("La date de fin doit être postérieure à la date de début")

    if "seats" in changes and changes["seats"] < len(event.get("participants", [])):
        raise BadRequestException("Le nombre de places ne peut pas être inférieur aux inscrits")

    changes["updated_at"] = utcnow()
    updated = await db.events.find_one_and_update(
        {"_id": event["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    await populate(db, [updated], "organizer")
    return success_response(updated, "Événement mis à jour avec succès")


@router.delete("/{event_id}", summary="Delete an event")
async def delete_event(
    event: dict = Depends(deletable_event),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await db.events.delete_one({"_id": event["_id"]})
    return success_response(message="Événement supprimé avec succès")


@router.post("/{event_id}/register", status_code=status.HTTP_201_CREATED, summary="Register for an event")
async def register_for_event(
    event_id: str,
    data: EventRegistrationRequest,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    event = await _get_event(db, event_id)

    if event.get("status") in CLOSED_EVENT_STATUSES:
        raise BadRequestException("Les inscriptions sont fermées pour cet événement")
    if any(same_id(p, current_user["_id"]) for p in event.get("participants", [])):
        raise BadRequestException("Vous êtes déjà inscrit à cet événement")
    if event.get("is_paid") and event.get("payment_methods") and (
        data.payment_method not in event["payment_methods"]
    ):
        raise BadRequestException("Moyen de paiement non accepté pour cet événement")

    registration = Registration(
        user=current_user["_id"],
        name=data.name or current_user.get("fullname"),
        email=data.email or current_user.get("email"),
        payment_method=data.payment_method,
        paid=not event.get("is_paid", False),
        amount=event.get("price", 0) if event.get("is_paid") else 0,
    ).model_dump()

    # Capacity and duplicate checks are repeated in the filter so the update is atomic
    seats = event.get("seats", 0)
    capacity_filter = {f"participants.{seats - 1}": {"$exists": False}} if seats > 0 else {}
    updated = await db.events.find_one_and_update(
        {
            "_id": event["_id"],
            "participants": {"$ne": current_user["_id"]},
            **capacity_filter,
        },
        {
            "$push": {"registrations": registration, "participants": current_user["_id"]},
            "$set": {"updated_at": utcnow()},
        },
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise BadRequestException("Plus de places disponibles pour cet événement")

    return success_response(
        registration,
        "Inscription réussie",
        remaining_seats=max(seats - len(updated["participants"]), 0) if seats > 0 else None,
    )


@router.delete("/{event_id}/unregister", summary="Cancel a registration")
async def unregister_from_event(
    event_id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    event = await _get_event(db, event_id)
    if not any(same_id(p, current_user["_id"]) for p in event.get("participants", [])):
        raise BadRequestException("Vous n'êtes pas inscrit à cet événement")

    await db.events.update_one(
        {"_id": event["_id"]},
        {
            "$pull": {
                "participants": current_user["_id"],
                "registrations": {"user": current_user["_id"]},
            },
            "$set": {"updated_at": utcnow()},
        },
    )
    return success_response(message="Désinscription réussie")
