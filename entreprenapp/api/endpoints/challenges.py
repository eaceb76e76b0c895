"""
Challenge endpoints.

Organisations and universities publish funded challenges; users apply
before the deadline and the publisher selects winners, which records an
achievement on the selected user.
"""
from fastapi import APIRouter, Depends, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument

from entreprenapp.core.auth import get_current_user, require_roles
from entreprenapp.core.exceptions import BadRequestException, NotFoundException
from entreprenapp.core.ownership import collection_loader, require_ownership
from entreprenapp.db.mongodb import get_database
from entreprenapp.db.populate import populate
from entreprenapp.models.base import parse_object_id, same_id, utcnow
from entreprenapp.models.challenge import ChallengeDocument
from entreprenapp.models.user import UserRole, active_user_filter
from entreprenapp.schemas.base import success_response
from entreprenapp.schemas.project import ChallengeCreate, ChallengeUpdate

router = APIRouter(prefix="/challenge", tags=["Challenges"])

CHALLENGE_NOT_FOUND = "Défi non trouvé"
INVALID_CHALLENGE_ID = "ID de défi invalide"

CHALLENGE_CREATOR_ROLES = (
    UserRole.ADMIN.value,
    UserRole.SUPER_ADMIN.value,
    UserRole.ORGANISATION.value,
    UserRole.UNIVERSITY.value,
)

owned_challenge = require_ownership(
    collection_loader("challenges"),
    "organisation",
    not_found=CHALLENGE_NOT_FOUND,
    forbidden="Vous n'êtes pas autorisé à modifier ce défi",
)

selectable_challenge = require_ownership(
    collection_loader("challenges"),
    "organisation",
    param="challenge_id",
    not_found=CHALLENGE_NOT_FOUND,
    forbidden="Vous n'êtes pas autorisé à sélectionner les candidats pour ce défi",
)

deletable_challenge = require_ownership(
    collection_loader("challenges"),
    "organisation",
    not_found=CHALLENGE_NOT_FOUND,
    forbidden="Vous n'êtes pas autorisé à supprimer ce défi",
    allow_admin=True,
)


async def _get_challenge(db: AsyncIOMotorDatabase, challenge_id: str) -> dict:
    challenge = await db.challenges.find_one({"_id": parse_object_id(challenge_id, INVALID_CHALLENGE_ID)})
    if not challenge:
        raise NotFoundException(CHALLENGE_NOT_FOUND)
    return challenge


async def populate_challenge(db: AsyncIOMotorDatabase, challenges: list) -> list:
    for field in ("organisation", "applicants", "selected_applicants"):
        await populate(db, challenges, field)
    return challenges


@router.post("/create-challenge", status_code=status.HTTP_201_CREATED, summary="Create a challenge")
async def create_challenge(
    data: ChallengeCreate,
    current_user: dict = Depends(require_roles(*CHALLENGE_CREATOR_ROLES)),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    if data.deadline <= utcnow():
        raise BadRequestException("La date limite doit être dans le futur")

    challenge = await ChallengeDocument(organisation=current_user["_id"], **data.model_dump()).insert(db)
    return success_response(challenge, "Défi créé avec succès")


@router.get("/", summary="List challenges")
async def list_challenges(db: AsyncIOMotorDatabase = Depends(get_database)):
    challenges = await db.challenges.find().sort("created_at", DESCENDING).to_list(length=None)
    await populate_challenge(db, challenges)
    return success_response(challenges, count=len(challenges))


@router.get("/{id}", summary="Get a challenge")
async def get_challenge(id: str, db: AsyncIOMotorDatabase = Depends(get_database)):
    challenge = await _get_challenge(db, id)
    await populate_challenge(db, [challenge])
    return success_response(challenge)


@router.put("/{id}/edit", summary="Update a challenge before its deadline")
async def update_challenge(
    data: ChallengeUpdate,
    challenge: dict = Depends(owned_challenge),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    now = utcnow()
    if now > challenge["deadline"]:
        raise BadRequestException("Le défi ne peut pas être modifié après la date limite")

    changes = data.changes()
    if not changes:
        raise BadRequestException(
            "Mises à jour invalides ! Seuls le titre, la description, le secteur, "
            "la date limite et le montant peuvent être modifiés"
        )
    if "deadline" in changes and changes["deadline"] <= now:
        raise BadRequestException("La nouvelle date limite doit être dans le futur")

    changes["updated_at"] = now
    updated = await db.challenges.find_one_and_update(
        {"_id": challenge["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return success_response(updated, "Défi mis à jour avec succès")


@router.delete("/{id}/delete", summary="Delete a challenge")
async def delete_challenge(
    challenge: dict = Depends(deletable_challenge),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    await db.challenges.delete_one({"_id": challenge["_id"]})
    return success_response(message="Défi supprimé avec succès")


@router.post("/{id}/apply", summary="Apply to a challenge")
async def apply_to_challenge(
    id: str,
    current_user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    challenge = await _get_challenge(db, id)
    if utcnow() > challenge["deadline"]:
        raise BadRequestException("La date limite de candidature a dépassé")
    if any(same_id(a, current_user["_id"]) for a in challenge.get("applicants", [])):
        raise BadRequestException("Vous avez déjà postulé pour ce défi")

    updated = await db.challenges.find_one_and_update(
        {"_id": challenge["_id"], "applicants": {"$ne": current_user["_id"]}},
        {"$push": {"applicants": current_user["_id"]}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise BadRequestException("Vous avez déjà postulé pour ce défi")

    return success_response(
        {"challenge_id": updated["_id"], "applicants_count": len(updated["applicants"])},
        "Candidature soumise avec succès",
    )


@router.post("/{challenge_id}/select/{applicant_id}", summary="Select an applicant")
async def select_applicant(
    applicant_id: str,
    challenge: dict = Depends(selectable_challenge),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    applicant_oid = parse_object_id(applicant_id, "ID de candidat invalide")
    applicant = await db.users.find_one(active_user_filter(_id=applicant_oid))
    if not applicant:
        raise NotFoundException("Candidat non trouvé")

    if not any(same_id(a, applicant_oid) for a in challenge.get("applicants", [])):
        raise BadRequestException("Cet utilisateur n'a pas postulé pour le défi")

    updated = await db.challenges.find_one_and_update(
        {"_id": challenge["_id"], "selected_applicants": {"$ne": applicant_oid}},
        {"$push": {"selected_applicants": applicant_oid}, "$set": {"updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise BadRequestException("Le candidat est déjà sélectionné")

    await db.users.update_one(
        {"_id": applicant_oid},
        {"$push": {"achievements": {
            "type": "challenge",
            "challenge": challenge["_id"],
            "status": "selected",
            "reward": challenge.get("funding_amount", 0),
            "awarded_at": utcnow(),
        }}},
    )

    return success_response(
        {
            "challenge_id": updated["_id"],
            "selected_count": len(updated["selected_applicants"]),
            "applicant": {
                "id": applicant["_id"],
                "fullname": applicant.get("fullname"),
                "email": applicant.get("email"),
            },
        },
        "Candidat sélectionné avec succès",
    )
