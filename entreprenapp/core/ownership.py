"""
Resource Ownership Guard.

``require_ownership`` builds a FastAPI dependency that loads a resource
from a path parameter and checks that the current user owns it:

    @router.put("/edit/{id}")
    async def edit_post(
        post: dict = Depends(require_ownership(
            collection_loader("posts"), "author",
            not_found="Post non trouvé",
            forbidden="Vous n'avez pas la permission de modifier ce post",
        )),
    ):
        ...
"""
from typing import Any, Awaitable, Callable, Optional, Union

from bson import ObjectId
from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from entreprenapp.core.auth import get_current_user
from entreprenapp.core.exceptions import ForbiddenException, NotFoundException
from entreprenapp.db.mongodb import get_database
from entreprenapp.models.base import parse_object_id, same_id
from entreprenapp.models.user import ADMIN_ROLES

Loader = Callable[[AsyncIOMotorDatabase, ObjectId], Awaitable[Optional[dict]]]
OwnerSelector = Union[str, Callable[[dict], Any]]

DELETE_FORBIDDEN = "Vous n'avez pas la permission de supprimer cette ressource"


def collection_loader(collection: str, **extra_filter) -> Loader:
    """Loader fetching a document by ``_id`` from ``collection``."""

    async def load(db: AsyncIOMotorDatabase, object_id: ObjectId) -> Optional[dict]:
        return await db[collection].find_one({"_id": object_id, **extra_filter})

    return load


def require_ownership(
    loader: Loader,
    owner_field: OwnerSelector,
    *,
    param: str = "id",
    not_found: str = "Resource not found",
    forbidden: str = "Vous n'avez pas la permission de modifier cette ressource",
    allow_admin: bool = False,
):
    """
    Build a dependency returning the loaded resource when the principal owns it.

    Args:
        loader: Coroutine fetching the resource by ObjectId
        owner_field: Field name, or callable, yielding the owner's id
        param: Path parameter holding the resource id
        not_found: Message for the 404 when the resource is missing
        forbidden: Message for the 403 when the principal is not the owner
        allow_admin: Let admin and super_admin roles through as well
    """

    def select_owner(resource: dict) -> Any:
        if callable(owner_field):
            return owner_field(resource)
        return resource.get(owner_field)

    async def dependency(
        request: Request,
        current_user: dict = Depends(get_current_user),
        db: AsyncIOMotorDatabase = Depends(get_database),
    ) -> dict:
        object_id = parse_object_id(request.path_params.get(param))
        resource = await loader(db, object_id)
        if resource is None:
            raise NotFoundException(not_found)

        is_owner = same_id(select_owner(resource), current_user["_id"])
        is_admin = allow_admin and current_user.get("role") in ADMIN_ROLES
        if not (is_owner or is_admin):
            raise ForbiddenException(forbidden)

        request.state.resource = resource
        return resource

    return dependency
