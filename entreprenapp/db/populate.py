"""
Reference population helpers.

Documents store references as ObjectIds; these helpers replace them with
the referenced documents in one query per field, mirroring what an ODM's
``populate`` does.
"""
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from entreprenapp.models.user import PUBLIC_USER_PROJECTION


async def populate(
    db: AsyncIOMotorDatabase,
    documents: List[dict],
    field: str,
    collection: str = "users",
    projection: Optional[dict] = None,
) -> List[dict]:
    """
    Replace ``field`` (an ObjectId or a list of them) by the referenced documents.

    Missing references are left as ids. ``documents`` is modified in place
    and returned.
    """
    if projection is None and collection == "users":
        projection = PUBLIC_USER_PROJECTION

    ids = set()
    for doc in documents:
        value = doc.get(field)
        if isinstance(value, list):
            ids.update(value)
        elif value is not None:
            ids.add(value)
    if not ids:
        return documents

    refs = await db[collection].find({"_id": {"$in": list(ids)}}, projection).to_list(length=None)
    by_id = {ref["_id"]: ref for ref in refs}

    for doc in documents:
        value = doc.get(field)
        if isinstance(value, list):
            doc[field] = [by_id.get(item, item) for item in value]
        elif value is not None:
            doc[field] = by_id.get(value, value)
    return documents

