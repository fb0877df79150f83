"""MongoDB repository for the CMS-owned `endorsements` collection.

Endorsement ids arrive as strings from URLs and session tokens but may be
stored as ObjectIds, so lookups match either form.
"""

from __future__ import annotations

from typing import Optional

from bson import ObjectId
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.endorsement import EndorsementDoc

COLLECTION_NAME = "endorsements"


def _id_filter(endorsement_id: str) -> dict:
    if ObjectId.is_valid(endorsement_id):
        return {"_id": {"$in": [ObjectId(endorsement_id), endorsement_id]}}
    return {"_id": endorsement_id}


class EndorsementRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_by_id(self, endorsement_id: str) -> Optional[EndorsementDoc]:
        if not endorsement_id:
            return None
        doc = await self._col.find_one(_id_filter(endorsement_id))
        return EndorsementDoc.from_mongo(doc)

    async def update_fields(self, endorsement_id: str, fields: dict) -> bool:
        result = await self._col.update_one(
            _id_filter(endorsement_id), {"$set": fields}
        )
        return result.matched_count == 1

    async def delete(self, endorsement_id: str) -> bool:
        result = await self._col.delete_one(_id_filter(endorsement_id))
        return result.deleted_count == 1
