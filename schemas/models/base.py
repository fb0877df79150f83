"""
Base model for MongoDB document models.

Document ids in this database come in two shapes: ObjectIds generated by
the driver (challenges) and CMS-assigned ids that may be ObjectIds or plain
strings (endorsements). ``MongoId`` accepts both without coercing one into
the other, so an id read back from Mongo is written back unchanged.
"""

from __future__ import annotations

from typing import Any, Optional, Union

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, GetCoreSchemaHandler
from pydantic_core import core_schema


class MongoId:
    """Pydantic type for ``_id`` values: an ObjectId or a non-blank string."""

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.to_string_ser_schema(),
        )

    @staticmethod
    def _validate(value: Any) -> Union[ObjectId, str]:
        if isinstance(value, ObjectId):
            return value
        if isinstance(value, str) and value.strip():
            return value
        raise ValueError(f"Invalid document id: {value!r}")


class MongoBaseModel(BaseModel):
    """
    Base for document models.

    to_mongo()   — model → dict for insert_one / $set
    from_mongo() — raw pymongo dict → model, or None for a missed find_one
    """

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
    )

    id: Optional[MongoId] = Field(default=None, alias="_id")

    def to_mongo(self) -> dict:
        """Dump by alias, leaving ``_id`` out until the driver assigns one."""
        data = self.model_dump(by_alias=True)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

    @classmethod
    def from_mongo(cls, data: Optional[dict]) -> Optional["MongoBaseModel"]:
        if data is None:
            return None
        return cls.model_validate(data)
