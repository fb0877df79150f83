"""
Endorsement document model.

Maps to the `endorsements` MongoDB collection. The collection is owned by
the CMS; only the fields the access flow reads or a submitter may edit are
modelled here. Unknown fields are ignored.

Ids may be stored as ObjectId or plain strings; `id` is always the string
form so it can be compared against session tokens.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.models.base import MongoBaseModel

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_REJECTED = "rejected"


class DisplayPreferences(BaseModel):
    show_name_publicly: bool = True
    show_company_or_project_publicly: bool = True
    show_linkedin_url_publicly: bool = False


class ReviewRequest(BaseModel):
    type: str
    requested_by: str
    requested_at: datetime


class EndorsementDoc(MongoBaseModel):
    """Document model for the `endorsements` collection."""

    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )

    id: Optional[str] = Field(default=None, alias="_id")
    status: str = STATUS_PENDING
    endorser_name: str = ""
    endorser_email: Optional[str] = None
    relationship_type: Optional[str] = None
    role_or_title: Optional[str] = None
    company_or_project: Optional[str] = None
    linkedin_url: Optional[str] = None
    endorsement_text: str = ""
    display_preferences: DisplayPreferences = Field(default_factory=DisplayPreferences)
    approved_at: Optional[datetime] = None
    submitter_edit_at: Optional[datetime] = None
    review_request: Optional[ReviewRequest] = None

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> Any:
        if isinstance(value, ObjectId):
            return str(value)
        return value

    @field_validator("display_preferences", mode="before")
    @classmethod
    def _default_preferences(cls, value: Any) -> Any:
        return value if value is not None else {}
