"""
Response DTOs for endorsement access endpoints.

ManagedEndorsement          — editable view of an endorsement
ManagedEndorsementResponse  — GET /api/endorsements/access/endorsement/{id}
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.endorsement import EndorsementDoc


class ManagedDisplayPreferences(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_name_publicly: bool = Field(alias="showNamePublicly")
    show_company_or_project_publicly: bool = Field(alias="showCompanyOrProjectPublicly")
    show_linkedin_url_publicly: bool = Field(alias="showLinkedinUrlPublicly")


class ManagedEndorsement(BaseModel):
    """What a verified submitter may see and edit."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    status: str
    endorser_name: str = Field(alias="endorserName")
    endorser_email: Optional[str] = Field(default=None, alias="endorserEmail")
    relationship_type: Optional[str] = Field(default=None, alias="relationshipType")
    role_or_title: Optional[str] = Field(default=None, alias="roleOrTitle")
    company_or_project: Optional[str] = Field(default=None, alias="companyOrProject")
    linkedin_url: Optional[str] = Field(default=None, alias="linkedinUrl")
    endorsement_text: str = Field(alias="endorsementText")
    display_preferences: ManagedDisplayPreferences = Field(alias="displayPreferences")
    submitter_edit_at: Optional[datetime] = Field(default=None, alias="submitterEditAt")

    @classmethod
    def from_doc(cls, doc: EndorsementDoc) -> "ManagedEndorsement":
        prefs = doc.display_preferences
        return cls(
            id=doc.id or "",
            status=doc.status,
            endorser_name=doc.endorser_name,
            endorser_email=doc.endorser_email,
            relationship_type=doc.relationship_type,
            role_or_title=doc.role_or_title,
            company_or_project=doc.company_or_project,
            linkedin_url=doc.linkedin_url,
            endorsement_text=doc.endorsement_text,
            display_preferences=ManagedDisplayPreferences(
                show_name_publicly=prefs.show_name_publicly,
                show_company_or_project_publicly=prefs.show_company_or_project_publicly,
                show_linkedin_url_publicly=prefs.show_linkedin_url_publicly,
            ),
            submitter_edit_at=doc.submitter_edit_at,
        )


class ManagedEndorsementResponse(BaseModel):
    """Response body for GET /api/endorsements/access/endorsement/{id}."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    endorsement: ManagedEndorsement
