"""
Request DTOs for endorsement access endpoints.

SendOtpRequest           — POST /api/endorsements/access/send-otp
VerifyOtpRequest         — POST /api/endorsements/access/verify-otp
UpdateEndorsementRequest — PATCH /api/endorsements/access/endorsement/{id}

Wire names are camelCase to match the site frontend. Fields default to
blank so missing values reach the service and get a user-facing message
rather than a schema error.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SendOtpRequest(BaseModel):
    """Request body for POST /api/endorsements/access/send-otp."""

    model_config = ConfigDict(populate_by_name=True)

    endorsement_id: str = Field(default="", alias="endorsementId")
    email: str = ""


class VerifyOtpRequest(BaseModel):
    """Request body for POST /api/endorsements/access/verify-otp.

    ``otp`` is the 6-digit code emailed to the endorser.
    """

    model_config = ConfigDict(populate_by_name=True)

    endorsement_id: str = Field(default="", alias="endorsementId")
    email: str = ""
    otp: str = ""


class DisplayPreferencesInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    show_name_publicly: Optional[bool] = Field(default=None, alias="showNamePublicly")
    show_company_or_project_publicly: Optional[bool] = Field(
        default=None, alias="showCompanyOrProjectPublicly"
    )
    show_linkedin_url_publicly: Optional[bool] = Field(
        default=None, alias="showLinkedinUrlPublicly"
    )


class UpdateEndorsementRequest(BaseModel):
    """Request body for PATCH /api/endorsements/access/endorsement/{id}.

    Status fields are not accepted: a submitter edit always sends the
    endorsement back to moderation.
    """

    model_config = ConfigDict(populate_by_name=True)

    endorser_name: Optional[str] = Field(default=None, alias="endorserName")
    relationship_type: Optional[str] = Field(default=None, alias="relationshipType")
    role_or_title: Optional[str] = Field(default=None, alias="roleOrTitle")
    company_or_project: Optional[str] = Field(default=None, alias="companyOrProject")
    linkedin_url: Optional[str] = Field(default=None, alias="linkedinUrl")
    endorsement_text: Optional[str] = Field(default=None, alias="endorsementText")
    display_preferences: DisplayPreferencesInput = Field(
        default_factory=DisplayPreferencesInput, alias="displayPreferences"
    )
