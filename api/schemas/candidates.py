"""Candidate self-service schemas: resumes and profile."""

from typing import Optional

from pydantic import BaseModel, Field, field_validator


class ResumeCreate(BaseModel):
    """Schema for registering an uploaded resume."""

    title: Optional[str] = Field(None, max_length=255, description="Display title")
    file_url: str = Field(min_length=1, max_length=2048, description="Stored file URL")
    is_primary: bool = Field(default=False, description="Make this the primary resume")


class ProfileBase(BaseModel):
    bio: Optional[str] = None
    photo_url: Optional[str] = Field(None, max_length=2048)
    linkedin_url: Optional[str] = Field(None, max_length=2048)
    portfolio_url: Optional[str] = Field(None, max_length=2048)
    phone: Optional[str] = Field(None, max_length=50, description="Contact phone number")


class ProfileCreate(ProfileBase):
    """Schema for creating a candidate profile."""

    full_name: str = Field(min_length=2, max_length=255)

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_name(cls, v):
        """Strip whitespace from the name."""
        if isinstance(v, str):
            return v.strip()
        return v


class ProfileUpdate(ProfileBase):
    """Schema for updating a profile; only provided fields change."""

    full_name: Optional[str] = Field(None, min_length=2, max_length=255)
