"""Company and membership schemas."""

from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from database.models.companies import CompanyRole


class CompanyCreate(BaseModel):
    """Schema for creating a company."""

    name: str = Field(min_length=2, max_length=255, description="Company name")
    description: Optional[str] = Field(None, description="About the company")
    logo_url: Optional[str] = Field(None, max_length=2048, description="Logo URL")
    website: Optional[str] = Field(None, max_length=255, description="Website")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, v):
        """Strip whitespace from the name."""
        if isinstance(v, str):
            return v.strip()
        return v


class CompanyUpdate(BaseModel):
    """Schema for updating a company; only provided fields change."""

    name: Optional[str] = Field(None, min_length=2, max_length=255)
    description: Optional[str] = None
    logo_url: Optional[str] = Field(None, max_length=2048)
    website: Optional[str] = Field(None, max_length=255)


class MemberInvite(BaseModel):
    """Invite an existing user into a company."""

    email: EmailStr
    role: CompanyRole = Field(description="Role granted once the invite is accepted")

    @field_validator("email", mode="after")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class MemberRoleUpdate(BaseModel):
    role: CompanyRole
