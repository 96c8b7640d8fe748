from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bandhub.core.permissions import BandRole

ALLOWED_BAND_ROLES = {role.value for role in BandRole}


def validate_band_role(value: str) -> str:
    role = value.strip().lower()
    if role not in ALLOWED_BAND_ROLES:
        raise ValueError("role must be one of: leader, admin, member, guest")
    return role


class SocialLinksIn(BaseModel):
    website: str | None = Field(default=None, max_length=1024)
    instagram: str | None = Field(default=None, max_length=255)
    facebook: str | None = Field(default=None, max_length=255)
    twitter: str | None = Field(default=None, max_length=255)
    spotify: str | None = Field(default=None, max_length=1024)


class BandCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    bio: str | None = Field(default=None, max_length=5000)
    location: str | None = Field(default=None, max_length=255)
    genres: list[str] = Field(default_factory=list, max_length=20)
    social_links: SocialLinksIn | None = None
    profile_image_url: str | None = Field(default=None, max_length=1024)
    instruments: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("name cannot be blank")
        return name

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "The Night Shift",
                "bio": "Four-piece indie rock from Lagos.",
                "location": "Lagos, NG",
                "genres": ["indie", "rock"],
                "social_links": {"instagram": "@thenightshift"},
                "instruments": ["vocals", "rhythm guitar"],
            }
        }
    )


class BandUpdateIn(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    bio: str | None = Field(default=None, max_length=5000)
    location: str | None = Field(default=None, max_length=255)
    genres: list[str] | None = Field(default=None, max_length=20)
    social_links: SocialLinksIn | None = None
    profile_image_url: str | None = Field(default=None, max_length=1024)

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "BandUpdateIn":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "bio": "Now a five-piece.",
                "genres": ["indie", "rock", "afrobeat"],
            }
        }
    )


class BandMemberOut(BaseModel):
    member_id: str
    user_id: str
    role: str
    instruments: list[str]
    permissions: list[str]
    joined_at: datetime
    is_active: bool
    removed_at: datetime | None = None
    removed_by_user_id: str | None = None


class BandOut(BaseModel):
    id: str
    name: str
    bio: str | None = None
    location: str | None = None
    genres: list[str]
    social_links: dict | None = None
    profile_image_url: str | None = None
    is_active: bool
    created_by_user_id: str
    version: int
    members: list[BandMemberOut]
    created_at: datetime
    updated_at: datetime


class BandListOut(BaseModel):
    items: list[BandOut]


class BandMemberListOut(BaseModel):
    band_id: str
    items: list[BandMemberOut]


class MemberRoleUpdateIn(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return validate_band_role(value)

    model_config = ConfigDict(json_schema_extra={"example": {"role": "admin"}})


class EffectivePermissionsOut(BaseModel):
    band_id: str
    user_id: str
    role: str | None = None
    is_member: bool
    permissions: list[str]
