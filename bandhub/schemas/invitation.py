from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bandhub.schemas.band import validate_band_role
from bandhub.schemas.common import PaginationMeta


class BandInvitationCreateIn(BaseModel):
    invited_user_id: str = Field(min_length=1, max_length=36)
    role: str = "member"
    instruments: list[str] = Field(default_factory=list, max_length=20)
    message: str | None = Field(default=None, max_length=2000)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        return validate_band_role(value)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "invited_user_id": "kQ3wTnV8xYbR2mLcP9dF4s",
                "role": "member",
                "instruments": ["drums"],
                "message": "We loved your set at the open mic.",
            }
        }
    )


class BandInvitationOut(BaseModel):
    invitation_id: str
    band_id: str
    band_name: str
    invited_user_id: str
    invited_user_name: str | None = None
    invited_by_user_id: str
    role: str
    instruments: list[str]
    message: str | None = None
    status: str
    expires_at: datetime
    responded_at: datetime | None = None
    created_at: datetime


class BandInvitationListOut(BaseModel):
    items: list[BandInvitationOut]
    pagination: PaginationMeta


class UserInvitationListOut(BaseModel):
    items: list[BandInvitationOut]
