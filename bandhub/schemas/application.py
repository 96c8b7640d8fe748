from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bandhub.schemas.band import validate_band_role
from bandhub.schemas.common import PaginationMeta


class BandApplicationCreateIn(BaseModel):
    role: str = "member"
    instruments: list[str] = Field(default_factory=list, max_length=20)
    message: str | None = Field(default=None, max_length=2000)

    @field_validator("role")
    @classmethod
    def validate_role(cls, value: str) -> str:
        role = validate_band_role(value)
        if role == "leader":
            raise ValueError("applicants cannot request the leader role")
        return role

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "role": "member",
                "instruments": ["bass"],
                "message": "Five years of gigging experience, available weekends.",
            }
        }
    )


class BandApplicationResponseIn(BaseModel):
    response_message: str | None = Field(default=None, max_length=2000)

    model_config = ConfigDict(json_schema_extra={"example": {"response_message": "Welcome aboard!"}})


class BandApplicationOut(BaseModel):
    application_id: str
    band_id: str
    band_name: str
    applicant_user_id: str
    applicant_name: str | None = None
    role: str
    instruments: list[str]
    message: str | None = None
    response_message: str | None = None
    status: str
    responded_by_user_id: str | None = None
    responded_at: datetime | None = None
    created_at: datetime


class BandApplicationListOut(BaseModel):
    items: list[BandApplicationOut]
    pagination: PaginationMeta


class UserApplicationListOut(BaseModel):
    items: list[BandApplicationOut]
