from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from bandhub.core.id_utils import generate_shortuuid
from bandhub.db.base import Base


class ApplicationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class BandApplication(Base):
    __tablename__ = "band_applications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    band_id: Mapped[str] = mapped_column(String(36), ForeignKey("bands.id"), index=True)
    band_name: Mapped[str] = mapped_column(String(120), nullable=False)
    applicant_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    applicant_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, server_default="member")
    instruments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="pending")
    responded_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index(
            "ix_band_applications_band_user_status",
            "band_id",
            "applicant_user_id",
            "status",
        ),
        Index("ix_band_applications_band_status_created", "band_id", "status", "created_at"),
    )
