from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text, func, text, true
from sqlalchemy.orm import Mapped, mapped_column, relationship

from bandhub.core.id_utils import generate_shortuuid
from bandhub.core.permissions import BandPermission, BandRole
from bandhub.db.base import Base


class Band(Base):
    __tablename__ = "bands"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    genres: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    social_links: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    profile_image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    created_by_user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    members: Mapped[list["BandMember"]] = relationship(
        back_populates="band",
        order_by="BandMember.joined_at",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def roster(self) -> dict[str, "BandMember"]:
        """Active members keyed by user id, in join order."""
        return {member.user_id: member for member in self.members if member.is_active}

    def active_member(self, user_id: str) -> "BandMember | None":
        return self.roster.get(user_id)

    def active_leaders(self) -> list["BandMember"]:
        return [member for member in self.roster.values() if member.role == BandRole.LEADER]


class BandMember(Base):
    __tablename__ = "band_members"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_shortuuid)
    band_id: Mapped[str] = mapped_column(String(36), ForeignKey("bands.id"), index=True)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="member", server_default="member")
    instruments: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    permissions: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    removed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    removed_by_user_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)

    band: Mapped[Band] = relationship(back_populates="members")

    __table_args__ = (
        # One active row per (band, user); inactive history rows are unrestricted.
        Index(
            "ux_band_members_band_user_active",
            "band_id",
            "user_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index("ix_band_members_user_active", "user_id", "is_active"),
    )

    @property
    def permission_set(self) -> set[BandPermission]:
        known = {permission.value for permission in BandPermission}
        return {BandPermission(value) for value in (self.permissions or []) if value in known}
