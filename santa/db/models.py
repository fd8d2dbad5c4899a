from __future__ import annotations

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

NAME_MAX_LENGTH = 64


class DrawStatus(str, enum.Enum):
    OPEN = "open"
    ASSIGNED = "assigned"


class Draw(Base):
    """One Secret Santa round; exposed to clients as a "session" by its code."""

    __tablename__ = "draws"

    id = Column(Integer, primary_key=True)
    code = Column(String(6), unique=True, nullable=False, index=True)
    status = Column(
        Enum(DrawStatus, name="draw_status", values_callable=lambda statuses: [s.value for s in statuses]),
        nullable=False,
        default=DrawStatus.OPEN,
        server_default=DrawStatus.OPEN.value,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=True)
    last_assignment_seed = Column(Integer, nullable=True)

    members = relationship(
        "Member",
        back_populates="draw",
        cascade="all, delete-orphan",
        order_by="Member.id",
    )
    assignments = relationship("Assignment", back_populates="draw", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Draw(id={self.id}, code={self.code}, status={self.status})>"


class Member(Base):
    __tablename__ = "members"

    id = Column(Integer, primary_key=True)
    draw_id = Column(Integer, ForeignKey("draws.id", ondelete="CASCADE"), nullable=False)
    token = Column(String(36), unique=True, nullable=False, index=True)
    name = Column(String(NAME_MAX_LENGTH), nullable=False)
    ready = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    draw = relationship("Draw", back_populates="members")
    exclusions = relationship(
        "Exclusion",
        foreign_keys="Exclusion.giver_member_id",
        cascade="all, delete-orphan",
        order_by="Exclusion.id",
    )

    __table_args__ = (
        UniqueConstraint("draw_id", "name", name="uq_members_draw_name"),
    )

    def __repr__(self) -> str:
        return (
            "<Member(id={0}, draw_id={1}, name={2}, ready={3})>"
        ).format(self.id, self.draw_id, self.name, self.ready)


class Exclusion(Base):
    __tablename__ = "exclusions"

    id = Column(Integer, primary_key=True)
    giver_member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    excluded_member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)

    excluded = relationship("Member", foreign_keys=[excluded_member_id])

    __table_args__ = (
        UniqueConstraint("giver_member_id", "excluded_member_id", name="uq_exclusions_pair"),
    )


class Assignment(Base):
    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True)
    draw_id = Column(Integer, ForeignKey("draws.id", ondelete="CASCADE"), nullable=False)
    giver_member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    receiver_member_id = Column(Integer, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    draw = relationship("Draw", back_populates="assignments")
    giver = relationship("Member", foreign_keys=[giver_member_id])
    receiver = relationship("Member", foreign_keys=[receiver_member_id])

    __table_args__ = (
        UniqueConstraint("draw_id", "giver_member_id", name="uq_assignments_draw_giver"),
    )
