"""
Task Database Models
====================

Tasks, bids and milestones as far as the realtime notifier reads them.
Their CRUD endpoints live outside this service.

Version: 0.1.0
"""

from enum import Enum
from typing import Any

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from shared.database.postgres import Base
from services.marketplace.models.base import new_id, utcnow


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    DRAFT = "DRAFT"
    PUBLISHED = "PUBLISHED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    DISPUTED = "DISPUTED"


class BidStatus(str, Enum):
    """Bid lifecycle states."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    WITHDRAWN = "WITHDRAWN"


class TaskModel(Base):
    """A job posted by a client, optionally assigned to a freelancer."""

    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String(50), nullable=False, default="OTHER")
    budget = Column(Float)
    budget_type = Column(String(16), nullable=False, default="fixed")
    deadline = Column(DateTime(timezone=True))
    status = Column(SQLEnum(TaskStatus), nullable=False, default=TaskStatus.DRAFT)

    client_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)
    freelancer_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    client = relationship("UserModel", foreign_keys=[client_id], lazy="joined")
    freelancer = relationship("UserModel", foreign_keys=[freelancer_id], lazy="joined")

    def participant_ids(self) -> set[str]:
        """Users allowed into the task's room."""
        return {uid for uid in (self.client_id, self.freelancer_id) if uid}

    def counterpart_of(self, user_id: str) -> str | None:
        """The other party on the task, if assigned."""
        return self.freelancer_id if user_id == self.client_id else self.client_id

    def __repr__(self) -> str:
        return f"<Task {self.id}: {self.title}>"


class BidModel(Base):
    """A freelancer's offer on a task. One bid per freelancer per task."""

    __tablename__ = "bids"
    __table_args__ = (UniqueConstraint("task_id", "freelancer_id", name="uq_bids_task_freelancer"),)

    id = Column(String(36), primary_key=True, default=new_id)
    amount = Column(Float, nullable=False)
    cover_letter = Column(Text, nullable=False, default="")
    timeline = Column(Integer, nullable=False, default=0)
    status = Column(SQLEnum(BidStatus), nullable=False, default=BidStatus.PENDING)

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    freelancer_id = Column(String(36), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    freelancer = relationship("UserModel", lazy="joined")


class MilestoneModel(Base):
    """A payable checkpoint on a task."""

    __tablename__ = "milestones"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    amount = Column(Float, nullable=False)
    due_date = Column(DateTime(timezone=True))
    is_completed = Column(Boolean, nullable=False, default=False)
    completed_at = Column(DateTime(timezone=True))

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "amount": self.amount,
            "isCompleted": bool(self.is_completed),
            "taskId": self.task_id,
        }
