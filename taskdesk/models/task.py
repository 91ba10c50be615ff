from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, Text, Boolean
from sqlalchemy.orm import relationship
from taskdesk.database import Base
import enum
from datetime import datetime


class TaskStatus(str, enum.Enum):
    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    WAITING_FOR_APPROVAL = "Waiting For Approval"
    COMPLETED = "Completed"


class TaskPriority(str, enum.Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class ApprovalStatus(str, enum.Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    RETURNED = "Returned"

    @classmethod
    def _missing_(cls, value):
        # Older clients send "Rejected" for a returned task
        if isinstance(value, str) and value.strip().lower() in ("rejected", "returned"):
            return cls.RETURNED
        return None


class DurationType(str, enum.Enum):
    HOURS = "hours"
    DAYS = "days"


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    sno = Column(Integer, nullable=False, index=True)
    task = Column(Text, nullable=False)

    priority = Column(Enum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False)
    status = Column(Enum(TaskStatus), default=TaskStatus.PENDING, nullable=False)

    due_date = Column(DateTime, nullable=True)
    duration_type = Column(Enum(DurationType), nullable=True)
    duration_value = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # Ownership
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_to = Column(Integer, ForeignKey("users.id"), nullable=False)
    assigned_to_email = Column(String, nullable=False, index=True)
    is_self_task = Column(Boolean, default=False, nullable=False)
    task_given_by = Column(Integer, ForeignKey("users.id"), nullable=True)

    # Forwarding
    is_forwarded = Column(Boolean, default=False, nullable=False)
    forwarded_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    forwarded_by_email = Column(String, nullable=True)
    forwarder_approved = Column(Boolean, default=False, nullable=False)

    # Approval
    approval_status = Column(Enum(ApprovalStatus), nullable=True)

    # System dates
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    creator = relationship("User", foreign_keys=[created_by], back_populates="created_tasks")
    assignee = relationship("User", foreign_keys=[assigned_to], back_populates="assigned_tasks")
    forwarder = relationship("User", foreign_keys=[forwarded_by])
    given_by = relationship("User", foreign_keys=[task_given_by])
    comments = relationship(
        "TaskComment",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskComment.id",
    )


class TaskComment(Base):
    __tablename__ = "task_comments"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    task = relationship("Task", back_populates="comments")
    author = relationship("User", foreign_keys=[author_id])

    @property
    def author_name(self):
        return self.author.name if self.author else None

    @property
    def author_email(self):
        return self.author.email if self.author else None
