"""
Database models for ProjectHub access control.

Only the tables the access core reads or writes are mapped here. Identifiers
are UUID strings so the same models work against PostgreSQL and SQLite.
"""
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    JSON,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import relationship

from app.infrastructure.database.base import Base


def _uuid() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin for created_at and updated_at."""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(Base, TimestampMixin):
    """User account; ``role`` may hold a legacy or a canonical role name."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255))
    role = Column(String(50), nullable=False, default="member")
    status = Column(String(20), nullable=False, default="active")

    memberships = relationship("ProjectMember", back_populates="user", foreign_keys="ProjectMember.user_id")
    permissions = relationship("UserPermission", back_populates="user", uselist=False)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"


class Project(Base, TimestampMixin):
    """Project record."""
    __tablename__ = "projects"

    id = Column(String(36), primary_key=True, default=_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    status = Column(String(50), default="planned", nullable=False)
    client_id = Column(String(36), index=True)
    manager_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    start_date = Column(Date)
    end_date = Column(Date)

    tasks = relationship("Task", back_populates="project", cascade="all, delete-orphan")
    members = relationship("ProjectMember", back_populates="project", cascade="all, delete-orphan")


class Task(Base, TimestampMixin):
    """Task record; belongs to exactly one project."""
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=_uuid)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    status = Column(String(50), default="todo", nullable=False)
    priority = Column(String(20), default="medium", nullable=False)
    assignee_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), index=True)
    due_date = Column(Date)

    project = relationship("Project", back_populates="tasks")
    assignments = relationship("TaskAssignment", back_populates="task", cascade="all, delete-orphan")


class ProjectMember(Base):
    """Membership of a user in a project."""
    __tablename__ = "project_members"
    __table_args__ = (
        UniqueConstraint("user_id", "project_id", name="uq_project_members_user_project"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String(36), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False, default="member")
    assigned_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="memberships", foreign_keys=[user_id])
    project = relationship("Project", back_populates="members")


class TaskAssignment(Base):
    """Assignment of a task to a user."""
    __tablename__ = "task_assignments"
    __table_args__ = (
        UniqueConstraint("task_id", "assigned_to", name="uq_task_assignments_task_user"),
    )

    id = Column(String(36), primary_key=True, default=_uuid)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_to = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"))
    assigned_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    status = Column(String(20), nullable=False, default="assigned")

    task = relationship("Task", back_populates="assignments")


class UserPermission(Base, TimestampMixin):
    """Explicit grants kept per user alongside the role."""
    __tablename__ = "user_permissions"

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    project_ids = Column(JSON, nullable=False, default=list)
    task_ids = Column(JSON, nullable=False, default=list)
    calendar_access = Column(Boolean, nullable=False, default=False)
    tracking_access = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="permissions")
