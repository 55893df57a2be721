"""
Project, task, calendar and time tracking schemas.

These are the resources the access-control core narrows and checks. They are
read-only inputs: the resolver and filter never mutate them.
"""
from datetime import date, datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ResourceModel(BaseModel):
    """Base for resources read from the data store."""
    model_config = ConfigDict(
        from_attributes=True,
        frozen=True,
        extra="ignore",
    )


class Project(ResourceModel):
    """Project record."""
    id: str
    name: str = ""
    description: Optional[str] = None
    status: str = "planned"
    client_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("client_id", "clientId")
    )
    manager_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("manager_id", "managerId")
    )
    start_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("start_date", "startDate")
    )
    end_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("end_date", "endDate")
    )


class Task(ResourceModel):
    """Task record; every task belongs to exactly one project."""
    id: str
    project_id: str = Field(validation_alias=AliasChoices("project_id", "projectId"))
    title: str = ""
    status: str = "todo"
    priority: str = "medium"
    assignee_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("assignee_id", "assigneeId")
    )
    due_date: Optional[date] = Field(
        default=None, validation_alias=AliasChoices("due_date", "dueDate")
    )


class CalendarEvent(ResourceModel):
    """Calendar entry, optionally linked to a task, a project or a user."""
    id: str
    title: str = ""
    starts_at: Optional[datetime] = Field(
        default=None, validation_alias=AliasChoices("starts_at", "start", "startsAt")
    )
    task_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("task_id", "taskId")
    )
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    user_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("user_id", "userId")
    )


class TimeEntry(ResourceModel):
    """Tracked time recorded by a user."""
    id: str
    user_id: str = Field(validation_alias=AliasChoices("user_id", "userId"))
    task_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("task_id", "taskId")
    )
    project_id: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("project_id", "projectId")
    )
    duration_minutes: int = Field(
        default=0, ge=0, validation_alias=AliasChoices("duration_minutes", "duration")
    )
    description: Optional[str] = None
