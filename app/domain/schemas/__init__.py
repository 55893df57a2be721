"""
Domain schemas for ProjectHub access control.
"""

from .access import *
from .project import *

__all__ = [
    # Access schemas
    "AssignmentStatus",
    "MembershipRole",
    "Principal",
    "ProjectMembership",
    "TaskAssignment",
    "UserGrants",

    # Resource schemas
    "CalendarEvent",
    "Project",
    "Task",
    "TimeEntry",
]
