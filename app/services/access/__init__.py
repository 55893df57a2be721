"""
Access data for ProjectHub: memberships, assignments, grants and the
principal snapshots built from them.
"""

from .cache import PrincipalCache
from .service import AccessService, access_service

__all__ = [
    "AccessService",
    "PrincipalCache",
    "access_service",
]
