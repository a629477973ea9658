"""
Capabilities and roles.

Capabilities tag what a pipeline stage adds to the request context, so a
pipeline can refuse to be built when a stage depends on something no earlier
stage provides (e.g. a role gate placed before authentication).
"""

from enum import Enum
from typing import Callable

from storefront.core.models import UserRole


class Capability(str, Enum):
    """What a stage contributes to the request context."""

    IDENTITY = "identity"    # verified claims are attached
    UPLOAD = "upload"        # an admitted file has a blob URL


RolePredicate = Callable[[UserRole], bool]


def is_admin(role: UserRole) -> bool:
    return role == UserRole.ADMIN