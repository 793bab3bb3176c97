"""
Access levels.

This defines WHO may run an operation, not HOW we check it.
The actual checking happens in decision.py.
"""

from enum import Enum


class AccessLevel(str, Enum):
    """
    Authorization policy class attached to an operation.
    
    There is no strictness order between levels; each one has its own
    evaluation rule.
    """
    
    PUBLIC = "public"                  # Anyone, including anonymous callers
    AUTHENTICATED = "authenticated"    # Any logged-in caller
    OWNER_OR_ADMIN = "owner_or_admin"  # The entity's owner, or an admin
    ADMIN_ONLY = "admin_only"          # Admins only
    
    @property
    def requires_entity(self) -> bool:
        """Does evaluating this level need the target entity?"""
        return self is AccessLevel.OWNER_OR_ADMIN
