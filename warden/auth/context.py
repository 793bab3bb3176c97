"""
Identity context - the "who is calling" for each request.

This is the lightweight object handed to the decision engine. It is
built fresh per request by the identity collaborator (see policies.py)
and never mutated or cached afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IdentityContext:
    """
    Caller identity for one invocation.
    
    ``caller_id is None`` means the request is unauthenticated.
    
    Usage in routes:
        async def my_route(grant: AccessGrant = Depends(enforce)):
            print(f"User {grant.identity.caller_id} is calling")
    """
    
    caller_id: int | None = None
    is_admin: bool = False
    
    @property
    def is_authenticated(self) -> bool:
        """Is there a logged-in caller?"""
        return self.caller_id is not None
    
    @property
    def is_anonymous(self) -> bool:
        """Is this an anonymous request?"""
        return self.caller_id is None
    
    @classmethod
    def anonymous(cls) -> IdentityContext:
        """Create an anonymous context (no caller)."""
        return cls()
    
    @classmethod
    def user(cls, caller_id: int, is_admin: bool = False) -> IdentityContext:
        """Create an authenticated context."""
        return cls(caller_id=caller_id, is_admin=is_admin)
