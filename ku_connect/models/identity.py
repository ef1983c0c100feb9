"""
Identity and authorization rule models.

An Identity is resolved once per request from the bearer credential and is
frozen for the rest of that request.
"""

from enum import Enum
from typing import FrozenSet, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    STUDENT = "STUDENT"
    EMPLOYER = "EMPLOYER"
    PROFESSOR = "PROFESSOR"
    ADMIN = "ADMIN"


class Identity(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    role: Role
    verified: bool = False
    email: Optional[str] = None


class AuthorizationRule(BaseModel):
    """
    Per-route access policy.

    allowed_roles empty means "any authenticated identity".
    owner_param names the path/body field holding the owning user id; when
    set, the identity's id must equal it (ADMIN passes too if admin_bypass).
    """

    model_config = ConfigDict(frozen=True)

    allowed_roles: FrozenSet[Role] = Field(default_factory=frozenset)
    require_verified: bool = False
    owner_param: Optional[str] = None
    owner_source: Literal["path", "body"] = "path"
    admin_bypass: bool = False

    @classmethod
    def roles(cls, *roles: Role, require_verified: bool = False) -> "AuthorizationRule":
        return cls(allowed_roles=frozenset(roles), require_verified=require_verified)

    @classmethod
    def owner(cls, param: str, *roles: Role, source: str = "path", admin_bypass: bool = False) -> "AuthorizationRule":
        return cls(
            allowed_roles=frozenset(roles),
            owner_param=param,
            owner_source=source,
            admin_bypass=admin_bypass,
        )
