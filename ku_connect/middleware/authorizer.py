"""
Role Authorizer - interprets a route's AuthorizationRule against the Identity
attached by the Authenticator.
"""

from typing import Optional

from ku_connect.core.errors import Forbidden
from ku_connect.middleware.context import RequestContext
from ku_connect.models.identity import AuthorizationRule, Role


class Authorizer:
    def authorize(self, ctx: RequestContext, rule: AuthorizationRule) -> None:
        identity = ctx.identity
        if identity is None:
            raise Forbidden("Authentication required")

        if rule.allowed_roles and identity.role not in rule.allowed_roles:
            required = ", ".join(sorted(r.value for r in rule.allowed_roles))
            raise Forbidden(f"Access denied. Required role(s): {required}")

        if rule.require_verified and not identity.verified:
            raise Forbidden("Account verification required")

        if rule.owner_param:
            owner_id = self._owner_id(ctx, rule)
            is_owner = owner_id is not None and str(owner_id) == identity.id
            if not is_owner and not (rule.admin_bypass and identity.role == Role.ADMIN):
                raise Forbidden("Access denied. You can only access your own resources.")

    @staticmethod
    def _owner_id(ctx: RequestContext, rule: AuthorizationRule) -> Optional[str]:
        if rule.owner_source == "body":
            if isinstance(ctx.raw_body, dict):
                return ctx.raw_body.get(rule.owner_param)
            return None
        return ctx.path_params.get(rule.owner_param)
