"""
Authenticator - resolves the bearer credential to an Identity.

Required mode: a missing, malformed, invalid or expired token fails with
Unauthorized, as does a valid token whose user no longer exists.
Optional mode: no token means an anonymous request; a token that is present
but invalid still fails with Unauthorized.
"""

import logging
from typing import Callable, Optional, Protocol

from starlette.concurrency import run_in_threadpool

from ku_connect.core.auth import decode_token
from ku_connect.core.errors import Unauthorized
from ku_connect.middleware.context import RequestContext
from ku_connect.models.identity import Identity

logger = logging.getLogger("ku_connect.pipeline.auth")

ACCESS_TOKEN_COOKIE = "accessToken"


class IdentityStore(Protocol):
    def get_identity(self, user_id: str) -> Optional[Identity]:
        ...


class Authenticator:
    def __init__(self, identity_store: IdentityStore,
                 token_decoder: Callable[[str], Optional[dict]] = decode_token):
        self.identity_store = identity_store
        self.token_decoder = token_decoder

    @staticmethod
    def extract_token(ctx: RequestContext) -> Optional[str]:
        """
        Bearer header first, then the access-token cookie. None when absent.

        A blank header or a bare "Bearer" carries no token and counts as absent;
        any other scheme is malformed.
        """
        auth_header = (ctx.header("authorization") or "").strip()
        if auth_header:
            scheme, _, token = auth_header.partition(" ")
            if scheme.lower() != "bearer":
                raise Unauthorized("Malformed authorization header")
            if token.strip():
                return token.strip()
        return ctx.cookies.get(ACCESS_TOKEN_COOKIE) or None

    async def resolve(self, token: str) -> Identity:
        payload = self.token_decoder(token)
        if not payload or not payload.get("sub"):
            raise Unauthorized("Invalid or expired access token")

        identity = await run_in_threadpool(self.identity_store.get_identity, str(payload["sub"]))
        if identity is None:
            logger.info("Token references unknown user %s", payload["sub"])
            raise Unauthorized("User not found")
        return identity

    async def authenticate(self, ctx: RequestContext, mode: str = "required") -> None:
        token = self.extract_token(ctx)
        if token is None:
            if mode == "optional":
                return
            raise Unauthorized("Access token required")
        ctx.attach_identity(await self.resolve(token))
