"""
Pipeline stage declarations.

A route's chain is an ordered tuple of these values followed by its handler.
The Dispatcher interprets them in order; nothing is inferred.
"""

from dataclasses import dataclass
from typing import ClassVar, Literal, Sequence, Tuple, Type, Union

from pydantic import BaseModel

from ku_connect.models.identity import AuthorizationRule


@dataclass(frozen=True)
class Authenticate:
    kind: ClassVar[str] = "authenticate"
    mode: Literal["required", "optional"] = "required"


@dataclass(frozen=True)
class Authorize:
    kind: ClassVar[str] = "authorize"
    rule: AuthorizationRule


@dataclass(frozen=True)
class RateLimit:
    kind: ClassVar[str] = "rate_limit"
    # Policy name (resolved by the RateLimiter) or a policy object
    policy: Union[str, object]


@dataclass(frozen=True)
class Validate:
    kind: ClassVar[str] = "validate"
    schema: Type[BaseModel]
    sources: Tuple[str, ...] = ("body",)


Stage = Union[Authenticate, Authorize, RateLimit, Validate]

VALID_SOURCES = {"path", "query", "body"}


def ensure_valid_chain(stages: Sequence[Stage]) -> Tuple[Stage, ...]:
    """
    Reject chains that cannot be interpreted correctly.

    - Authorize needs an earlier Authenticate (it has no identity source of its own)
    - at most one Authenticate and one Validate
    - Validate sources must be path/query/body
    """
    seen_auth = False
    validates = 0
    for stage in stages:
        if isinstance(stage, Authenticate):
            if seen_auth:
                raise ValueError("Chain declares Authenticate twice")
            seen_auth = True
        elif isinstance(stage, Authorize):
            if not seen_auth:
                raise ValueError("Authorize must come after Authenticate")
        elif isinstance(stage, Validate):
            validates += 1
            unknown = set(stage.sources) - VALID_SOURCES
            if unknown:
                raise ValueError(f"Unknown validation source(s): {', '.join(sorted(unknown))}")
        elif not isinstance(stage, RateLimit):
            raise TypeError(f"Unknown pipeline stage: {stage!r}")
    if validates > 1:
        raise ValueError("Chain declares Validate more than once")
    return tuple(stages)


def needs_body(stages: Sequence[Stage]) -> bool:
    for stage in stages:
        if isinstance(stage, Validate) and "body" in stage.sources:
            return True
        if isinstance(stage, Authorize) and stage.rule.owner_param and stage.rule.owner_source == "body":
            return True
    return False
