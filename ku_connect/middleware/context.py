"""
Per-request context threaded through the pipeline stages.

Built once per request by the FastAPI guard (or directly in tests); the only
state shared between requests is the rate-limit counter store.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from ku_connect.models.identity import Identity


@dataclass
class RequestContext:
    method: str = "GET"
    path: str = "/"
    client_ip: str = "unknown"
    headers: Mapping[str, str] = field(default_factory=dict)
    cookies: Mapping[str, str] = field(default_factory=dict)
    path_params: Dict[str, Any] = field(default_factory=dict)
    query_params: Dict[str, Any] = field(default_factory=dict)
    raw_body: Any = None
    body_error: Optional[str] = None
    route_name: str = ""

    # Filled in by the stages
    identity: Optional[Identity] = None
    body: Any = None
    rate_limits: List[Any] = field(default_factory=list)

    def header(self, name: str) -> Optional[str]:
        name = name.lower()
        for key, value in self.headers.items():
            if key.lower() == name:
                return value
        return None

    def attach_identity(self, identity: Identity) -> None:
        if self.identity is not None:
            raise RuntimeError("Identity already resolved for this request")
        self.identity = identity
