"""
Models module - internal data structures shared by the request pipeline.

- Role, Identity: the resolved principal for one request
- AuthorizationRule: declarative role/ownership policy attached to a route
"""

from ku_connect.models.identity import Role, Identity, AuthorizationRule

__all__ = ["Role", "Identity", "AuthorizationRule"]
