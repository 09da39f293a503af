# Overview: Explicit session value carried by every engine call to the storefront API.

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SessionContext:
    """
    Bearer credential plus the cached user profile returned at login.

    The engine only attaches the token; it never inspects or refreshes it.
    """

    token: str
    user: dict = field(default_factory=dict)

    @property
    def role(self) -> str | None:
        return self.user.get("role")

    @property
    def is_developer(self) -> bool:
        return self.role == "developer"

    def auth_headers(self) -> dict:
        return {"Authorization": f"Bearer {self.token}"}
