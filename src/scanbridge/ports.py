"""Port interfaces for collaborators that live outside the scanning core.

Credential storage is owned by the host application; the core only sees the
resolved connection details through ``CredentialsPort``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class ConnectionDetails:
    url: str
    access_token: str = ""
    username: str = ""
    password: str = ""

    @property
    def has_credentials(self) -> bool:
        """True when a platform URL and either a token or user/password exist."""
        if not self.url:
            return False
        return bool(self.access_token) or bool(self.username and self.password)


@runtime_checkable
class CredentialsPort(Protocol):
    """Source of platform URL and credentials for the analyzer environment."""
    def connection_details(self) -> ConnectionDetails | None: ...
