"""Session state and the gate that protects authenticated commands."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Dict, Mapping, Optional, Union


class SessionState(enum.Enum):
    UNKNOWN = "unknown"
    RESOLVED = "resolved"


@dataclass(frozen=True)
class User:
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, object]) -> Optional["User"]:
        nested = payload.get("user")
        if isinstance(nested, Mapping):
            payload = nested
        name = payload.get("name")
        email = payload.get("email")
        if not name and not email:
            return None
        return cls(
            name=str(name) if name else None,
            email=str(email) if email else None,
        )

    @property
    def display_name(self) -> str:
        return self.name or self.email or "?"


@dataclass(frozen=True)
class Session:
    """The authenticated caller, passed explicitly to everything that needs it."""

    user: Optional[User] = None
    state: SessionState = SessionState.UNKNOWN
    cookies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_cookie_header(cls, header: Optional[str]) -> "Session":
        """Build an unresolved session from a raw ``name=value; other=value`` string."""
        cookies: Dict[str, str] = {}
        for part in (header or "").split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                cookies[name.strip()] = value.strip()
        return cls(cookies=cookies)

    @property
    def has_credentials(self) -> bool:
        return bool(self.cookies)

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.RESOLVED and self.user is not None

    def credential_headers(self) -> Dict[str, str]:
        if not self.cookies:
            return {}
        return {"Cookie": "; ".join(f"{name}={value}" for name, value in self.cookies.items())}

    def resolved(self, user: Optional[User]) -> "Session":
        return replace(self, user=user, state=SessionState.RESOLVED)

    def signed_out(self) -> "Session":
        return Session(user=None, state=SessionState.RESOLVED, cookies={})


@dataclass(frozen=True)
class Loading:
    message: str = "Loading..."


@dataclass(frozen=True)
class Redirect:
    location: str


@dataclass(frozen=True)
class Admit:
    user: User


GateDecision = Union[Loading, Redirect, Admit]


def gate(session: Session, login_url: str = "/login") -> GateDecision:
    """Decide what a protected view should produce for ``session``."""
    if session.state is not SessionState.RESOLVED:
        return Loading()
    if session.user is None:
        return Redirect(location=login_url)
    return Admit(user=session.user)
