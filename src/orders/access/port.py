"""Identity port — verifies a bearer credential and names the caller.

Routes program against the port. The application entry point builds the
adapter from configuration and injects it.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Caller:
    uid: str
    email: str | None = None
    claims: dict = field(default_factory=dict)


class IdentityVerifier(ABC):
    @abstractmethod
    def verify(self, token: str) -> Caller:
        """Return the caller behind ``token``.

        Raises:
            Unauthenticated: the token is unknown, expired or malformed.
        """
        ...
