"""Static token verifier — an in-process token table for development and tests."""

from orders.access.port import Caller, IdentityVerifier
from orders.exceptions import Unauthenticated


class StaticTokenVerifier(IdentityVerifier):
    def __init__(self, tokens: dict[str, Caller] | None = None):
        self.tokens: dict[str, Caller] = dict(tokens or {})

    def register(self, token: str, uid: str, email: str | None = None, **claims) -> Caller:
        caller = Caller(uid=uid, email=email, claims=claims)
        self.tokens[token] = caller
        return caller

    def configure(self, tokens: dict[str, Caller] | None = None):
        """Replace the token table."""
        self.tokens = dict(tokens or {})

    def verify(self, token: str) -> Caller:
        if not token or token not in self.tokens:
            raise Unauthenticated("Invalid or expired token")
        return self.tokens[token]
