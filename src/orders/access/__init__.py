"""Caller identity — pluggable token verification."""

from orders.access.port import IdentityVerifier


def build_identity_verifier(adapter: str = "static") -> IdentityVerifier:
    """Construct the identity verifier named by ``adapter``.

    The application entry point owns the instance and hands it to request
    handlers through FastAPI dependencies.
    """
    if adapter == "static":
        from orders.access.static_adapter import StaticTokenVerifier

        return StaticTokenVerifier()
    raise ValueError(f"Unknown identity adapter: {adapter}")
