"""Session lifecycle: issuance, verification, rotation, revocation.

- SessionTokenCodec: encode/verify access and refresh JWTs
- SessionVerifier: access (stateless) and refresh (list membership) checks
- SessionIssuer: identity token -> account -> session pair; refresh rotation
- SessionService: application entry point with audit logging
"""

from zkauth.sessions.issuer import IssuanceState, SessionIssuer, SessionResult
from zkauth.sessions.service import SessionService, create_session_service
from zkauth.sessions.tokens import DecodedSessionToken, IssuedToken, SessionTokenCodec
from zkauth.sessions.verifier import SessionVerifier

__all__ = [
    "DecodedSessionToken",
    "IssuanceState",
    "IssuedToken",
    "SessionIssuer",
    "SessionResult",
    "SessionService",
    "SessionTokenCodec",
    "SessionVerifier",
    "create_session_service",
]
