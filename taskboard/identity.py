"""Identity token verification.

The identity provider signs a JWT for each signed-in user. We only trust the
subject (``sub``, or ``uid`` for providers that use it); roles are never read
from claims.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import jwt

from taskboard.config import Settings, settings
from taskboard.errors import Unauthenticated

logger = logging.getLogger("taskboard.auth")


@dataclass(frozen=True)
class Identity:
    uid: str
    claims: dict[str, Any] = field(default_factory=dict)


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity: ...


class JWTVerifier:
    def __init__(
        self,
        key: str,
        algorithm: str = "HS256",
        audience: str | None = None,
        issuer: str | None = None,
        leeway: int = 0,
    ):
        self.key = key
        self.algorithm = algorithm
        self.audience = audience
        self.issuer = issuer
        self.leeway = leeway

    @classmethod
    def from_settings(cls, s: Settings) -> JWTVerifier:
        return cls(
            key=s.jwt_secret,
            algorithm=s.jwt_algorithm,
            audience=s.jwt_audience,
            issuer=s.jwt_issuer,
            leeway=s.jwt_leeway_seconds,
        )

    def verify(self, token: str) -> Identity:
        if not token:
            raise Unauthenticated()
        try:
            claims = jwt.decode(
                token,
                self.key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                leeway=self.leeway,
                options={"require": ["exp"], "verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired. Please sign in again.") from None
        except jwt.PyJWTError as exc:
            logger.info("Rejected identity token: %s", exc.__class__.__name__)
            raise Unauthenticated("Invalid identity token") from None

        uid = claims.get("sub") or claims.get("uid")
        if not isinstance(uid, str) or not uid:
            raise Unauthenticated("Identity token has no subject")
        return Identity(uid=uid, claims=claims)


def get_identity_verifier() -> IdentityVerifier:
    return JWTVerifier.from_settings(settings)
