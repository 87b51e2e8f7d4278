"""Short-lived JWT access tokens: issuing and validation."""

import logging
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import jwt
from jwt.exceptions import PyJWTError

from sessionvault.core.clock import Clock, utcnow
from sessionvault.core.config import TokenSettings
from sessionvault.services.results import INVALID, Valid, ValidationResult

logger = logging.getLogger(__name__)

# Claims set by the issuer; caller-supplied extra claims may not replace them
RESERVED_CLAIMS = frozenset(
    {"sub", "email", "jti", "iat", "nbf", "exp", "iss", "aud", "roles"}
)


@dataclass(frozen=True)
class Principal:
    """Verified identity decoded from an access token."""

    subject: str
    email: str
    token_id: str
    roles: frozenset[str]
    issued_at: datetime
    expires_at: datetime
    claims: dict[str, Any] = field(default_factory=dict, compare=False)

    def has_role(self, role: str) -> bool:
        return role in self.roles


class AccessTokenService:
    """Issues and validates signed access tokens.

    Stateless: output depends only on the inputs, the clock and the
    signing key. Validation returns ``INVALID`` for every failure cause.
    """

    def __init__(self, config: TokenSettings, clock: Clock = utcnow):
        self.config = config
        self._clock = clock

    def issue(
        self,
        user_id: str,
        email: str,
        roles: Iterable[str],
        extra_claims: Mapping[str, Any] | None = None,
    ) -> str:
        """Create an access token for a user."""
        now = self._clock()
        payload: dict[str, Any] = {}

        if extra_claims:
            for key, value in extra_claims.items():
                if key in RESERVED_CLAIMS:
                    logger.warning("Ignoring extra claim that shadows a reserved claim: %s", key)
                    continue
                payload[key] = "" if value is None else str(value)

        payload.update(
            {
                "sub": str(user_id),
                "email": email,
                "jti": str(uuid.uuid4()),
                "iat": int(now.timestamp()),
                "nbf": int(now.timestamp()),
                "exp": int((now + self.config.access_token_ttl).timestamp()),
                "iss": self.config.issuer,
                "aud": self.config.audience,
                "roles": list(roles),
            }
        )
        token = jwt.encode(payload, self.config.secret_key, algorithm=self.config.algorithm)
        # PyJWT 2.x returns str; older type stubs may declare bytes
        return str(token)

    def validate(self, token: str | None) -> ValidationResult[Principal]:
        """Verify signature, algorithm, issuer, audience and lifetime."""
        if not token or not isinstance(token, str):
            return INVALID

        try:
            # Pin the algorithm before touching the signature
            header = jwt.get_unverified_header(token)
            if header.get("alg") != self.config.algorithm:
                return INVALID

            payload = jwt.decode(
                token,
                self.config.secret_key,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                issuer=self.config.issuer,
                options={
                    "require": ["exp", "iat", "sub", "jti", "iss", "aud"],
                    # Lifetime is checked below against the injected clock
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
            if not self._within_lifetime(payload):
                return INVALID
            return Valid(self._to_principal(payload))
        except (PyJWTError, ValueError, TypeError, KeyError):
            return INVALID

    def peek_expiry(self, token: str) -> datetime | None:
        """Read the expiry without verifying the token. None when unreadable."""
        payload = self._peek(token)
        if payload is None:
            return None
        try:
            return datetime.fromtimestamp(int(payload["exp"]), tz=UTC)
        except (KeyError, ValueError, TypeError, OverflowError):
            return None

    def peek_subject(self, token: str) -> str | None:
        """Read the subject without verifying the token. None when unreadable."""
        payload = self._peek(token)
        if payload is None:
            return None
        subject = payload.get("sub")
        return str(subject) if subject is not None else None

    def _peek(self, token: str) -> dict[str, Any] | None:
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except (PyJWTError, ValueError, TypeError):
            return None

    def _within_lifetime(self, payload: dict[str, Any]) -> bool:
        now = self._clock().timestamp()
        leeway = self.config.clock_skew.total_seconds()
        exp = int(payload["exp"])
        nbf = int(payload.get("nbf", payload["iat"]))
        return nbf - leeway <= now < exp + leeway

    @staticmethod
    def _to_principal(payload: dict[str, Any]) -> Principal:
        roles = payload.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        return Principal(
            subject=str(payload["sub"]),
            email=str(payload.get("email", "")),
            token_id=str(payload["jti"]),
            roles=frozenset(str(r) for r in roles),
            issued_at=datetime.fromtimestamp(int(payload["iat"]), tz=UTC),
            expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=UTC),
            claims=payload,
        )
