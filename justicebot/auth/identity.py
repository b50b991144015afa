"""
Identity Verifier
=================
Validates the bearer token issued by the identity provider (Supabase) and
turns it into an IdentityContext.

- Single pre-shared HS256 key
- Exact algorithm pinning (no downgrade to "none" or another HMAC size)
- Expiry and signature enforced by PyJWT
- Pure: nothing is stored, the context is handed to the caller
"""

from typing import Optional

import jwt
import structlog

from justicebot.config import AuthConfig
from justicebot.errors import ConfigurationError, Unauthorized
from justicebot.schemas import IdentityContext


logger = structlog.get_logger().bind(component="identity")

BEARER_PREFIX = "Bearer "


def extract_bearer(authorization: Optional[str]) -> str:
    """Pull the raw token out of an Authorization header value"""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthorized("missing bearer token")
    token = authorization[len(BEARER_PREFIX):].strip()
    if not token:
        raise Unauthorized("missing bearer token")
    return token


class IdentityVerifier:
    """
    Verifies identity tokens against the shared signing key.

    Example:
        verifier = IdentityVerifier(AuthConfig(jwt_secret="..."))
        identity = verifier.verify(request.headers.get("Authorization"))
    """

    def __init__(self, config: AuthConfig):
        self.config = config

    def verify(self, authorization: Optional[str]) -> IdentityContext:
        token = extract_bearer(authorization)
        return self.verify_token(token)

    def verify_token(self, token: str) -> IdentityContext:
        if not self.config.jwt_secret:
            raise ConfigurationError("identity signing key is not configured")

        options = {"require": ["exp", "sub"]}
        if not self.config.audience:
            options["verify_aud"] = False

        try:
            claims = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.algorithm],
                audience=self.config.audience,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            logger.info("token_rejected", reason="expired")
            raise Unauthorized("token expired")
        except jwt.InvalidAlgorithmError:
            logger.warning("token_rejected", reason="algorithm")
            raise Unauthorized("invalid token")
        except jwt.InvalidTokenError as e:
            logger.info("token_rejected", reason=type(e).__name__)
            raise Unauthorized("invalid token")

        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise Unauthorized("token has no subject")

        email = claims.get("email")
        return IdentityContext(
            subject_id=subject,
            email=email if isinstance(email, str) else "",
        )
