# auth/__init__.py
from justicebot.auth.identity import IdentityVerifier, extract_bearer

__all__ = [
    "IdentityVerifier",
    "extract_bearer",
]
