# config.py
# ============================================================================
# JUSTICE-BOT BACKEND v1.0 - CONFIGURATION
# ============================================================================
# Environment-driven settings. Missing secrets are not fatal at start-up:
# the operation that needs them raises ConfigurationError when called.
# ============================================================================

import os
from dataclasses import dataclass, field
from typing import Optional


PAYPAL_LIVE_URL = "https://api-m.paypal.com"
PAYPAL_SANDBOX_URL = "https://api-m.sandbox.paypal.com"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


def _env_list(name: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, "").split(",") if item.strip()]


@dataclass
class AuthConfig:
    """Identity token verification"""
    jwt_secret: str = ""
    audience: Optional[str] = None
    algorithm: str = "HS256"

    @classmethod
    def from_env(cls) -> "AuthConfig":
        return cls(
            jwt_secret=os.getenv("SUPABASE_JWT_SECRET", ""),
            audience=os.getenv("SUPABASE_JWT_AUDIENCE") or None,
        )


@dataclass
class PayPalConfig:
    """Payment processor connection"""
    client_id: str = ""
    client_secret: str = ""
    environment: str = "sandbox"
    base_url_override: str = ""
    brand_name: str = "Justice-Bot"
    timeout_seconds: float = 15.0
    cache_token: bool = False

    @property
    def base_url(self) -> str:
        if self.base_url_override:
            return self.base_url_override.rstrip("/")
        if self.environment.lower() == "live":
            return PAYPAL_LIVE_URL
        return PAYPAL_SANDBOX_URL

    @property
    def has_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)

    @classmethod
    def from_env(cls) -> "PayPalConfig":
        return cls(
            client_id=os.getenv("PAYPAL_CLIENT_ID", ""),
            client_secret=os.getenv("PAYPAL_CLIENT_SECRET", ""),
            environment=os.getenv("PAYPAL_ENV", "sandbox"),
            base_url_override=os.getenv("PAYPAL_BASE_URL", ""),
            brand_name=os.getenv("PAYPAL_BRAND_NAME", "Justice-Bot"),
            timeout_seconds=float(os.getenv("PAYPAL_TIMEOUT_SECONDS", "15")),
            cache_token=_env_bool("PAYPAL_CACHE_TOKEN", False),
        )


@dataclass
class StoreConfig:
    """Entitlement store selection and connection"""
    backend: str = "supabase"
    supabase_url: str = ""
    service_role_key: str = ""
    database_url: str = ""
    min_pool_size: int = 1
    max_pool_size: int = 10
    timeout_seconds: float = 15.0

    @classmethod
    def from_env(cls) -> "StoreConfig":
        return cls(
            backend=os.getenv("ENTITLEMENT_BACKEND", "supabase").strip().lower(),
            supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
            service_role_key=os.getenv("SUPABASE_SERVICE_ROLE", ""),
            database_url=os.getenv("DATABASE_URL", ""),
            min_pool_size=int(os.getenv("DB_MIN_POOL_SIZE", "1")),
            max_pool_size=int(os.getenv("DB_MAX_POOL_SIZE", "10")),
            timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "15")),
        )


@dataclass
class AssetConfig:
    docs_dir: str = "/docs"

    @classmethod
    def from_env(cls) -> "AssetConfig":
        return cls(docs_dir=os.getenv("DOCS_DIR", "/docs"))


@dataclass
class ServerConfig:
    """HTTP server settings"""
    host: str = "0.0.0.0"
    port: int = 8080
    env: str = "development"
    cors_allowed: list[str] = field(default_factory=list)
    procedures_file: str = "data/procedures.on.json"

    @property
    def debug(self) -> bool:
        return self.env == "development"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8080")),
            env=os.getenv("ENV", "development"),
            cors_allowed=_env_list("CORS_ALLOWED"),
            procedures_file=os.getenv("PROCEDURES_FILE", "data/procedures.on.json"),
        )


@dataclass
class Settings:
    auth: AuthConfig = field(default_factory=AuthConfig)
    paypal: PayPalConfig = field(default_factory=PayPalConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    assets: AssetConfig = field(default_factory=AssetConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            auth=AuthConfig.from_env(),
            paypal=PayPalConfig.from_env(),
            store=StoreConfig.from_env(),
            assets=AssetConfig.from_env(),
            server=ServerConfig.from_env(),
        )
