"""
Posts API Backend: Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py (server, logging, CORS) and by the factory that
       builds the datastore, token verifier and OAuth clients.

Secrets:
    GOOGLE_CLIENT_ID, GOOGLE_CLIENT_SECRET and GOOGLE_REDIRECT_URI have no
    defaults. They must come from the environment of the deployment.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes are grouped by concern for readability.
    """

    # ── Server ────────────────────────────────────────────────────────────
    # App Engine and Cloud Run inject PORT; 8080 otherwise
    port: int = Field(default=8080, ge=1, le=65535)
    host: str = Field(default="0.0.0.0")

    # What: Proxies whose X-Forwarded-Proto/Host headers are trusted
    # Self-links are built from the request URL, so behind a load balancer
    # these headers decide the scheme and host clients see
    forwarded_allow_ips: str = Field(default="*")

    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── CORS ──────────────────────────────────────────────────────────────
    # Format: Comma-separated URLs
    cors_origins: str = Field(default="*")

    @property
    def cors_origins_list(self) -> List[str]:
        """Splits comma-separated CORS origins into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # ── Cloud Datastore ───────────────────────────────────────────────────
    # What: Project and namespace the Datastore client is scoped to
    # None lets the client library infer the project from the environment
    # (GOOGLE_CLOUD_PROJECT, metadata server, or DATASTORE_EMULATOR_HOST)
    datastore_project: Optional[str] = Field(default=None)
    datastore_namespace: Optional[str] = Field(default=None)

    # ── Google OAuth2 / OpenID Connect ────────────────────────────────────
    google_client_id: str = Field(default="", description="OAuth client id, also the token audience")
    google_client_secret: str = Field(default="", description="OAuth client secret")
    google_redirect_uri: str = Field(default="", description="Registered redirect URI ending in /oauth")

    google_auth_endpoint: str = Field(default="https://accounts.google.com/o/oauth2/v2/auth")
    google_token_endpoint: str = Field(default="https://oauth2.googleapis.com/token")
    google_jwks_url: str = Field(default="https://www.googleapis.com/oauth2/v3/certs")

    # Google signs ID tokens with either form of the issuer
    google_issuers: str = Field(default="https://accounts.google.com,accounts.google.com")

    @property
    def google_issuers_list(self) -> List[str]:
        return [issuer.strip() for issuer in self.google_issuers.split(",") if issuer.strip()]

    # ── Signing Key Cache ─────────────────────────────────────────────────
    # What: Seconds a downloaded key set is served before it is refetched
    jwks_cache_ttl: int = Field(default=3600, ge=60, le=86400)

    # What: Minimum seconds between refetches triggered by an unknown key id
    # Caps how often forged `kid` values can make us hit Google (10/minute)
    jwks_min_refresh_interval: int = Field(default=6, ge=1, le=3600)

    # ── Outbound HTTP ─────────────────────────────────────────────────────
    http_timeout: float = Field(default=10.0, gt=0, le=120)

    # What: Tenacity retry settings for key set downloads
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_min_wait: int = Field(default=1, ge=1, le=30)
    retry_max_wait: int = Field(default=5, ge=1, le=120)

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # PORT and port both work
    }

    def validate_required_for_production(self) -> None:
        """
        What:  Validates that the OAuth secrets are configured.
        When:  Called during app startup (lifespan).
        How:   Collects every missing setting and raises one ValueError listing them.
        """
        errors = []
        if not self.google_client_id:
            errors.append("GOOGLE_CLIENT_ID is not set; bearer tokens cannot be verified.")
        if not self.google_client_secret:
            errors.append("GOOGLE_CLIENT_SECRET is not set; /oauth cannot exchange codes.")
        if not self.google_redirect_uri:
            errors.append("GOOGLE_REDIRECT_URI is not set; /auth cannot build the consent URL.")
        if errors:
            raise ValueError(
                "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
            )


# Configuration is read once at import and shared by every module
settings = Settings()
