"""
Authentication configuration settings.
Loaded from environment variables via Pydantic Settings.
"""
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AuthSettings(BaseSettings):
    """Authentication-related settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Identity provider
    auth0_domain: Optional[str] = Field(
        default=None,
        description="Identity provider tenant domain, e.g. example.eu.auth0.com"
    )
    auth0_issuer_base_url: Optional[str] = Field(
        default=None,
        description="Full issuer URL; takes precedence over auth0_domain"
    )
    auth0_audience: Optional[str] = Field(
        default=None,
        description="Expected access token audience. Audience is not checked when unset."
    )

    # Key set fetching
    jwks_cache_ttl_seconds: int = Field(
        default=3600,
        description="How long a fetched key set is reused before refetching"
    )
    jwks_timeout_seconds: float = Field(
        default=5.0,
        description="HTTP timeout for key set requests"
    )

    # Subject namespace used when deriving internal user ids
    auth_subject_namespace: str = Field(
        default="auth0",
        description="Prefix hashed together with the token subject to derive user ids"
    )

    @property
    def issuer(self) -> Optional[str]:
        """Issuer URL, always with a trailing slash."""
        base = (self.auth0_issuer_base_url or "").strip()
        if not base:
            domain = (self.auth0_domain or "").strip()
            if not domain:
                return None
            base = domain if domain.startswith("http") else f"https://{domain}"
        return base.rstrip("/") + "/"

    @property
    def jwks_url(self) -> Optional[str]:
        issuer = self.issuer
        return f"{issuer}.well-known/jwks.json" if issuer else None


# Global auth settings instance
auth_settings = AuthSettings()
