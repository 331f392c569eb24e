"""
Process-level resources: the database engine, the token verifier and the
upload store. Built once, opened on startup and closed on shutdown.
"""
import logging
from typing import Any, Dict, Optional, Protocol

from tripboard.auth.config import AuthSettings, auth_settings as default_auth_settings
from tripboard.auth.providers import JWKSTokenVerifier
from tripboard.config import Settings, settings as default_settings
from tripboard.infrastructure.database import Database
from tripboard.infrastructure.uploads import UploadStore

logger = logging.getLogger(__name__)


class TokenVerifier(Protocol):
    async def start(self) -> None: ...

    async def close(self) -> None: ...

    async def verify_token(self, token: str) -> Dict[str, Any]: ...


class AppServices:
    """Container for the resources shared by every request."""

    def __init__(self, database: Database, token_verifier: TokenVerifier, upload_store: UploadStore):
        self.database = database
        self.token_verifier = token_verifier
        self.upload_store = upload_store

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        auth_settings: Optional[AuthSettings] = None,
    ) -> "AppServices":
        settings = settings or default_settings
        auth_settings = auth_settings or default_auth_settings

        if not auth_settings.issuer:
            raise RuntimeError("Missing AUTH0_ISSUER_BASE_URL (or AUTH0_DOMAIN) in environment variables.")

        return cls(
            database=Database(settings.database_url, echo=settings.database_echo),
            token_verifier=JWKSTokenVerifier(
                issuer=auth_settings.issuer,
                jwks_url=auth_settings.jwks_url,
                audience=auth_settings.auth0_audience or None,
                cache_ttl_seconds=auth_settings.jwks_cache_ttl_seconds,
                timeout_seconds=auth_settings.jwks_timeout_seconds,
            ),
            upload_store=UploadStore(
                directory=settings.uploads_dir,
                url_prefix=settings.uploads_url_prefix,
                max_file_size=settings.max_image_size_bytes,
            ),
        )

    async def start(self) -> None:
        await self.database.start()
        await self.token_verifier.start()
        self.upload_store.ensure_directory()
        logger.info("Application services started")

    async def close(self) -> None:
        await self.token_verifier.close()
        await self.database.close()
        logger.info("Application services closed")
