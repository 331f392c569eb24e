"""
Access token verification against the identity provider's published key set.
"""
import logging
import time
from typing import Any, Dict, Optional

import httpx
import jwt

logger = logging.getLogger(__name__)


class ProviderError(Exception):
    """Base exception for provider-related errors."""
    pass


class TokenVerificationError(ProviderError):
    """Token verification failed."""
    pass


class JWKSTokenVerifier:
    """
    RS256 access token verifier.
    Keys come from the provider's JWKS endpoint and are cached; an unknown
    key id triggers one refetch so key rotation is picked up immediately.
    """

    ALGORITHMS = ["RS256"]

    def __init__(
        self,
        issuer: str,
        jwks_url: str,
        audience: Optional[str] = None,
        cache_ttl_seconds: int = 3600,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.issuer = issuer
        self.jwks_url = jwks_url
        self.audience = audience
        self.cache_ttl_seconds = cache_ttl_seconds
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._jwks_cache: Optional[Dict] = None
        self._jwks_cache_time: Optional[float] = None

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _cache_is_fresh(self) -> bool:
        if self._jwks_cache is None or self._jwks_cache_time is None:
            return False
        return time.monotonic() - self._jwks_cache_time < self.cache_ttl_seconds

    async def _get_public_keys(self, force_refresh: bool = False) -> Dict:
        """Fetch the provider's public keys with caching."""
        if not force_refresh and self._cache_is_fresh():
            return self._jwks_cache

        if self._client is None:
            raise TokenVerificationError("Token verifier has not been started")

        try:
            response = await self._client.get(self.jwks_url)
            response.raise_for_status()
            jwks = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise TokenVerificationError(f"Unable to fetch signing keys: {e}")

        self._jwks_cache = jwks
        self._jwks_cache_time = time.monotonic()
        logger.info(f"Fetched {len(jwks.get('keys', []))} signing key(s) from {self.jwks_url}")
        return jwks

    @staticmethod
    def _find_key(jwks: Dict, kid: str) -> Optional[Dict]:
        for key in jwks.get("keys", []):
            if key.get("kid") == kid:
                return key
        return None

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify an access token and return its claims.

        Raises:
            TokenVerificationError: If the token is malformed, expired, signed
                by an unknown key, or issued for another issuer/audience
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as e:
            raise TokenVerificationError(f"Invalid token header: {e}")

        kid = header.get("kid")
        if not kid:
            raise TokenVerificationError("Token missing key ID")

        jwks = await self._get_public_keys()
        jwk = self._find_key(jwks, kid)
        if jwk is None:
            # Keys may have been rotated since the last fetch
            jwks = await self._get_public_keys(force_refresh=True)
            jwk = self._find_key(jwks, kid)
        if jwk is None:
            raise TokenVerificationError("Public key not found")

        try:
            public_key = jwt.algorithms.RSAAlgorithm.from_jwk(jwk)
            options = {"require": ["exp"], "verify_aud": self.audience is not None}
            return jwt.decode(
                token,
                public_key,
                algorithms=self.ALGORITHMS,
                audience=self.audience,
                issuer=self.issuer,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            raise TokenVerificationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise TokenVerificationError(f"Invalid token: {e}")
        except (ValueError, KeyError) as e:
            raise TokenVerificationError(f"Malformed signing key: {e}")
