"""
API Key Authentication Middleware
Secure API key validation with constant-time comparison.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import hashlib
import hmac
import secrets
import uuid
from typing import Iterable, Set
import logging

logger = logging.getLogger(__name__)


class APIKeyManager:
    """
    Manage API keys with secure hashing.
    Uses SHA-256 hashing to avoid storing plaintext keys in memory.
    """

    def __init__(self, api_keys: Iterable[str]):
        api_keys = [k for k in api_keys if k]
        self.valid_keys_hashed = self._hash_keys(api_keys)
        logger.info(f"APIKeyManager initialized with {len(api_keys)} valid keys")

    @staticmethod
    def _hash_keys(keys) -> Set[str]:
        return {hashlib.sha256(key.encode()).hexdigest() for key in keys if key}

    def validate_key(self, api_key: str) -> bool:
        """
        Validate API key using constant-time comparison.

        Args:
            api_key: API key to validate

        Returns:
            True if valid, False otherwise
        """
        if not api_key:
            return False

        key_hash = hashlib.sha256(api_key.encode()).hexdigest()
        return any(hmac.compare_digest(key_hash, valid_hash) for valid_hash in self.valid_keys_hashed)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Authentication middleware for API key validation.

    Checks the API key header on all protected routes and tags every
    request with a short request id used by the error handlers.
    Public routes (health, docs) are exempted.
    """

    PUBLIC_PATHS = {
        "/",
        "/health",
        "/docs",
        "/redoc",
        "/openapi.json",
        "/favicon.ico",
    }

    def __init__(self, app, key_manager: APIKeyManager, api_key_header: str = "X-API-Key"):
        super().__init__(app)
        self.key_manager = key_manager
        self.api_key_header = api_key_header
        logger.info(f"AuthMiddleware initialized (header: {api_key_header})")

    async def dispatch(self, request: Request, call_next):
        request.state.request_id = uuid.uuid4().hex[:12]
        client = request.client.host if request.client else 'unknown'
        context = {"request_id": request.state.request_id, "client_ip": client,
                   "method": request.method, "path": request.url.path}

        if request.url.path in self.PUBLIC_PATHS:
            return await call_next(request)

        api_key = request.headers.get(self.api_key_header)

        if not api_key:
            logger.warning(f"Missing API key: {request.method} {request.url.path} from {client}", extra=context)
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={
                    "status": "error",
                    "error": "Authentication required",
                    "message": f"API key required. Include '{self.api_key_header}' header.",
                    "docs": "/docs"
                },
                headers={"WWW-Authenticate": "ApiKey"},
            )

        if not self.key_manager.validate_key(api_key):
            logger.warning(
                f"Invalid API key attempt: {request.method} {request.url.path} "
                f"from {client} (key: {api_key[:4]}...)",
                extra=context,
            )
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={
                    "status": "error",
                    "error": "Invalid credentials",
                    "message": "The provided API key is not valid."
                },
            )

        request.state.authenticated = True
        request.state.api_key_hash = hashlib.sha256(api_key.encode()).hexdigest()[:16]
        logger.debug(f"Authenticated request: {request.method} {request.url.path} from {client}")

        return await call_next(request)


def generate_api_key() -> str:
    """
    Generate a secure random API key.

    Returns:
        URL-safe base64 encoded random string (32 bytes)
    """
    return secrets.token_urlsafe(32)


if __name__ == "__main__":
    print("Generated API Keys (for development):")
    for i in range(3):
        print(f"  Key {i+1}: {generate_api_key()}")
