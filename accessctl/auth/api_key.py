"""
API key authentication helpers.
"""

import hmac
import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Optional

from ..types.errors import ForbiddenError, UnauthorizedError


logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def parse_bearer_token(header: Optional[str]) -> str:
    """
    Extract the token from an ``Authorization: Bearer <token>`` header.

    Raises:
        UnauthorizedError: If the header is missing or not a bearer header
    """
    if not header or not header.startswith(BEARER_PREFIX):
        raise UnauthorizedError("Unauthorized", missing="Authorization")
    token = header[len(BEARER_PREFIX):].strip()
    if not token:
        raise UnauthorizedError("Unauthorized", missing="Authorization")
    return token


class ApiKeyValidator(ABC):
    """Validates API keys and returns the owning user id."""

    @abstractmethod
    async def validate(self, api_key: str) -> str:
        """
        Raises:
            ForbiddenError: If the key is not recognized
        """
        pass

    async def authenticate(self, authorization_header: Optional[str]) -> str:
        """Validate the key carried by an Authorization header."""
        return await self.validate(parse_bearer_token(authorization_header))


class StaticApiKeyValidator(ApiKeyValidator):
    """Validator backed by a fixed key -> user id mapping."""

    def __init__(self, keys: Mapping[str, str]):
        self._keys: Dict[str, str] = dict(keys)

    async def validate(self, api_key: str) -> str:
        for secret, user_id in self._keys.items():
            if hmac.compare_digest(secret.encode("utf-8"), api_key.encode("utf-8")):
                return user_id
        logger.warning("Rejected unknown API key")
        raise ForbiddenError("Invalid API Key")
