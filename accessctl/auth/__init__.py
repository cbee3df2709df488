"""
Identity resolution for accessctl: session-claims and API-key front ends.
"""

from .context import ContextResolver, ClaimsContextResolver
from .api_key import ApiKeyValidator, StaticApiKeyValidator, parse_bearer_token

__all__ = [
    "ContextResolver",
    "ClaimsContextResolver",
    "ApiKeyValidator",
    "StaticApiKeyValidator",
    "parse_bearer_token",
]
