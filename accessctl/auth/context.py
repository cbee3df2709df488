"""
Context resolution: turns a raw request into a ``UserContext``.

Resolvers sit in front of the evaluator. The evaluator itself only ever
receives a fully resolved context.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ..authz.types import UserContext
from ..types.errors import UnauthorizedError


logger = logging.getLogger(__name__)


class ContextResolver(ABC):
    """Base class for identity/session resolvers."""

    @abstractmethod
    async def resolve(self, raw_request: Any) -> UserContext:
        """
        Resolve the subject of a request.

        Raises:
            UnauthorizedError: If identity, tenant or role cannot be established
        """
        pass


class ClaimsContextResolver(ContextResolver):
    """
    Resolves a context from session claims.

    Expects a mapping shaped like an identity provider session:
    ``{"userId": ..., "orgId": ..., "sessionClaims": {"metadata": {"role": ...}}}``.
    Remaining metadata entries become context attributes.
    """

    def __init__(self, claims_getter: Optional[Any] = None):
        """
        Args:
            claims_getter: Callable extracting the claims mapping from a raw
                request. Defaults to treating the request as the claims.
        """
        self.claims_getter = claims_getter or (lambda request: request)

    async def resolve(self, raw_request: Any) -> UserContext:
        claims = self.claims_getter(raw_request)
        if not isinstance(claims, Mapping):
            raise UnauthorizedError("No session found")

        session_claims = claims.get('sessionClaims') or {}
        metadata = dict(session_claims.get('metadata') or {})

        user_id = claims.get('userId')
        tenant_id = claims.get('orgId')
        role = metadata.pop('role', None)

        for name, value in (('userId', user_id), ('orgId', tenant_id), ('role', role)):
            if not value:
                logger.info(f"Rejecting session without {name}")
                raise UnauthorizedError(missing=name)

        return UserContext(
            user_id=user_id,
            role=role,
            tenant_id=tenant_id,
            attributes=metadata
        )
