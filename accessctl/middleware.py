"""
HTTP authorization gate for accessctl applications.

The gate resolves the caller, evaluates the request and maps the outcome
onto HTTP semantics: 401 when the caller cannot be identified, 403 when
the caller is known but the rules deny access.
"""

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional

from aiohttp import web

from .audit.trail import AuditTrail
from .auth.api_key import ApiKeyValidator
from .auth.context import ContextResolver
from .authz.authz import AccessEvaluator
from .authz.types import AccessEvaluationResult, PermissionRule, UserContext
from .types.errors import ForbiddenError, UnauthorizedError, get_http_status


logger = logging.getLogger(__name__)

CONTEXT_KEY = "access_context"
API_USER_KEY = "api_user_id"


@dataclass
class GateResult:
    """Outcome of a gate check."""
    status: int
    context: Optional[UserContext] = None
    error: Optional[str] = None
    result: Optional[AccessEvaluationResult] = None

    @property
    def allowed(self) -> bool:
        return self.status == 200

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.error} if self.error else {}


class AuthorizationGate:
    """Resolves, evaluates and audits a single request."""

    def __init__(self,
                 resolver: ContextResolver,
                 rules: Iterable[PermissionRule],
                 trail: Optional[AuditTrail] = None):
        """
        Initialize the gate.

        Args:
            resolver: Turns raw requests into user contexts
            rules: Ordered permission rules
            trail: Optional audit trail; every evaluated request is recorded
        """
        self.resolver = resolver
        self.evaluator = AccessEvaluator(rules)
        self.trail = trail

    async def check(self,
                    raw_request: Any,
                    resource: str,
                    action: str,
                    record: Any = None,
                    field: Optional[str] = None) -> GateResult:
        """Check one request. Policy errors propagate."""
        try:
            context = await self.resolver.resolve(raw_request)
        except (UnauthorizedError, ForbiddenError) as e:
            logger.info(f"Rejected {resource}:{action}: {e}")
            return GateResult(status=get_http_status(e.error_code), error=e.message)

        result = self.evaluator.evaluate(context, resource, action, record, field)
        if self.trail is not None:
            self.trail.record(resource, action, context, result, record, field)

        if not result.can:
            return GateResult(status=403, context=context, error=result.reason, result=result)
        return GateResult(status=200, context=context, result=result)


Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def require_access(gate: AuthorizationGate,
                   resource: str,
                   action: str,
                   field: Optional[str] = None,
                   record_getter: Optional[Callable[[web.Request], Awaitable[Any]]] = None
                   ) -> Callable[[Handler], Handler]:
    """
    Guard an aiohttp handler with the gate.

    Denied requests get a JSON ``{"error": ...}`` body with status 401 or 403.
    Allowed requests carry the resolved context under ``request["access_context"]``.
    """
    def decorator(handler: Handler) -> Handler:
        @wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            record = await record_getter(request) if record_getter else None
            outcome = await gate.check(request, resource, action, record, field)
            if not outcome.allowed:
                return web.json_response(outcome.to_dict(), status=outcome.status)
            request[CONTEXT_KEY] = outcome.context
            return await handler(request)
        return wrapper
    return decorator


def require_api_key(validator: ApiKeyValidator) -> Callable[[Handler], Handler]:
    """
    Guard an aiohttp handler with a bearer API key.

    A missing or malformed Authorization header gets 401, an unknown key 403,
    both with a JSON ``{"error": ...}`` body. Accepted requests carry the
    key owner's user id under ``request["api_user_id"]``.
    """
    def decorator(handler: Handler) -> Handler:
        @wraps(handler)
        async def wrapper(request: web.Request) -> web.StreamResponse:
            try:
                user_id = await validator.authenticate(request.headers.get("Authorization"))
            except (UnauthorizedError, ForbiddenError) as e:
                logger.info(f"Rejected API key request to {request.path}: {e}")
                return web.json_response({'error': e.message}, status=get_http_status(e.error_code))
            request[API_USER_KEY] = user_id
            return await handler(request)
        return wrapper
    return decorator
