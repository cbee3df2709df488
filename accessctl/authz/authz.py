# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Core authorization engine for accessctl.
Implements rule lookup, condition evaluation and field-permission resolution.
"""

import logging
from typing import Any, Iterable, Optional

from ..types.errors import PolicyEvaluationError
from .conditions import evaluate_condition
from .store import RuleStore
from .types import AccessEvaluationResult, AccessLevel, PermissionRule, UserContext


logger = logging.getLogger(__name__)

NO_MATCHING_RULE = "No matching rule found"


def field_denied_reason(field_name: str) -> str:
    return f"No access to field '{field_name}'"


def evaluate_access(
    rules: Iterable[PermissionRule],
    context: UserContext,
    resource: str,
    action: str,
    record: Any = None,
    field: Optional[str] = None,
) -> AccessEvaluationResult:
    """
    Decide whether ``context`` may perform ``action`` on ``resource``.

    Rules are scanned in order. A rule is accepted when resource and action
    match and its condition (if any) holds; a rule whose condition fails is
    skipped and scanning continues. For the accepted rule, a requested
    ``field`` must be granted read or write by the rule's field permissions.

    The function is pure: it performs no I/O and does not touch the rules.

    Args:
        rules: Ordered permission rules
        context: The resolved subject
        resource: Resource being accessed
        action: Action being performed
        record: The specific record, if any
        field: A single field being read or written; None or "" means no field

    Returns:
        AccessEvaluationResult: ``can`` plus a reason on denial

    Raises:
        PolicyEvaluationError: If a native predicate raises
    """
    for rule in rules:
        if not rule.matches(resource, action):
            continue

        if rule.condition is not None:
            try:
                satisfied = evaluate_condition(rule.condition, context, record)
            except Exception as e:
                raise PolicyEvaluationError(
                    f"Condition failed for {resource}:{action}: {e}",
                    resource=resource,
                    action=action,
                    cause=e
                ) from e
            if not satisfied:
                continue

        if field and rule.field_permissions is not None:
            if rule.field_access(field) == AccessLevel.NONE:
                return AccessEvaluationResult.deny(field_denied_reason(field))

        return AccessEvaluationResult.allow()

    return AccessEvaluationResult.deny(NO_MATCHING_RULE)


class AccessEvaluator:
    """
    Evaluates requests against a fixed rule store.
    """

    def __init__(self, rules: Iterable[PermissionRule]):
        self.rules = rules if isinstance(rules, RuleStore) else RuleStore(rules)

    def evaluate(
        self,
        context: UserContext,
        resource: str,
        action: str,
        record: Any = None,
        field: Optional[str] = None,
    ) -> AccessEvaluationResult:
        """Evaluate a single request."""
        result = evaluate_access(self.rules, context, resource, action, record, field)
        logger.debug(
            f"{resource}:{action}{'.' + field if field else ''} "
            f"for {context.user_id}: {'allowed' if result.can else result.reason}"
        )
        return result

    def can(
        self,
        context: UserContext,
        resource: str,
        action: str,
        record: Any = None,
        field: Optional[str] = None,
    ) -> bool:
        """Shorthand for ``evaluate(...).can``."""
        return self.evaluate(context, resource, action, record, field).can
