"""
accessctl Python Package

Rule-based access control with field-level permissions and audit logging.
"""

__version__ = "0.1.0"

from .authz import (
    AccessLevel,
    UserContext,
    RecordContext,
    PermissionRule,
    AccessEvaluationResult,
    AccessEvaluator,
    RuleStore,
    Equals,
    And,
    Or,
    PredicateCondition,
    evaluate_access,
    parse_dsl,
)
from .audit import AccessLogEntry, AuditConfig, AuditSink, AuditTrail, create_audit_sink

__all__ = [
    "AccessLevel",
    "UserContext",
    "RecordContext",
    "PermissionRule",
    "AccessEvaluationResult",
    "AccessEvaluator",
    "RuleStore",
    "Equals",
    "And",
    "Or",
    "PredicateCondition",
    "evaluate_access",
    "parse_dsl",
    "AccessLogEntry",
    "AuditConfig",
    "AuditSink",
    "AuditTrail",
    "create_audit_sink",
]
