# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Authorization types for accessctl.
Implements subject/record contexts, permission rules and evaluation results.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from ..types.errors import ValidationError
from .conditions import Condition, as_condition


_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')

# Sentinel returned by lookups that find nothing
_MISSING = object()


def _snake_case(name: str) -> str:
    return _CAMEL_BOUNDARY.sub('_', name).lower()


class AccessLevel(str, Enum):
    """Per-field access level."""
    NONE = "none"
    READ = "read"
    WRITE = "write"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: Any) -> 'AccessLevel':
        """Parse an access level from its string form."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(
                f"Invalid access level: {value}",
                field="access_level",
                value=value
            )


@dataclass(frozen=True)
class UserContext:
    """
    Resolved subject of an access request.

    Named attributes cover identity, role and tenant; anything else a rule
    may need (clearance level, region, ...) lives in ``attributes``.
    """
    user_id: Optional[str]
    role: Optional[str]
    tenant_id: Optional[str]
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _freeze(self, 'attributes')

    def __hash__(self) -> int:
        return hash((self.user_id, self.role, self.tenant_id, frozenset(self.attributes)))

    def get(self, name: str, default: Any = None) -> Any:
        """
        Look up an attribute by name.

        Accepts the snake_case field names as well as the camelCase names
        used in stored policies (``tenantId``, ``userId``).
        """
        value = _lookup(self, ('user_id', 'role', 'tenant_id'), name)
        return default if value is _MISSING else value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            'userId': self.user_id,
            'role': self.role,
            'tenantId': self.tenant_id,
            **dict(self.attributes)
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'UserContext':
        """Create from dictionary representation."""
        known = {'userId', 'user_id', 'role', 'tenantId', 'tenant_id'}
        return cls(
            user_id=data.get('userId', data.get('user_id')),
            role=data.get('role'),
            tenant_id=data.get('tenantId', data.get('tenant_id')),
            attributes={k: v for k, v in data.items() if k not in known}
        )


@dataclass(frozen=True)
class RecordContext:
    """Attributes of the specific entity being accessed."""
    id: Optional[str] = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        _freeze(self, 'attributes')

    def __hash__(self) -> int:
        return hash((self.id, frozenset(self.attributes)))

    def get(self, name: str, default: Any = None) -> Any:
        """Look up an attribute by name (snake_case or camelCase)."""
        value = _lookup(self, ('id',), name)
        return default if value is _MISSING else value

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = dict(self.attributes)
        if self.id is not None:
            data['id'] = self.id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'RecordContext':
        """Create from dictionary representation."""
        return cls(
            id=data.get('id'),
            attributes={k: v for k, v in data.items() if k != 'id'}
        )


def _freeze(obj: Any, name: str) -> None:
    """Replace a mapping field of a frozen dataclass with a read-only copy."""
    object.__setattr__(obj, name, MappingProxyType(dict(getattr(obj, name))))


def _lookup(obj: Any, named: tuple, name: str) -> Any:
    """Resolve ``name`` against named fields first, then free attributes."""
    candidates = (name, _snake_case(name))
    for candidate in candidates:
        if candidate in named:
            value = getattr(obj, candidate)
            if value is not None:
                return value
    for candidate in candidates:
        if candidate in obj.attributes:
            return obj.attributes[candidate]
    return _MISSING


@dataclass(frozen=True)
class PermissionRule:
    """
    A single policy statement: resource + action, an optional condition and
    optional per-field access levels.

    A rule without a condition is satisfied as soon as resource and action
    match. ``field_permissions`` is only consulted when a field is requested.
    """
    resource: str
    action: str
    condition: Optional[Condition] = None
    field_permissions: Optional[Mapping[str, AccessLevel]] = None

    def __post_init__(self):
        if not self.resource:
            raise ValidationError("Rule resource is required", field="resource")
        if not self.action:
            raise ValidationError("Rule action is required", field="action")
        object.__setattr__(self, 'condition', as_condition(self.condition))
        if self.field_permissions is not None:
            object.__setattr__(self, 'field_permissions', MappingProxyType({
                name: AccessLevel.parse(level)
                for name, level in self.field_permissions.items()
            }))

    def __hash__(self) -> int:
        permissions = None if self.field_permissions is None else frozenset(self.field_permissions.items())
        return hash((self.resource, self.action, self.condition, permissions))

    def matches(self, resource: str, action: str) -> bool:
        """Check whether this rule covers the given resource and action."""
        return self.resource == resource and self.action == action

    def field_access(self, field_name: str) -> AccessLevel:
        """Access level granted for a field; missing entries mean none."""
        if self.field_permissions is None:
            return AccessLevel.NONE
        return self.field_permissions.get(field_name, AccessLevel.NONE)


@dataclass(frozen=True)
class AccessEvaluationResult:
    """Result of an access check. ``reason`` is only set on denial."""
    can: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.can

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {'can': self.can}
        if self.reason is not None:
            data['reason'] = self.reason
        return data

    @classmethod
    def allow(cls) -> 'AccessEvaluationResult':
        return cls(can=True)

    @classmethod
    def deny(cls, reason: str) -> 'AccessEvaluationResult':
        return cls(can=False, reason=reason)
