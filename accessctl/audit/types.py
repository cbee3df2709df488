"""
Audit entry types for accessctl.
"""

import json
from dataclasses import dataclass, field as dataclass_field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _snapshot(context: Any) -> Dict[str, Any]:
    if context is None:
        return {}
    if hasattr(context, 'to_dict'):
        return dict(context.to_dict())
    return dict(context)


def _record_id(record: Any) -> Optional[str]:
    if record is None:
        return None
    value = record.get('id') if hasattr(record, 'get') else getattr(record, 'id', None)
    return None if value is None else str(value)


@dataclass(frozen=True)
class AccessLogEntry:
    """One access decision, as delivered to an audit sink."""
    resource: str
    action: str
    can: bool
    context: Mapping[str, Any] = dataclass_field(default_factory=dict)
    timestamp: datetime = dataclass_field(default_factory=_utcnow)
    record_id: Optional[str] = None
    field: Optional[str] = None
    reason: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'context', MappingProxyType(dict(self.context)))

    def __hash__(self) -> int:
        return hash((self.timestamp, self.resource, self.action, self.can, self.record_id, self.field))

    @property
    def level(self) -> str:
        """Severity of the entry: info when allowed, warn when denied."""
        return "info" if self.can else "warn"

    @property
    def message(self) -> str:
        target = f"{self.resource}.{self.field}" if self.field else self.resource
        return f"Auth {'ALLOWED' if self.can else 'DENIED'}: {self.action} {target}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data: Dict[str, Any] = {
            'timestamp': self.timestamp.isoformat(),
            'resource': self.resource,
            'action': self.action,
            'context': dict(self.context),
            'can': self.can,
        }
        if self.record_id is not None:
            data['recordId'] = self.record_id
        if self.field is not None:
            data['field'] = self.field
        if self.reason is not None:
            data['reason'] = self.reason
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'AccessLogEntry':
        """Create from dictionary representation."""
        return cls(
            resource=data['resource'],
            action=data['action'],
            can=data['can'],
            context=data.get('context', {}),
            timestamp=datetime.fromisoformat(data['timestamp']),
            record_id=data.get('recordId'),
            field=data.get('field'),
            reason=data.get('reason')
        )

    @classmethod
    def from_decision(
        cls,
        resource: str,
        action: str,
        context: Any,
        result: Any,
        record: Any = None,
        field: Optional[str] = None,
    ) -> 'AccessLogEntry':
        """Build an entry from a request and the evaluator's result."""
        return cls(
            resource=resource,
            action=action,
            can=result.can,
            context=_snapshot(context),
            record_id=_record_id(record),
            field=field,
            reason=result.reason
        )
