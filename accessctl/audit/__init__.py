"""
Audit module initialization
"""

from .types import AccessLogEntry
from .logger import (
    AuditConfig,
    AuditSink,
    ConsoleAuditSink,
    FileAuditSink,
    MemoryAuditSink,
    RemoteAuditSink,
    create_audit_sink,
)
from .trail import AuditTrail

__all__ = [
    "AccessLogEntry",
    "AuditConfig",
    "AuditSink",
    "ConsoleAuditSink",
    "FileAuditSink",
    "MemoryAuditSink",
    "RemoteAuditSink",
    "create_audit_sink",
    "AuditTrail",
]
