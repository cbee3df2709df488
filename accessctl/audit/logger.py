"""
Audit sinks for access decisions.

Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

Every sink accepts the same ``AccessLogEntry`` and differs only in where it
goes. ``write`` never raises: delivery failures are logged and dropped.
"""

import asyncio
import json
import logging
import os
import weakref
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Optional

import aiofiles
import aiohttp

from ..types.errors import ConfigurationError
from ..util.config import get_config_value, get_float_config
from .types import AccessLogEntry


logger = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "accessctl.audit"
DEFAULT_FILE_PATH = "./logs/access.log"
DEFAULT_ENDPOINT = "https://in.logs.betterstack.com"
DEFAULT_SERVICE = "auth-service"

TARGETS = ("console", "file", "remote", "memory")


@dataclass
class AuditConfig:
    """Audit sink selection and delivery settings"""
    target: str = "console"
    file_path: str = DEFAULT_FILE_PATH
    endpoint: str = DEFAULT_ENDPOINT
    source_token: Optional[str] = None
    timeout: float = 5.0
    service: str = DEFAULT_SERVICE
    max_entries: int = 1000

    @classmethod
    def from_env(cls) -> "AuditConfig":
        """Create configuration from environment variables"""
        return cls(
            target=get_config_value("audit_target", "console").lower(),
            file_path=get_config_value("audit_file_path", DEFAULT_FILE_PATH),
            endpoint=get_config_value("audit_endpoint", DEFAULT_ENDPOINT),
            source_token=get_config_value("audit_source_token"),
            timeout=get_float_config("audit_timeout", 5.0),
            service=get_config_value("audit_service", DEFAULT_SERVICE),
        )

    def validate(self) -> bool:
        """Validate the configuration"""
        if self.target not in TARGETS:
            raise ConfigurationError(
                f"Unknown audit target: {self.target}",
                config_key="audit_target",
                config_value=self.target
            )
        if self.target == "file" and not self.file_path:
            raise ConfigurationError("file_path is required for the file target", config_key="audit_file_path")
        if self.timeout <= 0:
            raise ConfigurationError("timeout must be positive", config_key="audit_timeout", config_value=self.timeout)
        return True


class AuditSink(ABC):
    """Abstract destination for access log entries"""

    @abstractmethod
    async def write(self, entry: AccessLogEntry) -> None:
        """Deliver an entry. Must not raise."""
        pass

    async def close(self) -> None:
        """Close the sink and release resources"""
        pass


class ConsoleAuditSink(AuditSink):
    """Emits entries on the local logging channel"""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME):
        self.logger = logging.getLogger(logger_name)

    async def write(self, entry: AccessLogEntry) -> None:
        level = logging.INFO if entry.can else logging.WARNING
        self.logger.log(level, f"[AUTH-LOG] {entry.message} {entry.to_json()}")


class MemoryAuditSink(AuditSink):
    """In-memory sink for development and testing"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max_entries
        self.entries: deque = deque(maxlen=max_entries)

    async def write(self, entry: AccessLogEntry) -> None:
        self.entries.append(entry)

    def get_entries(self, resource: Optional[str] = None, can: Optional[bool] = None) -> List[AccessLogEntry]:
        """Stored entries, optionally filtered by resource and outcome"""
        return [
            entry for entry in self.entries
            if (resource is None or entry.resource == resource)
            and (can is None or entry.can == can)
        ]


class FileAuditSink(AuditSink):
    """Appends newline-delimited JSON entries to a local file"""

    def __init__(self, file_path: str = DEFAULT_FILE_PATH):
        self.file_path = file_path
        # asyncio locks bind to one loop; the sink may be driven from several
        self._locks: weakref.WeakKeyDictionary = weakref.WeakKeyDictionary()

    def _get_lock(self) -> asyncio.Lock:
        loop = asyncio.get_running_loop()
        lock = self._locks.get(loop)
        if lock is None:
            lock = self._locks[loop] = asyncio.Lock()
        return lock

    async def write(self, entry: AccessLogEntry) -> None:
        line = entry.to_json() + "\n"
        async with self._get_lock():
            try:
                directory = os.path.dirname(self.file_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                async with aiofiles.open(self.file_path, "a", encoding="utf-8") as f:
                    await f.write(line)
            except OSError as e:
                logger.error(f"[AUTH-LOG] Failed to write audit log to {self.file_path}: {e}")


class RemoteAuditSink(AuditSink):
    """
    Posts entries to an HTTP log ingestion endpoint.

    Delivery is at-most-once: non-2xx responses and transport errors are
    logged and the entry is dropped.
    """

    def __init__(self,
                 source_token: str,
                 endpoint: str = DEFAULT_ENDPOINT,
                 timeout: float = 5.0,
                 service: str = DEFAULT_SERVICE,
                 session: Optional[aiohttp.ClientSession] = None):
        """
        Initialize remote sink.

        Args:
            source_token: Bearer token for the ingestion endpoint
            endpoint: Ingestion URL
            timeout: Total request timeout in seconds
            service: Service name attached to every entry
            session: Optional shared client session; created lazily otherwise
        """
        self.source_token = source_token
        self.endpoint = endpoint
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.service = service
        self._session = session
        self._owns_session = session is None

    def payload(self, entry: AccessLogEntry) -> Dict[str, object]:
        """Request body for an entry"""
        return {
            **entry.to_dict(),
            'level': entry.level,
            'message': entry.message,
            'service': self.service,
        }

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def write(self, entry: AccessLogEntry) -> None:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.source_token}",
        }
        try:
            session = self._get_session()
            async with session.post(self.endpoint, data=json.dumps(self.payload(entry), default=str),
                                    headers=headers, timeout=self.timeout) as response:
                if response.status >= 300:
                    body = await response.text()
                    logger.error(
                        f"[AUTH-LOG] Failed to send log to {self.endpoint}: "
                        f"{response.status} {body}"
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"[AUTH-LOG] Error sending log to {self.endpoint}: {e!r}")

    async def close(self) -> None:
        if self._session is not None and self._owns_session and not self._session.closed:
            await self._session.close()


def create_audit_sink(config: Optional[AuditConfig] = None) -> AuditSink:
    """
    Factory function to create the audit sink for a configuration.

    Args:
        config: Audit configuration; read from the environment when omitted

    Returns:
        AuditSink instance
    """
    config = config or AuditConfig.from_env()
    config.validate()

    if config.target == "file":
        return FileAuditSink(config.file_path)
    if config.target == "memory":
        return MemoryAuditSink(config.max_entries)
    if config.target == "remote":
        if not config.source_token:
            logger.warning("[AUTH-LOG] No source token configured for remote target, falling back to console logger")
            return ConsoleAuditSink()
        return RemoteAuditSink(
            source_token=config.source_token,
            endpoint=config.endpoint,
            timeout=config.timeout,
            service=config.service,
        )
    return ConsoleAuditSink()
