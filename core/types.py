"""
Type definitions for the OpenVPN admin panel.
Records are rebuilt from the external tool on every query; nothing is persisted.
"""

from typing import Dict, List, Optional, Union, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from config.constants import NOT_AVAILABLE, UNKNOWN

Username = str
FilePath = str
IPAddress = str


class UserStatus(Enum):
    """Certificate state reported by the client-management tool."""
    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass
class UserRecord:
    """One user as listed by the client-management tool."""
    username: Username
    status: UserStatus = UserStatus.ACTIVE
    created_at: str = NOT_AVAILABLE
    expires_at: str = NOT_AVAILABLE
    raw_line: str = ""

    @property
    def is_active(self) -> bool:
        return self.status is UserStatus.ACTIVE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "username": self.username,
            "status": self.status.value,
            "created": self.created_at,
            "expiry": self.expires_at,
            "raw": self.raw_line
        }


@dataclass
class ConnectedClientRecord:
    """A client currently connected to the VPN server."""
    username: Username
    real_address: IPAddress = NOT_AVAILABLE
    virtual_address: IPAddress = NOT_AVAILABLE
    bytes_in: int = 0
    bytes_out: int = 0
    connected_since: Union[datetime, str] = NOT_AVAILABLE
    raw_line: str = ""

    def to_dict(self) -> Dict[str, Any]:
        since = self.connected_since
        return {
            "username": self.username,
            "realAddress": self.real_address,
            "virtualAddress": self.virtual_address,
            "bytesIn": self.bytes_in,
            "bytesOut": self.bytes_out,
            "connectedSince": since.isoformat() if isinstance(since, datetime) else since,
            "raw": self.raw_line
        }


@dataclass
class ClientSnapshot:
    """Connected clients plus where they were read from.

    ``source`` is a status-log path, "cli", or None when no source answered;
    an empty list alone does not say which.
    """
    clients: List[ConnectedClientRecord] = field(default_factory=list)
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "clients": [client.to_dict() for client in self.clients],
            "count": len(self.clients),
            "source": self.source
        }


@dataclass
class ServiceStatus:
    """Point-in-time VPN service state."""
    active: bool
    service_alias: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": "active" if self.active else "inactive",
            "active": self.active,
            "serviceName": self.service_alias
        }


@dataclass
class ServerInfo:
    """Host diagnostics; each field falls back to "Unknown" independently."""
    public_ip: str = UNKNOWN
    local_ip: str = UNKNOWN
    hostname: str = UNKNOWN
    uptime: str = UNKNOWN
    os: str = UNKNOWN

    def to_dict(self) -> Dict[str, str]:
        return {
            "publicIp": self.public_ip,
            "localIp": self.local_ip,
            "hostname": self.hostname,
            "uptime": self.uptime,
            "os": self.os
        }
