"""
Data models for the Keenetic VPN switch
"""
from pydantic import BaseModel
from typing import Any, List, Optional


class Settings(BaseModel):
    host: str = "192.168.1.1"
    login: str = "admin"
    password: str = ""
    vpn_policy: str = "VPN"
    timeout: float = 30
    connect_timeout: float = 10
    bind_host: str = "0.0.0.0"
    port: int = 4567


class HostRecord(BaseModel):
    mac: str
    ip: Optional[str] = None
    name: Optional[str] = None
    hostname: Optional[str] = None
    policy: Optional[str] = None

    @property
    def display_name(self) -> Optional[str]:
        """Explicit name, then hostname, then IP"""
        return self.name or self.hostname or self.ip


class Policy(BaseModel):
    id: str
    description: Optional[str] = None
    permit: List[Any] = []


class RouterInfo(BaseModel):
    device_name: str
    firmware: str
    model: str


class VpnInterface(BaseModel):
    name: str
    description: Optional[str] = None
    type: Optional[str] = None
    up: bool = False
    connected: bool = False


class VpnStatus(BaseModel):
    connected: bool = False
    name: Optional[str] = None
    mac: Optional[str] = None
    ip: Optional[str] = None
    current_policy_id: Optional[str] = None
    current_policy: Optional[str] = None
    target_policy_id: Optional[str] = None
    target_policy: Optional[str] = None
    error: Optional[str] = None


class ActionResult(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    policy_id: Optional[str] = None


class VpnRequest(BaseModel):
    enabled: bool
    policy: Optional[str] = None
    client: Optional[str] = None


class InterfaceRequest(BaseModel):
    policy: Optional[str] = None
    interface: Optional[str] = None
    client: Optional[str] = None
