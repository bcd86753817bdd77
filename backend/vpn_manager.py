"""
Per-client VPN policy management on a Keenetic router
Assigns router IP policies to hotspot hosts through the RCI gateway and
reports which policy a client is currently routed through.
"""
import json
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends

from config_manager import DEFAULT_POLICY_DESCRIPTION, DEFAULT_DEVICE_NAME, UNKNOWN, get_config
from device_manager import host_table, resolve_client
from models import ActionResult, HostRecord, Policy, RouterInfo, VpnInterface, VpnStatus
from rci_gateway import ProtocolError, RouterGateway
from utils import dig, merge_snapshots, numeric_id_key, table_rows

logger = logging.getLogger("uvicorn")

VERSION_QUERY = {"show": {"version": {}}}
INTERFACE_QUERY = {"show": {"interface": {}}}
POLICY_QUERY = {"show": {"sc": {"ip": {"policy": {}}}}}
POLICY_MIRROR_QUERY = {"show": {"sc": {"ip": {"hotspot": {"host": {}}}}}}
HOTSPOT_QUERY = {"show": {"ip": {"hotspot": {}}}}
ARP_QUERY = {"show": {"ip": {"arp": {}}}}

CLIENT_SNAPSHOT_QUERIES = [POLICY_QUERY, POLICY_MIRROR_QUERY, HOTSPOT_QUERY, ARP_QUERY]

TUNNEL_TYPES = ("wireguard", "openvpn", "ipsec", "l2tp", "pptp", "sstp")

REMOVE_POLICY = {"no": True}

CLIENT_NOT_FOUND = "Client not found"


def ui_refresh_event() -> Dict[str, Any]:
    """Tells open router web UI sessions to reload the policy consumers page"""
    data = {"type": "configuration_change", "value": {"url": "/policies/policy-consumers"}}
    return {"webhelp": {"event": {"push": {"data": json.dumps(data)}}}}


def is_default_policy(policy: Policy) -> bool:
    description = (policy.description or "").strip()
    return not description or description.lower() == DEFAULT_POLICY_DESCRIPTION


def policy_catalog(snapshot: Dict[str, Any]) -> List[Policy]:
    """Every policy in the snapshot, default policy included"""
    rows = table_rows(dig(snapshot, "show", "sc", "ip", "policy"), "id")
    catalog = []
    for row in rows:
        if not row.get("id"):
            continue
        description = row.get("description")
        permit = row.get("permit")
        catalog.append(Policy(
            id=str(row["id"]),
            description=description if isinstance(description, str) else None,
            permit=permit if isinstance(permit, list) else [],
        ))
    return catalog


def find_policy(catalog: List[Policy], reference: Optional[str]) -> Optional[Policy]:
    """Look a policy up by id, then by description (case-insensitive)"""
    if not reference:
        return None
    for policy in catalog:
        if policy.id == reference:
            return policy
    wanted = reference.strip().lower()
    return next((p for p in catalog if (p.description or "").lower() == wanted), None)


def find_default_policy(catalog: List[Policy]) -> Optional[Policy]:
    return next(
        (p for p in catalog if (p.description or "").strip().lower() == DEFAULT_POLICY_DESCRIPTION),
        None,
    )


def _text(value: Any, default: str) -> str:
    return value if isinstance(value, str) and value else default


class PolicyController:
    """Reads and changes the routing policy of one client at a time"""

    def __init__(self, gateway: RouterGateway, vpn_policy: str):
        self.gateway = gateway
        self.vpn_policy = vpn_policy

    def query(self, commands: Any) -> Dict[str, Any]:
        """Run RCI queries and deep-merge their results into one snapshot"""
        response = self.gateway.execute(commands)
        if response.status_code != 200:
            raise ProtocolError(f"Router returned {response.status_code} for RCI query")
        try:
            return merge_snapshots(response.json())
        except ValueError as e:
            raise ProtocolError(f"Router returned malformed JSON: {e}") from e

    def load_snapshot(self) -> Dict[str, Any]:
        return self.query(CLIENT_SNAPSHOT_QUERIES)

    def describe_router(self) -> RouterInfo:
        """Router name, firmware and model; missing fields read as defaults"""
        try:
            version = dig(self.query(VERSION_QUERY), "show", "version", default={})
        except ProtocolError as e:
            logger.warning(f"Could not read router version: {e}")
            version = {}
        if not isinstance(version, dict):
            version = {}

        device_name = _text(version.get("description"), "") or _text(version.get("device"), DEFAULT_DEVICE_NAME)
        return RouterInfo(
            device_name=device_name,
            firmware=_text(version.get("title"), UNKNOWN),
            model=_text(version.get("model"), UNKNOWN),
        )

    def list_available_policies(self) -> List[Policy]:
        """Selectable policies sorted by the number in their id; [] on any failure"""
        try:
            catalog = policy_catalog(self.query([POLICY_QUERY]))
        except Exception as e:
            logger.warning(f"Could not list policies: {e}")
            return []
        policies = [p for p in catalog if not is_default_policy(p)]
        return sorted(policies, key=lambda p: numeric_id_key(p.id))

    def list_vpn_interfaces(self) -> List[VpnInterface]:
        """Tunnel interfaces and their link state; [] on any failure"""
        try:
            rows = table_rows(dig(self.query(INTERFACE_QUERY), "show", "interface"), "id")
        except Exception as e:
            logger.warning(f"Could not list interfaces: {e}")
            return []

        interfaces = []
        for row in rows:
            name = str(row.get("id") or row.get("interface-name") or "")
            kind = str(row.get("type") or "")
            if not name or not any(t in (kind or name).lower() for t in TUNNEL_TYPES):
                continue
            interfaces.append(VpnInterface(
                name=name,
                description=row.get("description") or row.get("alias") or None,
                type=kind or None,
                up=row.get("up") is True or row.get("state") == "up",
                connected=row.get("connected") in ("yes", True) or row.get("link") == "up",
            ))
        return sorted(interfaces, key=lambda i: i.name)

    def list_clients(self) -> List[HostRecord]:
        return host_table(self.load_snapshot())

    def resolve_client(self, identifier: str) -> Optional[HostRecord]:
        return resolve_client(self.load_snapshot(), identifier)

    def get_status(self, identifier: str) -> VpnStatus:
        """Current and target policy of a client"""
        snapshot = self.load_snapshot()
        catalog = policy_catalog(snapshot)
        target = find_policy(catalog, self.vpn_policy)
        status = VpnStatus(
            target_policy_id=target.id if target else None,
            target_policy=target.description if target else self.vpn_policy,
        )

        host = resolve_client(snapshot, identifier)
        if not host:
            status.name = identifier
            status.error = CLIENT_NOT_FOUND
            return status

        current = find_policy(catalog, host.policy) if host.policy else None
        status.name = host.display_name
        status.mac = host.mac
        status.ip = host.ip
        status.current_policy_id = host.policy
        status.current_policy = current.description if current else None
        status.connected = target is not None and host.policy == target.id
        return status

    def enable(self, identifier: str, policy: Optional[str] = None) -> ActionResult:
        """Route a client through the given policy, or the configured one"""
        snapshot = self.load_snapshot()
        host = resolve_client(snapshot, identifier)
        if not host:
            return ActionResult(success=False, error=CLIENT_NOT_FOUND)

        reference = policy or self.vpn_policy
        selected = find_policy(policy_catalog(snapshot), reference)
        if not selected:
            return ActionResult(success=False, error=f"Policy '{reference}' not found")

        return self._set_client_policy(host, selected.id, enabling=True)

    def disable(self, identifier: str) -> ActionResult:
        """Return a client to the default policy"""
        snapshot = self.load_snapshot()
        host = resolve_client(snapshot, identifier)
        if not host:
            return ActionResult(success=False, error=CLIENT_NOT_FOUND)

        default = find_default_policy(policy_catalog(snapshot))
        return self._set_client_policy(host, default.id if default else REMOVE_POLICY, enabling=False)

    def toggle(self, identifier: str) -> ActionResult:
        """
        Disable when the client is on the target policy, enable otherwise

        Reads status and then writes; two concurrent toggles of the same
        client can both see the same state.
        """
        status = self.get_status(identifier)
        if status.error:
            return ActionResult(success=False, error=status.error)
        if status.connected:
            return self.disable(identifier)
        return self.enable(identifier)

    def _set_client_policy(self, host: HostRecord, policy: Any, enabling: bool) -> ActionResult:
        body = [
            ui_refresh_event(),
            {"ip": {"hotspot": {"host": {"mac": host.mac, "permit": True, "policy": policy}}}},
            {"system": {"configuration": {"save": {}}}},
        ]

        logger.info(f"Setting policy {policy} for {host.mac} ({host.display_name})")
        response = self.gateway.execute(body)

        if response.status_code != 200:
            logger.error(f"Router refused policy change for {host.mac}: {response.status_code}")
            return ActionResult(
                success=False,
                error=f"Router returned {response.status_code}",
            )

        return ActionResult(
            success=True,
            message="VPN enabled" if enabling else "VPN disabled",
            policy_id=policy if enabling else None,
        )


@lru_cache(maxsize=1)
def get_gateway() -> RouterGateway:
    """One gateway (and cookie session) per process"""
    return RouterGateway.from_settings(get_config())


def get_controller(
    policy: Optional[str] = None,
    gateway: RouterGateway = Depends(get_gateway),
) -> PolicyController:
    """Controller targeting the requested policy, or the configured one"""
    return PolicyController(gateway, policy or get_config().vpn_policy)
