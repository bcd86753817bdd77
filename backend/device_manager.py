"""
Client device resolution against a merged router snapshot

A device is looked up by trying an ordered list of strategies; the first
one that returns a host wins. IP identifiers use the hotspot host table
and then the ARP table, hostnames use exact and then substring matching.
"""
import ipaddress
import logging
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from models import HostRecord
from utils import dig, normalize_mac, table_rows

logger = logging.getLogger("uvicorn")


class ClientTables(NamedTuple):
    hosts: List[HostRecord]
    arp: List[Dict[str, Any]]


Strategy = Callable[[ClientTables, str], Optional[HostRecord]]


def policy_value(value: Any) -> Optional[str]:
    """Router policy field to a policy id, None for "none"/empty/non-string"""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() == "none":
        return None
    return value


def policy_assignments(snapshot: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Per-client policy mirror (show.sc.ip.hotspot.host) keyed by lowercase MAC"""
    rows = table_rows(dig(snapshot, "show", "sc", "ip", "hotspot", "host"), "mac")
    return {
        normalize_mac(row.get("mac")): policy_value(row.get("policy"))
        for row in rows
        if row.get("mac")
    }


def host_table(snapshot: Dict[str, Any]) -> List[HostRecord]:
    """Hotspot hosts with their current policy assignment"""
    assignments = policy_assignments(snapshot)
    hosts = []
    for row in table_rows(dig(snapshot, "show", "ip", "hotspot", "host"), "mac"):
        mac = row.get("mac")
        if not mac:
            continue
        key = normalize_mac(mac)
        policy = assignments[key] if key in assignments else policy_value(row.get("policy"))
        hosts.append(HostRecord(
            mac=mac,
            ip=row.get("ip") or None,
            name=row.get("name") or None,
            hostname=row.get("hostname") or None,
            policy=policy,
        ))
    return hosts


def arp_table(snapshot: Dict[str, Any]) -> List[Dict[str, Any]]:
    return table_rows(dig(snapshot, "show", "ip", "arp"), "ip")


def client_tables(snapshot: Dict[str, Any]) -> ClientTables:
    return ClientTables(hosts=host_table(snapshot), arp=arp_table(snapshot))


def match_by_ip(tables: ClientTables, identifier: str) -> Optional[HostRecord]:
    return next((h for h in tables.hosts if h.ip == identifier), None)


def match_by_arp(tables: ClientTables, identifier: str) -> Optional[HostRecord]:
    """IP -> MAC through the ARP table, then MAC -> host"""
    entry = next((row for row in tables.arp if row.get("ip") == identifier and row.get("mac")), None)
    if not entry:
        return None
    mac = normalize_mac(entry["mac"])
    return next((h for h in tables.hosts if normalize_mac(h.mac) == mac), None)


def match_by_exact_name(tables: ClientTables, identifier: str) -> Optional[HostRecord]:
    wanted = identifier.lower()
    for host in tables.hosts:
        if any(n and n.lower() == wanted for n in (host.name, host.hostname)):
            return host
    return None


def match_by_name_substring(tables: ClientTables, identifier: str) -> Optional[HostRecord]:
    wanted = identifier.lower()
    for host in tables.hosts:
        if any(n and wanted in n.lower() for n in (host.name, host.hostname)):
            return host
    return None


# Tried in order; host table before ARP, exact names before substrings
IP_STRATEGIES: Tuple[Strategy, ...] = (match_by_ip, match_by_arp)
HOSTNAME_STRATEGIES: Tuple[Strategy, ...] = (match_by_exact_name, match_by_name_substring)


def is_ip_address(identifier: str) -> bool:
    try:
        ipaddress.ip_address(identifier)
    except ValueError:
        return False
    return True


def strategies_for(identifier: str) -> Tuple[Strategy, ...]:
    return IP_STRATEGIES if is_ip_address(identifier) else HOSTNAME_STRATEGIES


def resolve_client(snapshot: Dict[str, Any], identifier: Optional[str]) -> Optional[HostRecord]:
    """
    Find the host record for an IP address or hostname

    Returns:
        The matching HostRecord, or None when no strategy finds one
    """
    identifier = (identifier or "").strip()
    if not identifier:
        return None

    tables = client_tables(snapshot)
    for strategy in strategies_for(identifier):
        host = strategy(tables, identifier)
        if host:
            logger.debug(f"Resolved {identifier} to {host.mac} via {strategy.__name__}")
            return host

    logger.info(f"No client found for {identifier}")
    return None
