import copy

import pytest


class FakeResponse:
    def __init__(self, status_code=200, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Scripted stand-in for requests.Session: pops one response per request."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs.get("json")))
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


POLICIES = {
    "Policy0": {"description": "Default policy", "permit": [{"interface": "ISP", "enabled": True}]},
    "Policy1": {"description": "VPN", "permit": [{"interface": "Wireguard0", "enabled": True}]},
    "Policy2": {"description": "Streaming", "permit": []},
}

HOSTS = [
    {"mac": "aa:bb:cc:00:00:01", "ip": "192.168.1.10", "name": "laptop", "hostname": "laptop-home"},
    {"mac": "AA:BB:CC:00:00:02", "ip": "192.168.1.20", "name": "", "hostname": "phone"},
]

ARP = [
    {"ip": "192.168.1.99", "mac": "aa:bb:cc:00:00:02", "interface": "Bridge0"},
]

VERSION = {"description": "Home Keenetic", "device": "Viva", "title": "4.1.7", "model": "KN-1912"}

INTERFACES = {
    "Wireguard0": {"type": "Wireguard", "description": "Office VPN", "state": "up", "link": "up", "connected": "yes"},
    "OpenVPN0": {"type": "OpenVPN", "description": "Backup", "state": "down", "link": "down", "connected": "no"},
    "GigabitEthernet1": {"type": "GigabitEthernet", "state": "up", "link": "up"},
}


class FakeRouter:
    """
    In-memory gateway: answers RCI show queries and applies host policy
    changes, so controller logic can be exercised end to end.
    """

    def __init__(self, policies=None, hosts=None, arp=None, assignments=None):
        self.policies = copy.deepcopy(POLICIES if policies is None else policies)
        self.hosts = copy.deepcopy(HOSTS if hosts is None else hosts)
        self.arp = copy.deepcopy(ARP if arp is None else arp)
        self.assignments = dict(assignments or {})
        self.version = dict(VERSION)
        self.interfaces = copy.deepcopy(INTERFACES)
        self.commands = []
        self.mutation_status = 200

    def execute(self, command):
        self.commands.append(command)
        items = command if isinstance(command, list) else [command]
        results = [self._answer(item) for item in items]
        status = 200
        if any("ip" in item for item in items):
            status = self.mutation_status
        return FakeResponse(status, results if isinstance(command, list) else results[0])

    def _answer(self, item):
        if "show" in item:
            show = item["show"]
            if "version" in show:
                return {"show": {"version": self.version}}
            if "interface" in show:
                return {"show": {"interface": self.interfaces}}
            if "sc" in show:
                sc_ip = show["sc"]["ip"]
                if "policy" in sc_ip:
                    return {"show": {"sc": {"ip": {"policy": self.policies}}}}
                rows = [{"mac": mac, "policy": p} for mac, p in self.assignments.items()]
                return {"show": {"sc": {"ip": {"hotspot": {"host": rows}}}}}
            if "hotspot" in show["ip"]:
                return {"show": {"ip": {"hotspot": {"host": self.hosts}}}}
            if "arp" in show["ip"]:
                return {"show": {"ip": {"arp": self.arp}}}
        if "ip" in item and self.mutation_status == 200:
            host = item["ip"]["hotspot"]["host"]
            policy = host["policy"]
            self.assignments[host["mac"].lower()] = None if isinstance(policy, dict) else policy
        return {}

    @property
    def mutations(self):
        return [c for c in self.commands if isinstance(c, list) and any("ip" in i for i in c)]


@pytest.fixture
def fake_router():
    return FakeRouter()
