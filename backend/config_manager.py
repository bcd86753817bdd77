"""
Configuration management for the Keenetic VPN switch
"""
import os
from functools import lru_cache

from models import Settings

# Router RCI endpoints (relative to http://<host>/)
AUTH_PATH = "auth"
RCI_PATH = "rci/"

REALM_HEADER = "X-NDM-Realm"
CHALLENGE_HEADER = "X-NDM-Challenge"

DEFAULT_POLICY_DESCRIPTION = "default policy"
DEFAULT_DEVICE_NAME = "Keenetic Router"
UNKNOWN = "Unknown"


def load_config() -> Settings:
    """Load service configuration from environment variables"""
    env = os.environ
    return Settings(
        host=env.get("KEENETIC_HOST", "192.168.1.1"),
        login=env.get("KEENETIC_LOGIN", "admin"),
        password=env.get("KEENETIC_PASSWORD", ""),
        vpn_policy=env.get("VPN_POLICY", "VPN"),
        timeout=float(env.get("KEENETIC_TIMEOUT", 30)),
        connect_timeout=float(env.get("KEENETIC_CONNECT_TIMEOUT", 10)),
        bind_host=env.get("HOST", "0.0.0.0"),
        port=int(env.get("PORT", 4567)),
    )


@lru_cache(maxsize=1)
def get_config() -> Settings:
    """Process-wide configuration, read once"""
    return load_config()
