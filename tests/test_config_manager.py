import config_manager
import vpn_manager


def test_load_config_defaults(monkeypatch):
    for name in ("KEENETIC_HOST", "KEENETIC_LOGIN", "KEENETIC_PASSWORD", "VPN_POLICY", "PORT"):
        monkeypatch.delenv(name, raising=False)

    config = config_manager.load_config()

    assert config.host == "192.168.1.1"
    assert config.login == "admin"
    assert config.password == ""
    assert config.vpn_policy == "VPN"
    assert config.port == 4567


def test_load_config_from_environment(monkeypatch):
    monkeypatch.setenv("KEENETIC_HOST", "10.0.0.1")
    monkeypatch.setenv("KEENETIC_PASSWORD", "secret")
    monkeypatch.setenv("VPN_POLICY", "Streaming")
    monkeypatch.setenv("KEENETIC_TIMEOUT", "5")

    config = config_manager.load_config()

    assert config.host == "10.0.0.1"
    assert config.password == "secret"
    assert config.vpn_policy == "Streaming"
    assert config.timeout == 5.0


def test_gateway_is_built_from_settings(monkeypatch):
    monkeypatch.setenv("KEENETIC_HOST", "10.0.0.1")
    monkeypatch.setenv("KEENETIC_LOGIN", "operator")
    config_manager.get_config.cache_clear()
    vpn_manager.get_gateway.cache_clear()
    try:
        gateway = vpn_manager.get_gateway()
        assert gateway.host == "10.0.0.1"
        assert gateway.login == "operator"
        assert vpn_manager.get_gateway() is gateway
    finally:
        config_manager.get_config.cache_clear()
        vpn_manager.get_gateway.cache_clear()
