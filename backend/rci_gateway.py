"""
Authenticated gateway to the Keenetic RCI HTTP API

Keeps one cookie session per router and re-runs the challenge-response
login whenever the router reports the session as gone.
"""
import logging
import socket
import threading
from typing import Any, Optional

import requests

from config_manager import AUTH_PATH, RCI_PATH, REALM_HEADER, CHALLENGE_HEADER
from models import Settings
from utils import challenge_response

logger = logging.getLogger("uvicorn")

DEFAULT_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "application/json",
    "Connection": "keep-alive",
    "User-Agent": "VpnManager/1.0",
}


class RouterError(Exception):
    """Base class for failures talking to the router"""


class ConnectivityError(RouterError):
    """Router unreachable, too slow or not resolvable"""


class AuthenticationError(RouterError):
    """Malformed challenge or rejected credentials"""


class ProtocolError(RouterError):
    """Router answered with a status code outside the known set"""


class RouterGateway:
    """
    Runs RCI commands against one router

    The cookie session is shared by every caller of this instance, so the
    probe, the optional login and the command itself run under one lock.

    connect_timeout bounds connection setup and timeout bounds each socket
    read, as requests applies them; a slow router that keeps trickling
    bytes is not cut off at a total deadline.
    """

    def __init__(
        self,
        host: str,
        login: str,
        password: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        connect_timeout: float = 10,
    ):
        self.host = host
        self.login = login
        self._password = password
        self._session = session if session is not None else requests.Session()
        self._timeout = (connect_timeout, timeout)
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouterGateway":
        return cls(
            host=settings.host,
            login=settings.login,
            password=settings.password,
            timeout=settings.timeout,
            connect_timeout=settings.connect_timeout,
        )

    def execute(self, command: Any):
        """
        Run a single RCI command object or an ordered list of them

        Returns:
            The router's HTTP response, uninterpreted
        """
        with self._lock:
            fresh_login = self._ensure_logged_in()
            response = self._request(RCI_PATH, command)
            if response.status_code != 401:
                return response

            if fresh_login:
                raise AuthenticationError("Router rejected the session right after login")

            logger.info(f"RCI session on {self.host} expired, logging in again")
            self._authenticate()
            response = self._request(RCI_PATH, command)
            if response.status_code == 401:
                raise AuthenticationError("Router rejected the session right after login")
            return response

    def _ensure_logged_in(self) -> bool:
        """Probe the stored session; log in when needed. Returns True if a login happened."""
        probe = self._request(AUTH_PATH)

        if probe.status_code == 200:
            return False
        if probe.status_code == 401:
            self._authenticate()
            return True

        raise ProtocolError(f"Unexpected response from /{AUTH_PATH}: {probe.status_code}")

    def _authenticate(self):
        challenge_probe = self._request(AUTH_PATH)
        realm = challenge_probe.headers.get(REALM_HEADER)
        challenge = challenge_probe.headers.get(CHALLENGE_HEADER)

        if not realm or not challenge:
            raise AuthenticationError("Missing authentication headers in response")

        logger.info(f"Authenticating to router {self.host} as {self.login}")
        login_response = self._request(AUTH_PATH, {
            "login": self.login,
            "password": challenge_response(self.login, self._password, realm, challenge),
        })

        if login_response.status_code != 200:
            raise AuthenticationError(
                f"Authentication failed with code: {login_response.status_code}"
            )

    def _request(self, path: str, body: Any = None):
        url = self._build_url(path)
        method = "GET" if body is None else "POST"

        try:
            return self._session.request(
                method,
                url,
                json=body,
                headers=DEFAULT_HEADERS,
                timeout=self._timeout,
            )
        except requests.exceptions.Timeout as e:
            raise ConnectivityError(
                "Connection to router timed out. Router may be unreachable or slow."
            ) from e
        except requests.exceptions.ConnectionError as e:
            if _is_name_resolution_failure(e):
                raise ConnectivityError(
                    "Cannot resolve router hostname. Check DNS or host configuration."
                ) from e
            raise ConnectivityError(
                f"Cannot connect to router at {url}. Check if router is reachable."
            ) from e
        except requests.exceptions.RequestException as e:
            raise ConnectivityError(f"Network error connecting to router: {e}") from e

    def _build_url(self, path: str) -> str:
        return f"http://{self.host}/{path}"


def _is_name_resolution_failure(error: BaseException) -> bool:
    """Look for a socket.gaierror among the causes, wrapped errors and urllib3 reasons"""
    seen = set()
    pending = [error]
    while pending:
        exc = pending.pop()
        if id(exc) in seen:
            continue
        seen.add(id(exc))
        if isinstance(exc, socket.gaierror):
            return True
        linked = [exc.__cause__, exc.__context__, getattr(exc, "reason", None), *exc.args]
        pending.extend(e for e in linked if isinstance(e, BaseException))
    return False
