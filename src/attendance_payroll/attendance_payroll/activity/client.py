from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..core.enums import AttendanceAction
from .model import HeartbeatPayload

log = logging.getLogger(__name__)

ATTENDANCE_PATH = "/api/attendance"
HEARTBEAT_PATH = "/api/attendance/activity"


def build_http_session(*, retries: int = 3, backoff_factor: float = 1.0) -> requests.Session:
    # Reuse one pooled connection; retry only on gateway errors.
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=[502, 503, 504],
        allowed_methods=["POST"],
    )
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=1, pool_maxsize=2, max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


class AttendanceApiClient:
    """HTTP client used by a punched-in workstation.

    Heartbeat delivery never raises: failures are logged and reported as False
    so they never reach the user.
    """

    def __init__(
        self,
        base_url: str,
        *,
        http: Optional[requests.Session] = None,
        timeout: float = 15.0,
        cookies: Optional[dict] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._http = http or build_http_session()
        self._timeout = timeout
        if cookies:
            self._http.cookies.update(cookies)

    def send_heartbeat(self, payload: HeartbeatPayload) -> bool:
        try:
            resp = self._http.post(self._base_url + HEARTBEAT_PATH, json=payload.to_json(), timeout=self._timeout)
        except requests.RequestException as e:
            log.warning("Heartbeat network error: %s", e)
            return False

        if resp.ok:
            log.debug("Heartbeat OK | active=%s | pattern=%s", payload.active, payload.pattern_type)
            return True
        log.warning("Heartbeat failed: HTTP %d - %s", resp.status_code, resp.text[:200])
        return False

    def post_action(self, action: AttendanceAction, employee_id: int) -> Optional[Dict[str, Any]]:
        """Run a punch/break action. Returns the updated record, or None on failure."""
        try:
            resp = self._http.post(
                self._base_url + ATTENDANCE_PATH,
                json={"action": action.value, "employee_id": int(employee_id)},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            log.warning("Attendance %s network error: %s", action.value, e)
            return None

        if resp.status_code != 200:
            log.warning("Attendance %s rejected: HTTP %d - %s", action.value, resp.status_code, resp.text[:200])
            return None
        return resp.json().get("attendance")

    def close(self) -> None:
        self._http.close()
