import json
import logging
import requests
from pathlib import Path
from typing import Any, Dict, Optional

from radar_panel import settings

log = logging.getLogger(__name__)


class PanelClientError(Exception):
    """A request to the running panel failed."""


class PanelClient:
    """
    Thin HTTP client for a running control panel.
    Used by the console so commands go through the same locks as web requests.
    """

    def __init__(self, base_url: str = settings.PANEL_URL, timeout: float = 10) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            response = requests.request(method, url, timeout=kwargs.pop("timeout", self.timeout), **kwargs)
        except requests.exceptions.RequestException as e:
            log.debug(f"Request {method} {url} failed: {e}")
            raise PanelClientError(f"Could not reach the control panel at {self.base_url}: {e}") from e

        if response.status_code >= 400:
            # Try to parse the error message from the panel
            try:
                detail = response.json().get("detail", response.text)
            except (ValueError, AttributeError):
                detail = response.text
            raise PanelClientError(f"{response.status_code}: {detail}")
        return response

    def _json(self, method: str, path: str, **kwargs: Any) -> Dict[str, Any]:
        response = self._request(method, path, **kwargs)
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise PanelClientError(f"Malformed response from the control panel: {e}") from e

    def action(self, action: str) -> Dict[str, Any]:
        """Runs 'start', 'stop' or 'status' on the workload."""
        return self._json("POST", f"/radar/{action}")

    def read_log(self, lang: Optional[str] = None) -> str:
        params = {"lang": lang} if lang else None
        return self._request("GET", "/radar/log", params=params).text

    def artifact_info(self) -> Dict[str, Any]:
        return self._json("GET", "/radar/artifact")

    def upload(self, path: Path) -> Dict[str, Any]:
        with Path(path).open("rb") as f:
            return self._json("POST", "/radar/artifact", files={"file": (Path(path).name, f)}, timeout=300)

    def delete(self) -> Dict[str, Any]:
        return self._json("DELETE", "/radar/artifact")

    def restart(self) -> Dict[str, Any]:
        return self._json("POST", "/panel/restart")

    def get_config(self) -> Dict[str, Any]:
        return self._json("GET", "/config")

    def save_config(self, credential: str, port: str) -> Dict[str, Any]:
        return self._json("POST", "/config", json={"credential": credential, "port": port})
