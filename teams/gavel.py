# teams/gavel.py
"""
Client for the project-judging platform ("gavel").

Teams are provisioned there once they ask for a submission token; members
joining or leaving a provisioned team are registered / deregistered as well.
"""
import logging
from typing import Dict, List, Optional

import requests
from django.conf import settings
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger("hackreg.teams")


class GavelError(Exception):
    """Any failed call: transport error, timeout or non-2xx response."""
    pass


class GavelClient:
    """JSON over HTTP with a shared API key, bounded retries and timeouts."""

    def __init__(self, base_url: str, api_key: str, timeout: float = 10.0, retries: int = 3):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = requests.Session()
        retry_strategy = Retry(
            total=retries,
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            # POST creates teams and members, so it is only retried on connect errors
            allowed_methods=["GET", "DELETE"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers.update({"X-API-Key": api_key, "Accept": "application/json"})

    @property
    def configured(self) -> bool:
        return bool(self.base_url)

    def _request(self, method: str, path: str, payload: Optional[Dict] = None) -> Dict:
        if not self.configured:
            raise GavelError("Judging platform is not configured.")

        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error(f"Gavel {method} {path} failed: {e}")
            raise GavelError(f"Request failed: {e}")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            logger.error(f"Gavel {method} {path} returned invalid JSON")
            raise GavelError("Invalid response from judging platform.")

    def create_team(self, members: List[Dict], phone: str = "") -> Dict:
        """
        Register a team with its members.

        ``members`` is a list of {"name", "email"}. Returns
        {"teamId": str, "members": [{"email", "memberId", "token"}, ...]}.
        """
        data = self._request("POST", "api/teams", {"members": members, "phone": phone})
        if not data.get("teamId"):
            raise GavelError("Judging platform did not return a team id.")
        return data

    def add_member(self, team_id: str, name: str, email: str) -> Dict:
        """Returns {"memberId": str, "token": str}."""
        data = self._request("POST", f"api/teams/{team_id}/members", {"name": name, "email": email})
        if not data.get("memberId"):
            raise GavelError("Judging platform did not return a member id.")
        return data

    def remove_member(self, team_id: str, member_id: str) -> None:
        self._request("DELETE", f"api/teams/{team_id}/members/{member_id}")


def get_gavel_client() -> GavelClient:
    return GavelClient(
        base_url=getattr(settings, "GAVEL_URL", ""),
        api_key=getattr(settings, "GAVEL_API_KEY", ""),
        timeout=getattr(settings, "GAVEL_TIMEOUT", 10.0),
        retries=getattr(settings, "GAVEL_RETRIES", 3),
    )
