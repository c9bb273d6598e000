"""
GitHubClient — read-only access to a user's public repositories.

Backs ``GET /api/profile/github/{username}``. Authenticates with the
personal access token from ``Settings.github_token`` when one is set.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from config.settings import Settings

logger = logging.getLogger(__name__)


class GitHubClient:
    """Thin async wrapper around the GitHub REST API."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api = settings.github_api_url.rstrip("/")
        self._token = settings.github_token
        self._per_page = settings.github_repos_per_page
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {
            "user-agent": "devconnector-api",
            "Accept": "application/vnd.github+json",
        }
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    async def list_repos(self, username: str) -> List[Dict[str, Any]]:
        """
        Return the user's oldest repositories first, one page only.

        Raises ``httpx.HTTPError`` on transport failure or a non-2xx reply
        (including 404 for an unknown user).
        """
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.get(
                f"{self._api}/users/{username}/repos",
                headers=self._headers(),
                params={
                    "per_page": self._per_page,
                    "sort": "created",
                    "direction": "asc",
                },
            )
            resp.raise_for_status()
        return resp.json()
