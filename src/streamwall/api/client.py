from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Sequence

import requests


def alias_key(index: int) -> str:
    return f"u{index}"


def build_stream_status_query(logins: Sequence[str]) -> str:
    """One GraphQL document asking for every login's stream, each under its own alias."""

    aliases = [
        f"{alias_key(i)}: user(login: {json.dumps(login)}) {{ login stream {{ id }} }}"
        for i, login in enumerate(logins)
    ]
    return f"query {{ {' '.join(aliases)} }}"


class TwitchGqlClient:
    BASE_URL = "https://gql.twitch.tv/gql"
    CLIENT_ID = "kimne78kx3ncx6brgo4mv6wki5h1ko"

    def __init__(
        self,
        *,
        url: Optional[str] = None,
        client_id: Optional[str] = None,
        timeout: float = 20,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url or self.BASE_URL
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Client-ID": client_id or self.CLIENT_ID,
                "User-Agent": "Mozilla/5.0",
                "Content-Type": "application/json",
            }
        )
        self.last_status: Optional[int] = None

    def _request(self, method: str, **kwargs) -> requests.Response:
        r = self.session.request(method, self.url, timeout=self.timeout, **kwargs)
        self.last_status = r.status_code
        return r

    def query(self, document: str) -> Dict[str, Any]:
        r = self._request("POST", json={"query": document})
        r.raise_for_status()
        data = r.json()
        if not isinstance(data, dict):
            raise ValueError("GQL response is not an object")
        return data

    def stream_status(self, logins: Sequence[str]) -> Dict[str, bool]:
        """Map each login to whether it currently has an active stream.

        Raises on transport errors, HTTP errors and malformed bodies; callers
        decide how to degrade.
        """

        if not logins:
            return {}
        data = self.query(build_stream_status_query(logins))
        users = data.get("data")
        if not isinstance(users, dict):
            raise ValueError("GQL response has no data")
        out: Dict[str, bool] = {}
        for i, login in enumerate(logins):
            user = users.get(alias_key(i))
            out[login] = bool(isinstance(user, dict) and user.get("stream"))
        return out

    def live_logins(self, logins: Sequence[str]) -> List[str]:
        return [login for login, live in self.stream_status(logins).items() if live]
