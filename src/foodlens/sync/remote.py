"""Client for the remote sync procedures (PostgREST-style RPC over HTTP)."""

import logging

import requests

from foodlens.config import Config
from foodlens.errors import RemoteProcedureError

logger = logging.getLogger(__name__)


class SupabaseRpcClient:
    """Calls ``POST <base_url>/rest/v1/rpc/<procedure>`` with a JSON body.

    Any object with the same ``rpc(procedure, params)`` method can stand
    in for this client.
    """

    def __init__(self, base_url: str, api_key: str, timeout: int = 15,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls) -> "SupabaseRpcClient":
        return cls(
            Config.SUPABASE_URL,
            Config.SUPABASE_ANON_KEY,
            timeout=Config.HTTP_TIMEOUT,
        )

    def _headers(self) -> dict:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def rpc(self, procedure: str, params: dict):
        """Invoke a procedure and return its decoded result.

        Raises RemoteProcedureError when the server answers with an
        error status; the message is empty if the body carries none.
        Transport failures propagate as ``requests`` exceptions.
        """
        url = f"{self.base_url}/rest/v1/rpc/{procedure}"
        response = self.session.post(
            url, json=params, headers=self._headers(), timeout=self.timeout
        )

        if not response.ok:
            message = _error_message(response)
            logger.info(
                f"RPC {procedure} failed with {response.status_code}: "
                f"{message or 'no message'}"
            )
            raise RemoteProcedureError(message, procedure=procedure)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteProcedureError(
                f"Invalid JSON from {procedure}", procedure=procedure
            ) from e


def _error_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return ""
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or ""
    return ""
