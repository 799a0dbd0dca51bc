import json
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class RoflUtility:
    """Client for the ROFL application daemon's key store.

    The relayer key is generated and held by the ROFL runtime; this utility
    fetches it at startup so it never has to live in source or environment.
    """

    ROFL_SOCKET_PATH: str = "/run/rofl-appd.sock"
    KEY_KIND: str = "secp256k1"

    def __init__(self, url: str = '', timeout: float = 30.0) -> None:
        """Initialize ROFL utility.

        Args:
            url: Optional URL for HTTP transport or a socket path (defaults to socket)
            timeout: Request timeout in seconds
        """
        self.url: str = url
        self.timeout: float = timeout

    async def _appd_post(self, path: str, payload: Any) -> Any:
        """Post request to ROFL application daemon.

        Args:
            path: API endpoint path
            payload: JSON payload to send

        Returns:
            JSON response from the daemon

        Raises:
            httpx.HTTPStatusError: If the request fails
        """
        transport: httpx.AsyncHTTPTransport | None = None

        if self.url and not self.url.startswith('http'):
            transport = httpx.AsyncHTTPTransport(uds=self.url)
            logger.debug(f"Using HTTP socket: {self.url}")
        elif not self.url:
            transport = httpx.AsyncHTTPTransport(uds=self.ROFL_SOCKET_PATH)
            logger.debug(f"Using unix domain socket: {self.ROFL_SOCKET_PATH}")

        async with httpx.AsyncClient(transport=transport) as client:
            base_url: str = self.url if self.url and self.url.startswith('http') else "http://localhost"
            full_url: str = base_url + path
            # Payloads here never carry key material, responses may
            logger.debug(f"Posting to {full_url}: {json.dumps(payload)}")
            response: httpx.Response = await client.post(full_url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            return response.json()

    async def fetch_key(self, key_id: str) -> str:
        """Fetch or generate the relayer key from the ROFL key store.

        Args:
            key_id: Identifier for the key

        Returns:
            The private key as a hex string

        Raises:
            httpx.HTTPStatusError: If key fetch fails
            ValueError: If the daemon answers without a key
        """
        payload: dict[str, str] = {
            "key_id": key_id,
            "kind": self.KEY_KIND
        }

        path: str = '/rofl/v1/keys/generate'
        response: dict[str, Any] = await self._appd_post(path, payload)

        match response:
            case {"key": str(key)} if key:
                logger.info(f"Fetched relayer key '{key_id}' from ROFL key store")
                return key if key.startswith("0x") else "0x" + key
            case _:
                raise ValueError(f"ROFL key store returned no key for '{key_id}'")
