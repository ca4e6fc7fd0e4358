"""nginx status page collector."""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from ..config.models import NginxStatusConfig
from ..utils.errors import EmptyStatsError, StatusAuthError, StatusFetchError


@dataclass(frozen=True)
class StatusResponse:
    """Raw status page body and the Content-Type it was served with."""

    body: str
    content_type: str


class NginxStatusCollector:
    """Fetch the nginx status page (stub_status text or nginx plus JSON)."""

    def __init__(
        self,
        config: NginxStatusConfig,
        timeout: Optional[float] = 10.0,
        logger: logging.Logger = None
    ):
        """
        Initialize nginx collector.

        Args:
            config: Status page configuration
            timeout: Request timeout in seconds (None disables it)
            logger: Optional logger instance
        """
        self.config = config
        self.timeout = timeout
        base_logger = logger or logging.getLogger(__name__)
        self.logger = base_logger.getChild(self.__class__.__name__)

    def _auth(self) -> Optional[httpx.BasicAuth]:
        if not self.config.username:
            return None
        return httpx.BasicAuth(self.config.username, self.config.password or "")

    async def fetch(self) -> StatusResponse:
        """
        Fetch the status page.

        Returns:
            StatusResponse: Body and content type of a 200 answer

        Raises:
            StatusAuthError: nginx answered 401
            StatusFetchError: Transport failure or any other non-200 status
            EmptyStatsError: nginx answered 200 with no content
        """
        try:
            async with httpx.AsyncClient(
                auth=self._auth(),
                verify=self.config.strict_ssl,
                timeout=self.timeout
            ) as client:
                response = await client.get(self.config.url)

        except httpx.TimeoutException as e:
            raise StatusFetchError(f"Nginx status request timed out: {e}") from e

        except httpx.HTTPError as e:
            raise StatusFetchError(f"Nginx status request failed: {e}") from e

        if response.status_code == 401:
            raise StatusAuthError(
                "Nginx returned with an error - recheck the username/password you provided"
            )
        if response.status_code != 200:
            raise StatusFetchError(
                f"Nginx returned with an error (HTTP {response.status_code}) - "
                "recheck the URL you provided"
            )
        if not response.text:
            raise EmptyStatsError("Nginx statistics return empty")

        content_type = response.headers.get("content-type", "")
        self.logger.debug(f"Fetched {len(response.text)} bytes ({content_type or 'no content type'})")

        return StatusResponse(body=response.text, content_type=content_type)
