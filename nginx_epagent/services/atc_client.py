"""CA APM ATC API client for topology and extension registration."""

import asyncio
import logging
import socket
import time
from typing import Optional

import httpx

from ..config.models import ATCConfig


TOPOLOGY_PATH = "/apm/appmap/ats/graph/store"
CONFIGURE_PATH = "/apm/appmap/ats/extension/configure"
SOURCE_ID = "ca-apm-fieldpack-nginx"


def _metric_specifier(fmt: str, metric_name: str) -> dict:
    return {
        "metricSpecifier": {"format": fmt, "type": "EXACT"},
        "agentSpecifier": {"format": ".*|.*|.*", "type": "REGEX"},
        "section": "nginx Metrics",
        "metricNames": [metric_name],
        "filter": {},
    }


class ATCClient:
    """
    Register the nginx extension and its topology vertex with ATC.

    All calls go through the configured proxy (if any) and skip TLS
    verification.
    """

    def __init__(
        self,
        config: ATCConfig,
        source: str,
        timeout: Optional[float] = 10.0,
        logger: logging.Logger = None
    ):
        """
        Initialize ATC client.

        Args:
            config: ATC configuration
            source: nginx host identifier, also used for DNS lookup
            timeout: Request timeout in seconds (None disables it)
            logger: Optional logger instance
        """
        self.config = config
        self.source = source
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)
        self.last_topology_ms = 0

    def build_config_payload(self) -> dict:
        """Extension configuration document for the nginx metric tree."""
        return {
            "id": "nginx",
            "version": self.config.config_version,
            "metricSpecifiers": {
                "nginx": [
                    _metric_specifier("nginx|<hostname>", "Average Requests per Connection"),
                    _metric_specifier("nginx|<hostname>", "Requests per Interval"),
                    _metric_specifier("nginx|<hostname>|Connections", "Active"),
                    _metric_specifier("nginx|<hostname>|Connections", "Idle"),
                ]
            },
            "metricRootSpecifiers": {
                "nginx": [
                    {"rootSpecifier": "<agent>|nginx|<hostname>", "nextLevelRegex": None}
                ]
            },
            "alertMappings": {"nginx": ["nginx|<hostname>"]},
        }

    def build_topology_payload(self, ip_address: str) -> dict:
        """Graph document with a single ATC vertex for this nginx host."""
        return {
            "graph": {
                "vertices": [
                    {
                        "id": f"ATC:nginx:{self.source}",
                        "layer": "ATC",
                        "attributes": {
                            "name": f"NGINX-{self.source}",
                            "type": "nginx",
                            "hostname": self.source,
                            "ipAddress": ip_address,
                            "agent": self.config.agent_name,
                            "TTPlugin.sourceID": SOURCE_ID,
                            "TTPlugin.correlation.proxy.1.source.host": self.source,
                            "TTPlugin.correlation.proxy.1.source.ip": ip_address,
                            "TTPlugin.correlation.proxy.1.source.port": "80",
                        },
                    }
                ],
                "edges": [],
            }
        }

    async def register_config(self) -> bool:
        """POST the extension configuration. Returns True on a 2xx answer."""
        return await self._post(CONFIGURE_PATH, self.build_config_payload(), "Config")

    async def register_topology(self) -> bool:
        """Resolve the source address and POST the topology vertex."""
        ip_address = await self.resolve_source_ip()
        return await self._post(TOPOLOGY_PATH, self.build_topology_payload(ip_address), "Topology")

    async def refresh_topology_if_due(self, now_ms: Optional[float] = None) -> bool:
        """
        Re-register topology on the first call and whenever the refresh
        interval has elapsed.

        Returns:
            bool: True if a registration was attempted
        """
        now_ms = time.time() * 1000 if now_ms is None else now_ms
        elapsed = now_ms - self.last_topology_ms

        if self.last_topology_ms and elapsed <= self.config.refresh_topology_ms:
            return False

        self.last_topology_ms = now_ms
        await self.register_topology()
        return True

    async def resolve_source_ip(self) -> str:
        """IPv4 address of the source host, or "" when it cannot be resolved."""
        loop = asyncio.get_running_loop()
        try:
            infos = await loop.getaddrinfo(self.source, None, family=socket.AF_INET)
        except (OSError, UnicodeError) as e:
            self.logger.warning(f"Could not resolve {self.source}: {e}")
            return ""

        return infos[0][4][0] if infos else ""

    async def _post(self, path: str, payload: dict, label: str) -> bool:
        url = f"{self.config.base_url}{path}"
        headers = {"Authorization": f"Bearer {self.config.token}"}

        try:
            async with httpx.AsyncClient(
                proxy=self.config.proxy.url,
                verify=False,
                timeout=self.timeout
            ) as client:
                response = await client.post(url, json=payload, headers=headers)

            self.logger.info(f"ATC {label} registration: HTTP {response.status_code}")
            return response.is_success

        except httpx.HTTPError as e:
            self.logger.error(f"ATC {label} registration failed: {e}")
            return False

        except Exception as e:
            self.logger.error(
                f"ATC {label} registration failed with unexpected error: {e}",
                exc_info=True
            )
            return False
