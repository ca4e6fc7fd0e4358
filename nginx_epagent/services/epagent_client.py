"""EPAgent RESTful metric feed client."""

import logging
from typing import List, Optional

import httpx

from ..config.models import EPAgentConfig
from ..utils.metrics import MetricRecord


class EPAgentClient:
    """
    POST metric records to the EPAgent ``/apm/metricFeed`` endpoint.

    Delivery failures are logged and reported through the return value;
    they never raise into the poll cycle.
    """

    def __init__(
        self,
        config: EPAgentConfig,
        timeout: Optional[float] = 10.0,
        logger: logging.Logger = None
    ):
        """
        Initialize EPAgent client.

        Args:
            config: EPAgent location
            timeout: Request timeout in seconds (None disables it)
            logger: Optional logger instance
        """
        self.url = config.url
        self.timeout = timeout
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def build_payload(records: List[MetricRecord]) -> dict:
        return {"metrics": [record.to_dict() for record in records]}

    async def send_metrics(self, records: List[MetricRecord]) -> bool:
        """
        Send one poll's worth of metrics.

        Args:
            records: Metric records in output order

        Returns:
            bool: True if the EPAgent accepted the POST
        """
        payload = self.build_payload(records)

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(self.url, json=payload)

            if response.status_code >= 400:
                self.logger.error(
                    f"EPAgent rejected metric feed: HTTP {response.status_code}"
                )
                return False

            self.logger.debug(f"Forwarded {len(records)} metric(s) to {self.url}")
            return True

        except httpx.HTTPError as e:
            self.logger.error(f"Failed to forward metrics to {self.url}: {e}")
            return False
