"""Tests for the poll cycle workflow."""

import copy
import json
import pytest
from unittest.mock import AsyncMock, Mock

from nginx_epagent.collectors.nginx_collector import StatusResponse
from nginx_epagent.services.snapshot_store import SnapshotStore
from nginx_epagent.stats.schema import StatsSchema
from nginx_epagent.utils.errors import EmptyStatsError, StatusAuthError, StatusFetchError
from nginx_epagent.workflow import PollWorkflow


def text_response(accepts, handled, requests, active=1):
    body = (
        f"Active connections: {active}\n"
        "server accepts handled requests\n"
        f" {accepts} {handled} {requests}\n"
        "Reading: 0 Writing: 1 Waiting: 0\n"
    )
    return StatusResponse(body=body, content_type="text/plain")


def by_name(records):
    return {record.name: record.value for record in records}


@pytest.fixture
def collector():
    collector = Mock()
    collector.fetch = AsyncMock()
    return collector


@pytest.fixture
def epagent():
    epagent = Mock()
    epagent.send_metrics = AsyncMock(return_value=True)
    return epagent


@pytest.fixture
def workflow(agent_config, logger, collector, epagent):
    return PollWorkflow(agent_config, logger, collector=collector, epagent=epagent)


class TestPollWorkflow:
    """Test suite for PollWorkflow."""

    def test_source_from_config(self, workflow):
        assert workflow.source == "web-01"
        assert workflow.projector.root == "nginx|web-01"
        assert isinstance(workflow.store, SnapshotStore)

    @pytest.mark.asyncio
    async def test_first_poll_forwards_zero_deltas(self, workflow, collector, epagent):
        collector.fetch.return_value = text_response(112, 112, 121)

        state = await workflow.run()

        assert not state.get("error")
        assert state["forwarded"] is True
        assert state["classified"].schema is StatsSchema.BASIC

        metrics = by_name(epagent.send_metrics.call_args[0][0])
        assert metrics["nginx|web-01|Connections:Handled Connections"] == 0
        assert metrics["nginx|web-01:Requests per Interval"] == 0
        assert metrics["nginx|web-01:Average Requests per Connection"] == 0
        assert workflow.store.previous["handled"] == 112

    @pytest.mark.asyncio
    async def test_second_poll_deltas(self, workflow, collector, epagent):
        collector.fetch.side_effect = [
            text_response(112, 112, 121),
            text_response(130, 130, 150),
        ]

        await workflow.run()
        await workflow.run()

        metrics = by_name(epagent.send_metrics.call_args[0][0])
        assert metrics["nginx|web-01|Connections:Handled Connections"] == 18
        assert metrics["nginx|web-01:Requests per Interval"] == 29
        assert metrics["nginx|web-01:Average Requests per Connection"] == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        StatusFetchError("Connection refused"),
        StatusAuthError("recheck the username/password"),
        EmptyStatsError("Nginx statistics return empty"),
    ])
    async def test_fetch_error_aborts_cycle(self, workflow, collector, epagent, error):
        collector.fetch.side_effect = error

        state = await workflow.run()

        assert state["error"] == str(error)
        assert state["error_type"] == type(error).__name__
        assert len(state["errors"]) == 1
        assert "metrics" not in state
        epagent.send_metrics.assert_not_awaited()
        assert workflow.store.is_empty

    @pytest.mark.asyncio
    async def test_parse_error_aborts_cycle(self, workflow, collector, epagent):
        collector.fetch.return_value = StatusResponse(body="{broken", content_type="application/json")

        state = await workflow.run()

        assert state["error_type"] == "StatsParseError"
        epagent.send_metrics.assert_not_awaited()
        assert workflow.store.is_empty

    @pytest.mark.asyncio
    async def test_nan_counter_is_a_parse_error(self, workflow, collector, epagent):
        collector.fetch.return_value = StatusResponse(
            body='{"requests": {"total": NaN}, "connections": {"accepted": 1}}',
            content_type="application/json"
        )

        state = await workflow.run()

        assert state["error_type"] == "StatsParseError"
        epagent.send_metrics.assert_not_awaited()
        assert workflow.store.is_empty

    @pytest.mark.asyncio
    async def test_failed_cycles_keep_last_good_snapshot(self, workflow, collector, epagent):
        """Deltas skip forward across failed polls."""
        collector.fetch.side_effect = [
            text_response(100, 100, 200),
            StatusFetchError("timeout"),
            StatusResponse(body="<html>oops</html>", content_type="text/html"),
            text_response(150, 150, 260),
        ]

        for _ in range(4):
            await workflow.run()

        assert epagent.send_metrics.await_count == 2
        metrics = by_name(epagent.send_metrics.call_args[0][0])
        assert metrics["nginx|web-01|Connections:Handled Connections"] == 50
        assert metrics["nginx|web-01:Requests per Interval"] == 60
        assert workflow.store.replacements == 2

    @pytest.mark.asyncio
    async def test_forward_failure_does_not_fail_cycle(self, workflow, collector, epagent):
        collector.fetch.return_value = text_response(112, 112, 121)
        epagent.send_metrics.return_value = False

        state = await workflow.run()

        assert not state.get("error")
        assert state["forwarded"] is False
        assert workflow.store.previous["requests"] == 121

    @pytest.mark.asyncio
    async def test_identical_polls_yield_zero_deltas(self, workflow, collector, epagent):
        collector.fetch.return_value = text_response(500, 480, 900)

        await workflow.run()
        await workflow.run()

        metrics = by_name(epagent.send_metrics.call_args[0][0])
        assert metrics["nginx|web-01|Connections:Handled Connections"] == 0
        assert metrics["nginx|web-01:Requests per Interval"] == 0
        assert metrics["nginx|web-01|Connections:Dropped Connections"] == 20

    @pytest.mark.asyncio
    async def test_extended_polls(self, workflow, collector, epagent, plus_status):
        second = copy.deepcopy(plus_status)
        second["requests"]["total"] += 40
        second["connections"]["accepted"] += 10
        second["server_zones"]["site1"]["requests"] += 40

        collector.fetch.side_effect = [
            StatusResponse(body=json.dumps(plus_status), content_type="application/json"),
            StatusResponse(body=json.dumps(second), content_type="application/json; charset=utf-8"),
        ]

        await workflow.run()
        state = await workflow.run()

        assert state["classified"].schema is StatsSchema.EXTENDED
        metrics = by_name(state["metrics"])
        assert metrics["nginx|web-01:Requests per Interval"] == 40
        assert metrics["nginx|web-01|Connections:Handled Connections"] == 10
        assert metrics["nginx|web-01:Average Requests per Connection"] == 4
        assert metrics["nginx|web-01|Server Zone|site1:Requests per Interval"] == 40
        assert metrics["nginx|web-01|Upstreams|backend|10.0.0.1_80:State"] == "up"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
