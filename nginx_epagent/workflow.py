"""LangGraph workflow for one nginx poll cycle."""

import time
import logging
from typing import Dict

from langgraph.graph import StateGraph, END

from .state import PollState
from .collectors.nginx_collector import NginxStatusCollector
from .config.models import AgentConfig
from .services.epagent_client import EPAgentClient
from .services.snapshot_store import SnapshotStore
from .stats.delta import compute_deltas
from .stats.parser import parse_stats
from .stats.projector import MetricProjector
from .stats.schema import classify
from .utils.errors import ForwarderError, StatsParseError
from .utils.logger import setup_logger


class PollWorkflow:
    """
    LangGraph workflow orchestrator for a single poll cycle.

    fetch -> parse -> compute -> forward. A fetch or parse error ends the
    cycle without touching the snapshot store; a forward error does not.
    """

    def __init__(
        self,
        config: AgentConfig,
        logger: logging.Logger = None,
        collector: NginxStatusCollector = None,
        epagent: EPAgentClient = None,
        store: SnapshotStore = None
    ):
        """
        Initialize poll workflow.

        Args:
            config: Forwarder configuration
            logger: Optional logger instance
            collector: Status page collector (built from config if omitted)
            epagent: Metric feed client (built from config if omitted)
            store: Previous-snapshot store (a fresh one if omitted)
        """
        self.config = config
        self.logger = logger or setup_logger("workflow")

        timeout = config.monitoring.timeout_seconds
        self.source = config.monitoring.resolved_source

        self.collector = collector or NginxStatusCollector(config.nginx, timeout, self.logger)
        self.epagent = epagent or EPAgentClient(config.epagent, timeout, self.logger)
        self.store = store or SnapshotStore(self.logger)
        self.projector = MetricProjector(self.source)

        self.graph = self._build_graph()
        self.logger.info(f"Poll workflow initialized for source '{self.source}'")

    def _build_graph(self) -> StateGraph:
        """
        Construct LangGraph workflow.

        Graph structure:
        - Entry: fetch
        - fetch → parse → compute → forward → END
        - fetch/parse route to END when they set ``error``

        Returns:
            Compiled StateGraph
        """
        workflow = StateGraph(PollState)

        workflow.add_node("fetch", self._fetch)
        workflow.add_node("parse", self._parse)
        workflow.add_node("compute", self._compute)
        workflow.add_node("forward", self._forward)

        workflow.set_entry_point("fetch")

        workflow.add_conditional_edges(
            "fetch", self._route_on_error, {"continue": "parse", "abort": END}
        )
        workflow.add_conditional_edges(
            "parse", self._route_on_error, {"continue": "compute", "abort": END}
        )
        workflow.add_edge("compute", "forward")
        workflow.add_edge("forward", END)

        return workflow.compile()

    @staticmethod
    def _route_on_error(state: PollState) -> str:
        return "abort" if state.get("error") else "continue"

    def _abort(self, error: ForwarderError) -> Dict:
        error_type = type(error).__name__
        self.logger.error(
            f"Poll cycle aborted: {error}",
            extra={"error_type": error_type, "error_message": str(error)}
        )
        return {
            "error": str(error),
            "error_type": error_type,
            "errors": [f"{error_type}: {error}"]
        }

    async def _fetch(self, state: PollState) -> Dict:
        """Fetch the raw status page."""
        try:
            response = await self.collector.fetch()
        except ForwarderError as e:
            return self._abort(e)

        return {"response": response}

    async def _parse(self, state: PollState) -> Dict:
        """Turn the status body into a snapshot."""
        response = state["response"]
        snapshot = parse_stats(response.body, response.content_type)

        if snapshot is None:
            return self._abort(StatsParseError("Could not parse Nginx analytics"))

        return {"snapshot": snapshot}

    async def _compute(self, state: PollState) -> Dict:
        """
        Classify the snapshot, diff it against the previous one and project
        the metric records. The snapshot becomes the new previous snapshot
        even if projection fails.
        """
        snapshot = state["snapshot"]

        try:
            classified = classify(snapshot)
            deltas = compute_deltas(self.store.previous, classified)
            metrics = self.projector.project(classified, deltas)
        finally:
            self.store.replace(snapshot)

        self.logger.info(
            f"Computed {len(metrics)} metric(s) from {classified.schema.value} snapshot"
        )

        return {
            "classified": classified,
            "deltas": deltas,
            "metrics": metrics
        }

    async def _forward(self, state: PollState) -> Dict:
        """Send the metric records to the EPAgent."""
        forwarded = await self.epagent.send_metrics(state["metrics"])

        if not forwarded:
            self.logger.warning("Metric feed not delivered; next poll continues as normal")

        return {"forwarded": forwarded}

    def visualize_graph(self, output_path: str = "workflow_graph.png") -> bool:
        """
        Generate visual representation of the workflow graph.

        Args:
            output_path: Path to save the graph image

        Returns:
            bool: True if visualization was generated successfully
        """
        try:
            mermaid_png = self.graph.get_graph().draw_mermaid_png()

            with open(output_path, 'wb') as f:
                f.write(mermaid_png)

            self.logger.info(f"Graph visualization saved to {output_path}")
            return True

        except Exception as e:
            self.logger.error(f"Failed to generate graph visualization: {e}")
            return False

    async def run(self) -> PollState:
        """
        Execute one poll cycle.

        Returns:
            PollState: Final state after workflow completion
        """
        initial_state: PollState = {
            "execution_start": time.time(),
            "forwarded": False,
            "errors": []
        }

        final_state = await self.graph.ainvoke(initial_state)

        duration = time.time() - initial_state['execution_start']
        self.logger.info(
            f"Poll cycle finished in {duration:.2f}s: "
            f"{len(final_state.get('metrics', []))} metric(s), "
            f"forwarded={final_state.get('forwarded', False)}"
        )

        return final_state
