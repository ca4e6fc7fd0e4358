"""Main application entry point for the nginx EPAgent forwarder."""

import argparse
import asyncio
import logging
import os
import signal
import sys
from datetime import datetime, timedelta, timezone

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from .config.loader import ConfigLoader
from .config.models import AgentConfig
from .services.atc_client import ATCClient
from .workflow import PollWorkflow
from .utils.logger import setup_logger


POLL_JOB_ID = "poll_cycle"


class ForwarderApp:
    """
    Main forwarder application.

    Runs poll cycles back to back with a fixed delay between the end of one
    cycle and the start of the next, so cycles never overlap.
    """

    def __init__(
        self,
        config_path: str = "config/config.yaml",
        log_level: str = "INFO"
    ):
        """
        Initialize forwarder application.

        Args:
            config_path: Path to configuration file
            log_level: Log level for the application logger
        """
        self.config_path = config_path
        self.logger = setup_logger("main", log_level)
        self.scheduler = None
        self._stop_event = None

        self.logger.info("=" * 60)
        self.logger.info("NGINX Monitor started...")
        self.logger.info("=" * 60)

        self.config = self._load_config()

        self.workflow = PollWorkflow(self.config, self.logger)
        self.atc_client = None
        if self.config.atc.enabled:
            self.atc_client = ATCClient(
                self.config.atc,
                self.workflow.source,
                self.config.monitoring.timeout_seconds,
                self.logger
            )

        self.logger.info("Application initialized successfully")

    def _load_config(self) -> AgentConfig:
        """
        Load and validate configuration.

        Returns:
            AgentConfig: Loaded configuration

        Raises:
            SystemExit: If configuration is invalid
        """
        try:
            self.logger.info(f"Loading configuration from {self.config_path}")
            config = ConfigLoader.load_from_file(self.config_path)
            self.logger.info("Configuration loaded successfully")
            return config

        except FileNotFoundError:
            self.logger.error(
                f"Configuration file not found: {self.config_path}\n"
                "Please create config/config.yaml from config/config.example.yaml"
            )
            sys.exit(1)

        except Exception as e:
            self.logger.error(
                f"Failed to load configuration: {e}",
                exc_info=True
            )
            sys.exit(1)

    async def run_poll_cycle(self) -> bool:
        """
        Execute one poll cycle, refreshing ATC topology first when due.

        Returns:
            bool: True if metrics were computed (forwarding may still have failed)
        """
        if self.atc_client is not None:
            try:
                await self.atc_client.refresh_topology_if_due()
            except Exception as e:
                self.logger.error(
                    f"ATC topology refresh failed: {e}",
                    extra={"error_type": type(e).__name__}
                )

        try:
            final_state = await self.workflow.run()
        except Exception as e:
            self.logger.error(
                "Poll cycle failed",
                exc_info=True,
                extra={
                    "error_type": type(e).__name__,
                    "error_message": str(e)
                }
            )
            return False

        return not final_state.get("error")

    async def _poll_and_rearm(self):
        try:
            await self.run_poll_cycle()
        finally:
            self._schedule_next(self.config.monitoring.poll_interval_seconds)

    def _schedule_next(self, delay_seconds: float):
        """Arm a one-shot poll job ``delay_seconds`` from now."""
        if self.scheduler is None or not self.scheduler.running:
            return

        run_date = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)
        self.scheduler.add_job(
            self._poll_and_rearm,
            trigger=DateTrigger(run_date=run_date),
            id=POLL_JOB_ID,
            name='nginx Poll Cycle',
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=None
        )

    async def register_extension(self):
        """Register the nginx extension config with ATC, if enabled."""
        if self.atc_client is None:
            return
        try:
            await self.atc_client.register_config()
        except Exception as e:
            self.logger.error(
                f"ATC extension registration failed: {e}",
                extra={"error_type": type(e).__name__}
            )

    def _signal_handler(self, signum):
        """
        Handle shutdown signals.

        Args:
            signum: Signal number
        """
        signal_name = signal.Signals(signum).name
        self.logger.info(f"Received {signal_name}, initiating graceful shutdown...")
        if self._stop_event is not None:
            self._stop_event.set()

    async def serve(self):
        """
        Poll until SIGTERM/SIGINT.

        The first cycle runs immediately; each following cycle is armed
        when the previous one returns.
        """
        self._stop_event = asyncio.Event()

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(signum, self._signal_handler, signum)

        await self.register_extension()

        self.scheduler = AsyncIOScheduler()
        self.scheduler.start()
        self._schedule_next(0)

        interval = self.config.monitoring.poll_interval_seconds
        self.logger.info(f"Scheduler started, polling every {interval}s")

        try:
            await self._stop_event.wait()
        finally:
            if self.scheduler.running:
                self.scheduler.shutdown(wait=False)
            self.logger.info("Scheduler stopped")
            self.logger.info("=" * 60)
            self.logger.info("NGINX Monitor stopped")
            self.logger.info("=" * 60)

    async def run_once(self) -> bool:
        """Register with ATC (if enabled) and run a single poll cycle."""
        await self.register_extension()
        return await self.run_poll_cycle()


def main():
    """
    CLI entry point.

    Parses command-line arguments and starts the forwarder.
    """
    parser = argparse.ArgumentParser(
        description='Forward nginx status metrics to a CA APM EPAgent',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Poll forever (default)
  nginx-epagent

  # Poll once and exit (useful for testing)
  nginx-epagent --run-once

  # Use custom config file
  nginx-epagent --config /path/to/config.yaml
        """
    )

    parser.add_argument(
        '--config',
        default='config/config.yaml',
        help='Path to configuration file (default: config/config.yaml)'
    )

    parser.add_argument(
        '--run-once',
        action='store_true',
        help='Run one poll cycle and exit (no scheduler)'
    )

    parser.add_argument(
        '--log-level',
        default=os.getenv('LOG_LEVEL', 'INFO'),
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level (default: INFO or LOG_LEVEL env var)'
    )

    args = parser.parse_args()

    try:
        app = ForwarderApp(
            config_path=args.config,
            log_level=args.log_level
        )

        if args.run_once:
            ok = asyncio.run(app.run_once())
            sys.exit(0 if ok else 1)
        else:
            asyncio.run(app.serve())

    except Exception as e:
        logging.error(f"Application startup failed: {e}", exc_info=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
