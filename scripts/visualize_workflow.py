#!/usr/bin/env python3
"""
Script to generate visual representation of the poll workflow graph.

Usage:
    python scripts/visualize_workflow.py [output_path] [config_path]
"""

import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from nginx_epagent.config.loader import ConfigLoader
from nginx_epagent.workflow import PollWorkflow
from nginx_epagent.utils.logger import setup_logger


def main():
    """Generate workflow graph visualization."""
    logger = setup_logger("visualize")

    output_path = sys.argv[1] if len(sys.argv) > 1 else "workflow_graph.png"
    config_path = sys.argv[2] if len(sys.argv) > 2 else "config/config.yaml"

    try:
        logger.info(f"Loading configuration from {config_path}")
        config = ConfigLoader.load_from_file(config_path)

        workflow = PollWorkflow(config, logger)

        logger.info(f"Generating graph visualization: {output_path}")
        if not workflow.visualize_graph(output_path):
            logger.error("Failed to generate visualization")
            return 1

        print(f"\nGraph saved to: {output_path}")
        print("\nWorkflow structure:")
        print("  fetch (status page)  --error-->  END")
        print("      ↓")
        print("  parse (snapshot)     --error-->  END")
        print("      ↓")
        print("  compute (deltas + metric records)")
        print("      ↓")
        print("  forward (EPAgent metric feed)")
        print("      ↓")
        print("  END")
        return 0

    except FileNotFoundError:
        logger.error(f"Configuration file not found: {config_path}")
        print("Create it from template: cp config/config.example.yaml config/config.yaml")
        return 1

    except Exception as e:
        logger.error(f"Visualization failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
