# deployment_engine/run_controller.py
"""Run the App Deployment controller."""

import logging
import time
import signal
import sys

from deployment_engine.container import controller, settings

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def signal_handler(sig, frame):
    """Handle Ctrl+C gracefully."""
    logger.info("Shutting down controller...")
    controller.stop(timeout=10)
    sys.exit(0)


def main():
    """Main entry point."""
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    logger.info("=" * 80)
    logger.info("APP DEPLOYMENT CONTROLLER")
    logger.info("=" * 80)
    logger.info(f"Controller ID: {controller.controller_id}")
    logger.info(f"Store backend: {settings.store_backend}")
    logger.info(f"Max Slots: {controller.slots.total_slots()}")
    logger.info(f"Resync Period: {controller.resync_period}s")
    logger.info("")
    logger.info("Press Ctrl+C to stop")
    logger.info("=" * 80)

    controller.start()

    # Keep running
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down controller...")
        controller.stop(timeout=10)


if __name__ == "__main__":
    main()
