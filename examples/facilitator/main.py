"""
Facilitator Main Entry Point
Starts a FastAPI server exposing /verify, /settle and /supported for the
configured EVM networks.
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from x402_facilitator.bootstrap import build_facilitator
from x402_facilitator.config import FacilitatorConfig, NetworkConfig
from x402_facilitator.fastapi import create_app
from x402_facilitator.logging_config import setup_logging

logger = logging.getLogger(__name__)

SWEEP_INTERVAL_SECONDS = 60

# Load environment variables
load_dotenv(Path(__file__).parent / ".env")
load_dotenv(Path(__file__).parent.parent.parent / ".env")

config = FacilitatorConfig.from_env()
setup_logging(config.log_level)

facilitator, tracker = build_facilitator(config)


@asynccontextmanager
async def lifespan(_app):
    sweeper = tracker.start_sweeper(SWEEP_INTERVAL_SECONDS)
    try:
        yield
    finally:
        sweeper.cancel()


app = create_app(facilitator, lifespan=lifespan)


def main():
    """Start the facilitator server"""
    host, port = config.host, config.port
    logger.info("=" * 60)
    logger.info("Starting x402 Facilitator Server")
    logger.info("=" * 60)
    for network in config.networks:
        logger.info("  %s (%s)", NetworkConfig.get(network).name, network)
    logger.info("Default network: %s", config.default_network)
    logger.info("Verification window: %ss", config.verification_timeout)
    logger.info("Endpoints:")
    logger.info("  GET  http://%s:%s/supported", host, port)
    logger.info("  POST http://%s:%s/verify", host, port)
    logger.info("  POST http://%s:%s/settle", host, port)
    logger.info("=" * 60)

    uvicorn.run(app, host=host, port=port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
