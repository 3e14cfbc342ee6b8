"""Application entry point for the KYC document scan API server."""

import argparse

import uvicorn

from kyc_ocr.api.app import app
from kyc_ocr.utils.config import load_config
from kyc_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main(argv: list[str] | None = None) -> None:
    """Start the FastAPI application server."""
    parser = argparse.ArgumentParser(description="KYC document scan API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    args = parser.parse_args(argv)

    config = load_config()
    setup_logging(config.log_level)
    logger.info("Serving scan API on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    main()
