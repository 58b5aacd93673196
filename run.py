#!/usr/bin/env python3
"""
ATM Simulator Entry Point

Starts the FastAPI front end over the ledger stored in the configured store file.
"""

import sys

import uvicorn

from atm_ledger.api import create_app
from atm_ledger.config import get_config
from atm_ledger.logging_config import setup_logging


def main():
    config = get_config()
    logger = setup_logging(config.log_level, "atm", config.log_format)

    app = create_app()

    print("🏧 Starting ATM Simulator...")
    print(f"💾 Store file: {config.store_path}")
    print(f"🌐 API available at: http://{config.api_host}:{config.api_port}")
    print(f"📚 Documentation at: http://{config.api_host}:{config.api_port}/docs")
    print()

    try:
        uvicorn.run(app, host=config.api_host, port=config.api_port, access_log=False)
    except KeyboardInterrupt:
        print("\n👋 Shutting down ATM Simulator...")
    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
