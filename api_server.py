# SPDX-License-Identifier: GPL-3.0-only
"""Atom Connect API server."""

import uvicorn

from base_logger import get_logger
from src.api_v1 import create_app
from src.utils import get_configs, get_int_config

logger = get_logger("api_server")

app = create_app()


def main():
    """Entry function"""
    host = get_configs("HOST", default_value="127.0.0.1")
    port = get_int_config("PORT", 8000)

    logger.info("Serving API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port, log_level="info", access_log=False)


if __name__ == "__main__":
    main()
