"""Serve a wren App with the pounce ASGI server.

pounce is an optional dependency (``pip install wren[server]``) and is
imported only when ``App.run()`` is called.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("wren.server")


def run_server(
    app: object,
    host: str,
    port: int,
    *,
    workers: int = 1,
    reload: bool = False,
    log_level: str = "info",
) -> None:
    """Start a pounce server with the live App object.

    Pounce's ``run()`` takes an import string (e.g., ``"myapp:app"``),
    but we have a live ``App`` object, so ``pounce.Server`` is used
    directly with the ASGI callable.
    """
    from pounce.config import ServerConfig
    from pounce.server import Server

    logger.info("Serving on http://%s:%d (workers=%d)", host, port, workers)
    config = ServerConfig(
        host=host,
        port=port,
        workers=workers,
        reload=reload,
        log_level=log_level,
    )
    Server(config, app).run()
