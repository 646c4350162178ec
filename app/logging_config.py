from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level for the ``app`` logger tree.

    Notes:
    - Uvicorn installs the handlers; we only set levels for our package.
    - ``APP_LOG_LEVEL=DEBUG`` shows rejected scope selections and dropped
      stale references, which are otherwise silent.
    """

    normalized = level.upper()
    app_logger = logging.getLogger("app")
    app_logger.setLevel(normalized)
    app_logger.propagate = True
    if not logging.getLogger().handlers:
        # Running outside uvicorn (scripts, REPL): make sure records go somewhere.
        logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
