# src/daybook/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then serves the procedure API with uvicorn.
`daybook procedures` prints the registered procedures instead.
"""

from __future__ import annotations

import logging
import sys

import uvicorn

from ..api.http import create_app
from ..api.procedures import registry
from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        store = getattr(state, "store", None)
        if store is not None and hasattr(store, "close"):
            store.close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if args and args[0] == "procedures":
        print(registry.build_help())
        return

    settings = get_settings()

    # choose console log level from settings.log_level
    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/daybook")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "daybook"))

    # IMPORTANT: reuse same settings object
    state = create_initial_state(settings=settings)
    app = create_app(state)

    try:
        # log_config=None keeps the handlers installed by setup_logging.
        uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
