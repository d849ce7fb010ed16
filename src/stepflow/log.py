from __future__ import annotations

import logging

VERBOSITY_LEVELS = {
    "quiet": logging.CRITICAL,
    "normal": logging.WARNING,
    "verbose": logging.INFO,
    "debug": logging.DEBUG,
}

_FORMAT = "%(asctime)s %(levelname)-7s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(verbosity: str = "normal", handler: logging.Handler | None = None) -> logging.Logger:
    """Attach a handler to the ``stepflow`` logger at the level for ``verbosity``."""

    try:
        level = VERBOSITY_LEVELS[verbosity]
    except KeyError:
        msg = f"Unknown verbosity: {verbosity}"
        raise ValueError(msg) from None
    logger = logging.getLogger("stepflow")
    logger.setLevel(level)
    for existing in list(logger.handlers):
        if getattr(existing, "_stepflow", False):
            logger.removeHandler(existing)
    handler = handler or logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler._stepflow = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    return logger
