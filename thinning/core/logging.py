from __future__ import annotations

import logging
import sys

DEFAULT_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO", *, fmt: str = DEFAULT_LOG_FORMAT) -> None:
    root = logging.getLogger("thinning")
    root.setLevel(level.upper())

    # Re-configuring replaces our handler instead of stacking another one.
    for handler in list(root.handlers):
        if getattr(handler, "_thinning_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt))
    handler._thinning_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
