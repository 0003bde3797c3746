from __future__ import annotations
"""server/pixoverlay/core/logging.py
~~~~~~~~~~~~~~~~~~~~~~~~
Configuration logs.
"""
import logging


def setup_logging(level: int | str = logging.INFO) -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    # httpx loggue chaque requête en INFO : trop bavard avec un flux SSE ouvert.
    logging.getLogger("httpx").setLevel(logging.WARNING)
