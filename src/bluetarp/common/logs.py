from __future__ import annotations

import logging
import sys
from pathlib import Path


def setup_logging(log_level: str = "INFO", log_file: Path | None = None) -> logging.Logger:
    lvl = getattr(logging, log_level.upper(), logging.INFO)
    logger = logging.getLogger("bluetarp")
    logger.setLevel(lvl)
    logger.handlers[:] = []

    fmt = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s", "%H:%M:%S")

    ch = logging.StreamHandler(sys.stdout)
    ch.setLevel(lvl)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(lvl)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    # sklearn/joblib chatter
    logging.getLogger("joblib").setLevel(logging.WARNING)
    return logger
