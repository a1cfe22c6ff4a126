from __future__ import annotations

import contextlib
import gzip
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterator, TextIO

logger = logging.getLogger(__name__)

STDIO = "-"


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


@contextlib.contextmanager
def text_output(path: str | Path) -> Iterator[TextIO]:
    """Open ``path`` for text writing; ``-`` yields stdout, which is flushed but left open."""
    if str(path) == STDIO:
        try:
            yield sys.stdout
        finally:
            sys.stdout.flush()
        return
    fh = open_textmaybe_gzip(path, "wt")
    try:
        yield fh
    finally:
        fh.close()
    logger.debug("Wrote %s", path)


def write_json(path: str | Path, obj: Any) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)
