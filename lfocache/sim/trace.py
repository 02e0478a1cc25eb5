from __future__ import annotations

import logging
import os
from typing import Iterable, Iterator

import pandas as pd

from lfocache.opt.models import Request

logger = logging.getLogger(__name__)

TRACE_COLUMNS = ["seq", "id", "size", "cost"]


def _tokens(lines: Iterable[str]) -> Iterator[str]:
    for line in lines:
        yield from line.split()


def parse_trace(lines: Iterable[str]) -> Iterator[Request]:
    """Yield requests from whitespace-separated `seq id size cost` records.

    Records may span lines. The first record that does not parse ends the trace.
    """
    tokens = _tokens(lines)
    while True:
        fields = []
        for tok in tokens:
            fields.append(tok)
            if len(fields) == 4:
                break
        if len(fields) < 4:
            if fields:
                logger.info("trace ends with an incomplete record: %s", fields)
            return
        try:
            req = Request(int(fields[0]), int(fields[1]), int(fields[2]), float(fields[3]))
        except ValueError:
            logger.info("trace ends at malformed record: %s", fields)
            return
        yield req


def read_trace(path: str) -> Iterator[Request]:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Trace file not found: {path}")

    def _gen() -> Iterator[Request]:
        with open(path, "r") as f:
            yield from parse_trace(f)

    return _gen()


def requests_from_frame(df: pd.DataFrame) -> Iterator[Request]:
    for r in df[TRACE_COLUMNS].itertuples(index=False):
        yield Request(int(r.seq), int(r.id), int(r.size), float(r.cost))


def write_trace(df: pd.DataFrame, path: str) -> None:
    df[TRACE_COLUMNS].to_csv(path, sep=" ", header=False, index=False)
