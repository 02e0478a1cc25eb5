from __future__ import annotations

from typing import List

from .models import WindowStats
from .window import WindowBuffer


def volume_order(buffer: WindowBuffer) -> List[int]:
    """Positions of the window's volume entries, ascending by volume.

    Stable sort: equal volumes keep arrival order, so labeling is deterministic.
    Volumes are Python ints and may exceed UNSEEN_VOLUME for large sizes, so
    never-reused entries are ordered last explicitly.
    """
    opt = buffer.opt
    return sorted(range(len(opt)), key=lambda pos: (not opt[pos].has_next, opt[pos].volume))


def calculate_opt(buffer: WindowBuffer, cache_size: int) -> WindowStats:
    """Size-weighted offline-optimal admission for a closed window.

    Greedily admits the cheapest reuse volumes while the volume admitted so far
    stays within cache_size * window_size. The budget check happens before an
    entry is added, so the last admitted entry may overshoot it.
    Sets TraceEntry.admit in place and returns the window's hit statistics.
    """
    budget = cache_size * buffer.window_size
    current = 0
    hits = 0
    byte_hits = 0
    for pos in volume_order(buffer):
        if current > budget:
            break
        entry = buffer.opt[pos]
        if not entry.has_next:
            # only never-reused entries remain
            break
        tr = buffer.trace[entry.idx]
        tr.admit = True
        hits += 1
        byte_hits += tr.size
        current += entry.volume
    return WindowStats(
        window_size=buffer.window_size,
        cache_size=cache_size,
        hits=hits,
        byte_hits=byte_hits,
        byte_sum=buffer.byte_sum,
        admitted_volume=current,
    )
