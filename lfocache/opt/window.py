from __future__ import annotations

from typing import Dict, List, Tuple

from .models import Request, TraceEntry, VolumeEntry


class WindowBuffer:
    """Accumulates one window of requests and their reuse volumes.

    A request's volume is set when a later request in the same window carries the
    same (id, size) key: (later_idx - idx) * size. Requests with size <= 0 never
    close a reuse pair.
    """

    def __init__(self, window_size: int):
        if window_size <= 0:
            raise ValueError(f"window_size must be positive, got {window_size}")
        self.window_size = window_size
        self.opt: List[VolumeEntry] = []
        self.trace: List[TraceEntry] = []
        self.last_seen: Dict[Tuple[int, int], int] = {}
        self.byte_sum = 0
        self.last_seq = 0

    def __len__(self) -> int:
        return len(self.trace)

    @property
    def window_id(self) -> int:
        return self.last_seq // self.window_size

    def ingest(self, req: Request) -> bool:
        """Buffer a request. Returns True when it is the last one of its window.

        Sequence numbers must start at 1 and be contiguous; a request whose slot
        in the window does not match the number already buffered raises ValueError.
        """
        idx = (req.seq - 1) % self.window_size
        if idx != len(self.trace):
            raise ValueError(
                f"request seq {req.seq} maps to window slot {idx}, expected {len(self.trace)}"
            )
        key = req.key
        if req.size > 0 and key in self.last_seen:
            prev = self.last_seen[key]
            entry = self.opt[prev]
            entry.has_next = True
            entry.volume = (idx - prev) * req.size
        self.byte_sum += req.size
        self.last_seen[key] = idx
        self.opt.append(VolumeEntry(idx))
        self.trace.append(TraceEntry(req.obj_id, req.size, req.cost))
        self.last_seq = req.seq
        return req.seq % self.window_size == 0

    def reset(self):
        self.opt = []
        self.trace = []
        self.last_seen.clear()
        self.byte_sum = 0

