from __future__ import annotations

import argparse
import os
from typing import Iterable, List

import pandas as pd
import yaml

from lfocache.config import load_config
from lfocache.opt.labeler import calculate_opt
from lfocache.opt.models import Request
from lfocache.opt.window import WindowBuffer
from lfocache.sim.trace import read_trace, requests_from_frame


def opt_windows(requests: Iterable[Request], cache_size: int, window_size: int) -> pd.DataFrame:
    """OPT hit statistics per closed window, without any learning."""
    buf = WindowBuffer(window_size)
    rows = []
    for req in requests:
        if buf.ingest(req):
            s = calculate_opt(buf, cache_size)
            rows.append((buf.window_id, s.hit_rate, s.byte_hit_rate))
            buf.reset()
    return pd.DataFrame(rows, columns=["window", "hit_rate", "byte_hit_rate"])


def sweep(trace: pd.DataFrame, cache_sizes: List[int], window_sizes: List[int]) -> pd.DataFrame:
    results = []
    for ws in window_sizes:
        for cs in cache_sizes:
            per_window = opt_windows(requests_from_frame(trace), cs, ws)
            results.append({
                'cache_size': int(cs),
                'window_size': int(ws),
                'windows': int(len(per_window)),
                'hit_rate': float(per_window['hit_rate'].mean()) if len(per_window) else 0.0,
                'byte_hit_rate': float(per_window['byte_hit_rate'].mean()) if len(per_window) else 0.0,
            })
    return pd.DataFrame(results)


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--trace', required=False, help='Trace file with "seq id size cost" records')
    ap.add_argument('--cache-sizes', type=int, nargs='+', default=[1 << 20, 1 << 24, 1 << 28])
    ap.add_argument('--window-sizes', type=int, nargs='+', default=[10_000, 100_000])
    ap.add_argument('--target-hit-rate', type=float, default=0.3)
    ap.add_argument('--out', default=None, help='Write the sweep table as CSV')
    ap.add_argument('--write-staged', default='configs/staged.yaml', help='Write chosen config to this YAML path')
    args = ap.parse_args()

    # Placeholder: generate synthetic if not provided
    from lfocache.sim.utils import synthetic_trace
    if args.trace:
        trace = pd.DataFrame([(r.seq, r.obj_id, r.size, r.cost) for r in read_trace(args.trace)],
                             columns=["seq", "id", "size", "cost"])
    else:
        trace = synthetic_trace(n_req=max(args.window_sizes) * 4)

    res = sweep(trace, args.cache_sizes, args.window_sizes)
    print(res.to_string(index=False))
    if args.out:
        res.to_csv(args.out, index=False)

    ok = res[res['hit_rate'] >= args.target_hit_rate].sort_values(['cache_size', 'window_size'])
    if ok.empty:
        print(f"\nNo swept cache size reaches hit_rate >= {args.target_hit_rate}")
        return
    top = ok.iloc[0]
    cfg = load_config()  # start from defaults/runtime; only override swept knobs
    cfg['cache_size'] = int(top['cache_size'])
    cfg['window_size'] = int(top['window_size'])
    os.makedirs(os.path.dirname(args.write_staged) or '.', exist_ok=True)
    with open(args.write_staged, 'w') as f:
        yaml.safe_dump(cfg, f, sort_keys=False)
    print(f"\nWrote staged config to {args.write_staged}")


if __name__ == '__main__':
    main()
