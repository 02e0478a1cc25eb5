from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Optional

from lfocache.config import UPDATE_MODES, load_config_typed
from lfocache.learner.base import LearnerError, get_learner
from lfocache.sim.orchestrator import run_trace, reports_frame
from lfocache.sim.trace import read_trace, requests_from_frame, write_trace
from lfocache.sim.utils import synthetic_trace
from lfocache.telemetry.logger import TelemetryLogger
from lfocache.telemetry.results import ResultWriter, default_result_path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description="Replay a trace with windowed OPT labels and an online admission model")
    ap.add_argument('trace', nargs='?', help='Trace file with "seq id size cost" records')
    ap.add_argument('cache_size', nargs='?', type=int, help='Cache capacity in the unit of request sizes')
    ap.add_argument('window_size', nargs='?', type=int, help='Requests per window')
    ap.add_argument('cutoff', nargs='?', type=float, help='Decision threshold for error evaluation')
    ap.add_argument('--cache-size', dest='cache_size_opt', type=int, help='Same as the cache_size positional')
    ap.add_argument('--window-size', dest='window_size_opt', type=int, help='Same as the window_size positional')
    ap.add_argument('--cutoff', dest='cutoff_opt', type=float, help='Same as the cutoff positional')
    ap.add_argument('--config', default='configs/runtime.yaml', help='Runtime YAML config')
    ap.add_argument('--staged', default=None, help='Staged YAML config merged below the runtime one')
    ap.add_argument('--hist-features', type=int, help='Gap features kept per object')
    ap.add_argument('--update', choices=UPDATE_MODES, help='Model update between windows')
    ap.add_argument('--num-threads', type=int, help='Learner worker threads')
    ap.add_argument('--result-file', help='Result stream path (default: <trace>.result.<unix-ts>)')
    ap.add_argument('--telemetry-dir', help='Append per-window CSV telemetry under this directory')
    ap.add_argument('--synthetic', type=int, metavar='N', help='Generate an N-request synthetic trace instead of reading one')
    ap.add_argument('--synthetic-objects', type=int, default=1000)
    ap.add_argument('--seed', type=int, default=42)
    ap.add_argument('-v', '--verbose', action='count', default=0)
    args = ap.parse_args(argv)
    for name in ('cache_size', 'window_size', 'cutoff'):
        if getattr(args, name) is None:
            setattr(args, name, getattr(args, name + '_opt'))
    if args.trace is None and args.synthetic is None:
        ap.error('a trace path or --synthetic is required')
    return args


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING - 10 * min(args.verbose, 2),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    cfg = load_config_typed(runtime_path=args.config, staged_path=args.staged)
    # Apply CLI overrides
    if args.cache_size is not None:
        cfg.cache_size = int(args.cache_size)
    if args.window_size is not None:
        cfg.window_size = int(args.window_size)
    if args.cutoff is not None:
        cfg.cutoff = float(args.cutoff)
    if args.hist_features is not None:
        cfg.hist_features = int(args.hist_features)
    if args.update is not None:
        cfg.model_update = args.update
    if args.num_threads is not None:
        cfg.learner.params['num_threads'] = int(args.num_threads)
    if args.telemetry_dir is not None:
        cfg.telemetry.enabled = True
        cfg.telemetry.base_dir = args.telemetry_dir
    cfg.validate()

    if args.synthetic is not None:
        df = synthetic_trace(n_req=args.synthetic, n_objects=args.synthetic_objects, seed=args.seed)
        trace_path = args.trace or f"synthetic-{args.synthetic}.tr"
        if args.trace:
            write_trace(df, args.trace)
        requests = requests_from_frame(df)
    else:
        trace_path = args.trace
        requests = read_trace(trace_path)

    telemetry = TelemetryLogger(cfg.telemetry.base_dir) if cfg.telemetry.enabled else None
    learner = get_learner('lightgbm', cfg.learner.params)

    with ResultWriter.open(args.result_file or default_result_path(trace_path)) as writer:
        writer.write_header(os.path.basename(trace_path), cfg)

        def on_window(report):
            writer.write_window(report)
            if telemetry is not None:
                telemetry.log_window(report)

        try:
            _, reports = run_trace(requests, learner, cfg, on_window=on_window, on_labeled=writer.write_labeled)
        except (LearnerError, ValueError) as e:
            print(f"Aborting: {e}", file=sys.stderr)
            return 1

    if not reports:
        print("No complete window in trace.")
        return 0
    summary = reports_frame(reports)
    print(f"Processed {len(reports)} windows of {cfg.window_size} requests (cache_size={cfg.cache_size})")
    show_cols = [c for c in ["window", "hit_rate", "byte_hit_rate", "fp_rate", "fn_rate", "negative_capacity", "update"] if c in summary.columns]
    print(summary[show_cols].to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
