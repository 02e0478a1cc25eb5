from __future__ import annotations

import argparse
import shutil
import os

from lfocache.config import load_config_typed


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument('--staged', default='configs/staged.yaml')
    ap.add_argument('--runtime', default='configs/runtime.yaml')
    args = ap.parse_args()
    if not os.path.exists(args.staged):
        print('No staged config found:', args.staged)
        return
    # Refuse to promote a config that does not validate
    cfg = load_config_typed(runtime_path=args.staged)
    os.makedirs(os.path.dirname(args.runtime) or '.', exist_ok=True)
    shutil.copy2(args.staged, args.runtime)
    print('Promoted', args.staged, '->', args.runtime, f'(cache_size={cfg.cache_size} window_size={cfg.window_size})')


if __name__ == '__main__':
    main()
