#!/usr/bin/env python3
"""
Pipeline wrapper for running SSEDETECT over several slope window widths.

Usage:
  PYTHONPATH=. python3 scripts/run_pipeline.py --config configs/sweep.json

This script loads a JSON configuration file and then:
  - loads the station time series once
  - runs detection for every window half-width listed under "windows",
    sharing one slope-score cache across runs
  - writes each run's catalog to <outdir>/np<window>_*.csv/json
  - optionally saves a catalog overview figure per run

Config keys:
  input      CSV time series (required)
  outdir     output directory (default ./results)
  windows    list of window half-widths in days (required)
  detection  mapping of DetectionConfig options shared by all runs
  plot       save figures (default false)

CLI Flags:
  --config CONFIG    Path to JSON config (required)
  --dry-run          Print the planned runs, but do not run them
"""
import argparse
import json
import logging
import os
import sys

# Ensure the package dir is on the import path so we can import ssedetect.*
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ssedetect.core.config import from_mapping
from ssedetect.core.errors import SSEError
from ssedetect.core.pipeline import detect_sse
from ssedetect.core.slopes import SlopeScoreCache
from ssedetect.io.catalog import save_catalog
from ssedetect.io.timeseries import load_timeseries

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description='Run SSEDETECT for several slope window widths')
    parser.add_argument('--config', required=True, help='Path to JSON config')
    parser.add_argument('--dry-run', action='store_true', help='Print planned runs, but do not run them')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output')
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    with open(args.config) as fh:
        cfg = json.load(fh)
    outdir = cfg.get('outdir', './results')
    windows = [int(w) for w in cfg['windows']]
    detection = dict(cfg.get('detection', {}))

    # validate every run up front so a bad window fails before any work
    configs = []
    for w in windows:
        options = dict(detection)
        options['window_half_width'] = w
        configs.append(from_mapping(options))

    if args.dry_run:
        for c in configs:
            print('Planned run:', c.to_dict())
        return 0

    stations = load_timeseries(cfg['input'])
    cache = SlopeScoreCache()

    for config in configs:
        prefix = f'np{config.window_half_width}_'
        try:
            catalog = detect_sse(stations, config, cache=cache)
        except SSEError as e:
            logger.error(f"Window {config.window_half_width}: detection failed: {e}")
            continue
        save_catalog(catalog, outdir, prefix=prefix)
        if cfg.get('plot', False):
            from ssedetect.visualization import plot_catalog
            plot_catalog(catalog, os.path.join(outdir, f'{prefix}catalog.png'))
        print(f'Window {config.window_half_width}: {catalog.n_events} events')

    print('Pipeline completed')
    return 0


if __name__ == '__main__':
    sys.exit(main())
