#!/usr/bin/env python
"""
SSEDETECT Driver - Slow Slip Event Detector

Main entry point for the SSEDETECT package:

1. Loads daily station positions from a long-format CSV file
2. Scores each station-day with a moving-window slope
3. Detects per-station events, corroborates them with neighbors and
   catalogs network-wide events
4. Estimates each station's displacement for each cataloged event
5. Writes the catalog as CSV/JSON and optionally plots it

Usage:
    python sse_driver.py --input positions.csv --window 15 --prop-thresh 0.1 \\
        --output results

    # options from a YAML file (CLI flags override file values):
    python sse_driver.py --input positions.csv --config sse.yaml --plot
"""

import os
import sys
import logging
import argparse

from ssedetect.core.config import from_mapping, read_config_file
from ssedetect.core.errors import SSEError
from ssedetect.core.pipeline import detect_sse
from ssedetect.core.slopes import SlopeScoreCache
from ssedetect.io.timeseries import load_timeseries
from ssedetect.io.catalog import save_catalog

# Module-level logger
logger = logging.getLogger(__name__)

# argparse dest -> DetectionConfig field
CONFIG_OPTIONS = {
    'window': 'window_half_width',
    'prop_thresh': 'prop_thresh',
    'min_stations': 'min_stations',
    'score_sign': 'score_sign',
    'min_duration': 'min_duration',
    'neighbor_distance': 'neighbor_distance',
    'neighbor_fraction': 'neighbor_fraction',
    'reverse_neighbor': 'reverse_neighbor',
    'reverse_neighbor_fraction': 'reverse_neighbor_fraction',
    'component': 'detection_component',
}


def build_parser():
    parser = argparse.ArgumentParser(
        description='SSEDETECT - Slow Slip Event Detector',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python sse_driver.py -i positions.csv -w 15 --prop-thresh 0.1 -o results

  python sse_driver.py -i positions.csv --config sse.yaml --plot
        """
    )
    parser.add_argument('--config', default=None,
                        help='Path to YAML config file containing options (overridden by CLI args)')

    # Required arguments
    parser.add_argument('--input', '-i', required=True,
                        help='CSV with columns station, lat, lon, date, east, east_unc, north, north_unc')

    # Detection parameters
    parser.add_argument('--window', '-w', type=int, default=None,
                        help='Half-width of the slope window in days')
    parser.add_argument('--prop-thresh', type=float, default=None,
                        help='Proportion of negative slope scores flagged as anomalous')
    parser.add_argument('--min-stations', type=int, default=None,
                        help='Minimum number of stations felt by a cataloged event (default: 10)')
    parser.add_argument('--score-sign', type=float, default=None,
                        help='Multiplier applied to slope scores before thresholding (default: 1)')
    parser.add_argument('--min-duration', type=int, default=None,
                        help='Minimum per-station event duration in days (default: 10)')
    parser.add_argument('--neighbor-distance', type=float, default=None,
                        help='Neighbor distance threshold in km (default: 55)')
    parser.add_argument('--neighbor-fraction', type=float, default=None,
                        help='Fraction of neighbors that must corroborate an event (default: 0.1)')
    parser.add_argument('--reverse-neighbor', action='store_true', default=None,
                        help='Assign dates from the nearest felt neighbor to neighbor-felt stations')
    parser.add_argument('--reverse-neighbor-fraction', type=float, default=None,
                        help='Fraction of felt neighbors marking a station neighbor-felt (default: 1/3)')
    parser.add_argument('--component', choices=['east', 'north'], default=None,
                        help='Position component whose scores drive detection (default: east)')

    # Output
    parser.add_argument('--output', '-o', default='results',
                        help='Output directory for catalog files')
    parser.add_argument('--plot', action='store_true', default=False,
                        help='Save a catalog overview figure')
    parser.add_argument('--plot-stations', action='store_true', default=False,
                        help='Also save one time-series figure per station')
    parser.add_argument('--plot-dir', default='plots',
                        help='Directory to save figures (default: ./plots)')

    # Logging
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output')
    return parser


def config_from_args(args, file_options=None):
    """Merge YAML options with CLI flags (CLI wins) into a DetectionConfig."""
    options = dict(file_options or {})
    for dest, name in CONFIG_OPTIONS.items():
        value = getattr(args, dest, None)
        if value is not None:
            options[name] = value
    return from_mapping(options)


def main(argv=None):
    """Main entry point with argument parsing."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO,
                        format='%(asctime)s %(name)s %(levelname)s: %(message)s')
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        file_options = read_config_file(args.config) if args.config else {}
        config = config_from_args(args, file_options)
    except (SSEError, OSError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    logger.info("=" * 60)
    logger.info("SSEDETECT - Slow Slip Event Detection")
    logger.info("=" * 60)

    try:
        stations = load_timeseries(args.input)
        catalog = detect_sse(stations, config, cache=SlopeScoreCache())
    except SSEError as e:
        logger.error(f"Detection failed: {e}")
        return 1

    paths = save_catalog(catalog, args.output)
    for kind, path in paths.items():
        logger.info(f"Wrote {kind}: {path}")

    if args.plot or args.plot_stations:
        from ssedetect.visualization import plot_catalog, plot_station_timeseries
        outfile = plot_catalog(catalog, os.path.join(args.plot_dir, 'catalog.png'))
        logger.info(f"Wrote catalog figure: {outfile}")
        if args.plot_stations:
            for name in stations.names:
                plot_station_timeseries(catalog, stations, name, outdir=args.plot_dir)
            logger.info(f"Wrote {len(stations.names)} station figures to {args.plot_dir}")

    logger.info(f"Cataloged {catalog.n_events} events")
    return 0


if __name__ == '__main__':
    sys.exit(main())
