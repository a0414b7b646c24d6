"""
Run the Case Study Pipelines

Usage:
    # Run both pipelines on ./data
    python run_pipelines.py

    # Only the rollout A/B analysis, saving charts
    python run_pipelines.py --pipeline rollout --output-dir output

    # Forecasting with a different data directory
    python run_pipelines.py --pipeline forecasting --data-dir /path/to/data

    # Run quietly
    python run_pipelines.py --quiet
"""

import argparse
import sys

from adtech_ts import config
from adtech_ts.pipelines import (
    run_rollout_analysis,
    run_forecasting_analysis,
)


def run_all_pipelines(data_dir=None, output_dir=None, verbose: bool = True):
    """Run the forecasting and rollout pipelines; a failure in one does not stop the other."""
    results = {}
    failures = {}

    for name, runner in [('forecasting', run_forecasting_analysis), ('rollout', run_rollout_analysis)]:
        try:
            results[name] = runner(data_dir=data_dir, output_dir=output_dir, verbose=verbose)
            if verbose:
                print(f"\n✓ {name} pipeline completed successfully\n")
        except (FileNotFoundError, KeyError, ValueError, RuntimeError) as e:
            failures[name] = str(e)
            print(f"\n✗ {name} pipeline failed: {e}\n", file=sys.stderr)

    return results, failures


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Run the ad-tech time series case study pipelines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_pipelines.py
  python run_pipelines.py --pipeline rollout
  python run_pipelines.py --pipeline forecasting --output-dir output
        """
    )

    parser.add_argument(
        '--pipeline',
        choices=['all', 'rollout', 'forecasting'],
        default='all',
        help='Which pipeline to run (default: all)'
    )

    parser.add_argument(
        '--data-dir',
        default=None,
        help=f'Directory with the CSV files (default: {config.DATA_DIR})'
    )

    parser.add_argument(
        '--output-dir',
        default=None,
        help='Directory for PNG charts (default: no charts written)'
    )

    parser.add_argument(
        '--quiet',
        action='store_true',
        help='Suppress verbose output'
    )

    args = parser.parse_args()
    verbose = not args.quiet

    try:
        if args.pipeline == 'all':
            _, failures = run_all_pipelines(args.data_dir, args.output_dir, verbose=verbose)
            return 1 if failures else 0

        elif args.pipeline == 'rollout':
            run_rollout_analysis(data_dir=args.data_dir, output_dir=args.output_dir, verbose=verbose)

        elif args.pipeline == 'forecasting':
            run_forecasting_analysis(data_dir=args.data_dir, output_dir=args.output_dir, verbose=verbose)

        return 0

    except Exception as e:
        print(f"\nError: {e}", file=sys.stderr)
        if verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
