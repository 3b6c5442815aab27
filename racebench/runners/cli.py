"""Command line entry point: run echo servers or race clients"""

import argparse
import logging
import sys
import traceback
from pathlib import Path

from racebench.core.config import RunConfiguration
from racebench.core.errors import RaceBenchError
from racebench.core.harness import Orchestrator


log = logging.getLogger('racebench')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Race RPyC, HTTP and WebSocket round trips with identical payloads",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        'mode',
        choices=['server', 'client'],
        nargs='?',
        default='server',
        help='Start echo servers, or race clients against running servers'
    )

    # Unset options fall back to NUM_SPINUPS, START_PORT, ADDRESS, DATA_SIZE, RACE_TIMEOUT
    parser.add_argument(
        '--instances', '-n',
        type=int,
        help='Number of server sets / clients to spin up (env NUM_SPINUPS, default 1)'
    )
    parser.add_argument(
        '--start-port',
        type=int,
        help='First port; instances use up to 3 * instances ports above it (env START_PORT, default 8000)'
    )
    parser.add_argument(
        '--address',
        help='Listening / sending address (env ADDRESS, default 0.0.0.0)'
    )
    parser.add_argument(
        '--data-size',
        choices=['0', '1', '10', '100'],
        help='Payload size in KB, 0 is a short string (env DATA_SIZE, default 0)'
    )
    parser.add_argument(
        '--timeout',
        type=float,
        help='Per-operation timeout in seconds (env RACE_TIMEOUT, default 30)'
    )

    # Output options
    parser.add_argument(
        '--output', '-o',
        help='Output file for JSON results'
    )
    parser.add_argument(
        '--csv',
        help='Output file for the raw per-instance samples'
    )
    parser.add_argument(
        '--graphs',
        help='Directory to write comparison graphs to'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress summary output'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Log every instance timing'
    )

    return parser


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s.%(msecs)03d - %(levelname)-7s - %(name)-15s - %(message)s',
        datefmt='%H:%M:%S',
    )


def run_client(orchestrator: Orchestrator, args) -> int:
    report = orchestrator.run()

    if not args.quiet:
        report.print_summary()

    if args.output:
        output_path = report.save(args.output)
        print(f"\nResults saved to: {output_path}")

    if args.csv:
        csv_path = report.to_csv(args.csv)
        print(f"Samples saved to: {csv_path}")

    if args.graphs:
        from racebench.analysis.graphs import generate_graphs
        for graph in generate_graphs(report.to_dict(), Path(args.graphs)):
            print(f"Graph saved to: {graph}")

    return 0


def main(argv=None):
    """Main entry point for the racebench command"""
    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = RunConfiguration.from_env(
            instance_count=args.instances,
            base_port=args.start_port,
            bind_address=args.address,
            payload_size=args.data_size,
            timeout=args.timeout,
        )
        orchestrator = Orchestrator(config)

        if args.mode == 'client':
            return run_client(orchestrator, args)

        orchestrator.serve_forever()
        return 0

    except KeyboardInterrupt:
        print("\n\nInterrupted by user")
        return 130
    except RaceBenchError as e:
        log.error(f"[{e.kind}] {e}")
        return 1
    except Exception as e:
        print(f"\nError running races: {e}", file=sys.stderr)
        traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
