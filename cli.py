# cli.py

"""Batch comparison of the fit strategies over a workload file."""

import argparse
import logging
import sys

from engine import FitStrategy
from loader import WorkloadError, load_workload
from simulation import SimulationPlan, compare_strategies
from utils import block_rows, process_rows, summary_rows

logger = logging.getLogger(__name__)

RULE = "-" * 58


def parse_terminate(values):
    """``all`` terminates every running process, anything else is a list of IDs."""
    if values == ["all"]:
        return True, ()
    try:
        return False, tuple(int(v) for v in values)
    except ValueError:
        raise argparse.ArgumentTypeError("--terminate takes 'all' or process IDs") from None


def build_parser():
    p = argparse.ArgumentParser(
        prog="partition-sim",
        description="Compare first-, best- and worst-fit contiguous allocation.",
    )
    p.add_argument("workload", nargs="?", default="input.txt", help="workload file (default: input.txt)")
    p.add_argument("--strategy", choices=FitStrategy.ALL, action="append",
                   help="strategy to run; repeat for several (default: all three)")
    p.add_argument("--initial", type=int, default=None,
                   help="processes to allocate in phase 1 (default: all)")
    p.add_argument("--terminate", nargs="+", default=[], metavar="ID",
                   help="process IDs to terminate in phase 2, or 'all'")
    p.add_argument("--more", type=int, default=0, help="processes to allocate in phase 3")
    p.add_argument("--large-percent", type=float, default=None,
                   help="phase 4 request as a percentage of free memory (1-100)")
    p.add_argument("--split-threshold", type=int, default=10)
    p.add_argument("--max-blocks", type=int, default=100)
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def print_session(session):
    print(f"\n=== {session.strategy} Strategy Simulation ===")
    for line in session.event_log:
        print(f"  {line}")

    print("\nMemory Allocation Table:")
    print(f"{'ID':<8} {'State':<10} {'Size':<8} {'Location':<8}")
    print(RULE)
    for row in process_rows(session.requests, session.engine):
        print(f"{row['process']:<8} {row['status']:<10} {row['size']:<8} {row['location']!s:<8}")

    print("\nBlock List Details:")
    print(f"{'Start':<8} {'Size':<8} {'Status':<12} {'Process':<8}")
    print(RULE)
    for row in block_rows(session.engine.get_state()):
        print(f"{row['start']:<8} {row['size']:<8} {row['status']:<12} {row['process']:<8}")

    stats = session.stats()
    print(f"\n--- Final Results ({session.strategy}) ---")
    print(f"Success Rate: {stats.success_rate:.1f}% ({stats.successes}/{stats.attempts})")
    print(f"Peak Memory Usage: {stats.peak_utilization * 100:.1f}%")
    print(f"Average Memory Usage: {stats.average_utilization * 100:.1f}%")
    print(f"Fragmentation: {stats.fragmentation_percent:.1f}%")
    print(f"Average Free Block Size: {stats.average_free_block_size:.1f}")
    print(f"Final Block Count: {stats.block_count}")


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        terminate_all, terminate_ids = parse_terminate(args.terminate) if args.terminate else (False, ())
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))

    try:
        workload = load_workload(args.workload)
    except (OSError, WorkloadError) as e:
        print(f"Failed to read processes from input file: {e}", file=sys.stderr)
        return 1

    print(f"Input file: {args.workload}")
    print(f"Memory size: {workload.capacity}")
    print(f"Number of processes: {len(workload.processes)}\n")
    print(f"{'ProcessID':<10} {'Size':<10}")
    print(RULE)
    for proc in workload.processes:
        print(f"{proc.id:<10} {proc.size:<10}")

    initial = len(workload.processes) if args.initial is None else args.initial
    plan = SimulationPlan(
        initial_allocations=initial,
        terminate_ids=terminate_ids,
        terminate_all=terminate_all,
        additional_allocations=args.more,
        large_percent=args.large_percent,
    )
    logger.debug("Running plan %s", plan)

    try:
        sessions = compare_strategies(
            workload.capacity,
            workload.requests(),
            plan,
            strategies=args.strategy or FitStrategy.ALL,
            split_threshold=args.split_threshold,
            max_blocks=args.max_blocks,
        )
    except ValueError as e:
        parser.error(str(e))

    for session in sessions.values():
        print_session(session)

    print("\n=== Summary of Allocation Methods ===")
    print(f"{'Strategy':<10} {'Success Rate':<15} {'Fragmentation':<15} {'Free Blocks':<12}")
    print(RULE)
    for row in summary_rows(s.summary() for s in sessions.values()):
        print(f"{row['strategy']:<10} {row['success rate']:<15} {row['fragmentation']:<15} {row['free blocks']:<12}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
