# simulation.py

"""
Strategy runs over a scripted sequence of allocate/free events.

A session wraps one MemoryEngine together with the bookkeeping a driver
reports on: attempt counters, utilization samples and a human-readable
event log. Each session works on its own copies of the requests, so sessions
for different strategies never interfere.
"""

import copy
import logging
from collections import OrderedDict
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence

from engine import (
    AllocationResult,
    AllocatorConfig,
    FitStrategy,
    FragmentationStats,
    MemoryEngine,
    MergeEvent,
    ProcessRequest,
    ProcessStatus,
)

logger = logging.getLogger(__name__)

LARGE_PROCESS_ID = 9999


@dataclass
class SimulationPlan:
    """
    What to do at each of the four phases of a run.

    Attributes:
        initial_allocations (int): Processes to allocate in phase 1
        terminate_ids (Sequence[int]): Process IDs to terminate in phase 2
        terminate_all (bool): Terminate every running process in phase 2
        additional_allocations (int): Further processes to allocate in phase 3
        large_percent (Optional[float]): Phase 4 request size as a percentage
            of free memory, or None to skip the phase
        large_process_id (int): ID given to the phase 4 process
    """
    initial_allocations: int
    terminate_ids: Sequence[int] = ()
    terminate_all: bool = False
    additional_allocations: int = 0
    large_percent: Optional[float] = None
    large_process_id: int = LARGE_PROCESS_ID


@dataclass
class StrategySummary:
    strategy: str
    success_rate: float
    successes: int
    attempts: int
    fragmentation_percent: float
    free_block_count: int
    block_count: int
    peak_utilization: float
    average_utilization: float


class SimulationSession:
    """
    One strategy run over a private copy of the workload.

    Attributes:
        strategy (str): The fit strategy used by the engine
        engine (MemoryEngine): Owns the block table for this run
        requests (List[ProcessRequest]): This run's copies, in input order
        attempts, successes, failures (int): Allocation counters
        utilization_samples (List[float]): Utilization after each phase
        event_log (List[str]): What happened, for display
    """

    def __init__(self, strategy: str, capacity: int, requests: Iterable[ProcessRequest],
                 split_threshold: int = 10, max_blocks: int = 100):
        self.strategy = strategy
        self.config = AllocatorConfig(capacity, strategy, split_threshold, max_blocks)
        self.requests: List[ProcessRequest] = [copy.deepcopy(r) for r in requests]
        self.engine = MemoryEngine(self.config, self.requests)

        self.attempts = 0
        self.successes = 0
        self.failures = 0
        self.utilization_samples: List[float] = []
        self.event_log: List[str] = []

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def find(self, process_id: int) -> Optional[ProcessRequest]:
        return next((r for r in self.requests if r.id == process_id), None)

    def with_status(self, status: str) -> List[ProcessRequest]:
        return [r for r in self.requests if r.status == status]

    # =========================================================================
    # ALLOCATION
    # =========================================================================

    def allocate(self, request: ProcessRequest) -> AllocationResult:
        """
        Attempt one allocation and count it.

        Args:
            request (ProcessRequest): A request owned by this session

        Returns:
            AllocationResult: The engine's verdict
        """
        self.attempts += 1
        result = self.engine.allocate(request)

        if result.success:
            self.successes += 1
            block = result.block
            note = f" ({result.wasted} unused)" if result.wasted else ""
            self.event_log.append(
                f"Allocated P{request.id} ({request.requested_size}) at {block.start}, "
                f"block size {block.size}{note}"
            )
        else:
            self.failures += 1
            self.event_log.append(f"P{request.id} ({request.requested_size}) FAILED: {result.error}")
            logger.debug("%s: P%d rejected with %s", self.strategy, request.id, result.error)
        return result

    def allocate_next(self, count: int) -> List[AllocationResult]:
        """Allocate the next ``count`` unallocated processes in input order."""
        pending = self.with_status(ProcessStatus.NEW)
        count = max(0, min(count, len(pending)))
        return [self.allocate(r) for r in pending[:count]]

    def allocate_large(self, percent: float, process_id: int = LARGE_PROCESS_ID) -> AllocationResult:
        """
        Request a share of the currently free memory as one contiguous block.

        Args:
            percent (float): Share of free memory to request, 1 to 100
            process_id (int): Preferred ID for the new process; the next
                unused ID is taken if a process already has it

        Raises:
            ValueError: If percent is outside [1, 100]
        """
        if not 1 <= percent <= 100:
            raise ValueError("Percentage must be between 1 and 100")

        while self.find(process_id) is not None:
            process_id += 1

        size = max(1, int(self.engine.free_size * percent / 100))
        request = ProcessRequest(process_id, size)
        result = self.allocate(request)
        if result.success:
            self.requests.append(request)
        return result

    # =========================================================================
    # TERMINATION
    # =========================================================================

    def free(self, request: ProcessRequest) -> List[MergeEvent]:
        merges = self.engine.free(request)
        for m in merges:
            self.event_log.append(
                f"Coalesced blocks at {m.left_start} and {m.right_start} "
                f"({m.left_size} + {m.right_size} = {m.merged_size})"
            )
        return merges

    def terminate(self, process_ids: Iterable[int]) -> List[int]:
        """
        Terminate running processes by ID.

        Returns:
            List[int]: IDs that were not found or not running
        """
        missing = []
        for pid in process_ids:
            request = self.find(pid)
            if request is None or request.status != ProcessStatus.ACTIVE:
                missing.append(pid)
                self.event_log.append(f"P{pid} not found or not running")
                continue
            self.free(request)
            self.event_log.append(f"Terminated P{pid}")
        return missing

    def terminate_all(self) -> List[int]:
        running = [r.id for r in self.with_status(ProcessStatus.ACTIVE)]
        self.terminate(running)
        return running

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def sample_utilization(self) -> float:
        value = self.engine.utilization()
        self.utilization_samples.append(value)
        return value

    @property
    def peak_utilization(self) -> float:
        return max(self.utilization_samples, default=0.0)

    @property
    def average_utilization(self) -> float:
        if not self.utilization_samples:
            return 0.0
        return sum(self.utilization_samples) / len(self.utilization_samples)

    def stats(self) -> FragmentationStats:
        return replace(
            self.engine.analyze(),
            attempts=self.attempts,
            successes=self.successes,
            failures=self.failures,
            peak_utilization=self.peak_utilization,
            average_utilization=self.average_utilization,
        )

    def summary(self) -> StrategySummary:
        stats = self.stats()
        return StrategySummary(
            strategy=self.strategy,
            success_rate=stats.success_rate,
            successes=stats.successes,
            attempts=stats.attempts,
            fragmentation_percent=stats.fragmentation_percent,
            free_block_count=stats.free_block_count,
            block_count=stats.block_count,
            peak_utilization=stats.peak_utilization,
            average_utilization=stats.average_utilization,
        )

    # =========================================================================
    # SCRIPTED RUN
    # =========================================================================

    def run(self, plan: SimulationPlan) -> FragmentationStats:
        """
        Execute the four phases: initial allocation, termination, additional
        allocation and one large allocation. Utilization is sampled after each.
        """
        logger.info("%s: phase 1, allocating %d processes", self.strategy, plan.initial_allocations)
        self.allocate_next(max(1, plan.initial_allocations))
        self.sample_utilization()

        logger.info("%s: phase 2, terminating processes", self.strategy)
        if plan.terminate_all:
            self.terminate_all()
        else:
            missing = self.terminate(plan.terminate_ids)
            if missing:
                logger.warning("%s: could not terminate %s", self.strategy, missing)
        self.sample_utilization()

        logger.info("%s: phase 3, allocating %d more", self.strategy, plan.additional_allocations)
        self.allocate_next(plan.additional_allocations)
        self.sample_utilization()

        if plan.large_percent is not None:
            logger.info("%s: phase 4, large allocation of %.1f%% free memory", self.strategy, plan.large_percent)
            self.allocate_large(plan.large_percent, plan.large_process_id)
            self.sample_utilization()

        return self.stats()


def compare_strategies(capacity: int, requests: Sequence[ProcessRequest], plan: SimulationPlan,
                       strategies: Sequence[str] = FitStrategy.ALL,
                       **config) -> Dict[str, SimulationSession]:
    """
    Run the same plan under each strategy on independent copies of the requests.

    Returns:
        Dict[str, SimulationSession]: Finished sessions keyed by strategy, in run order
    """
    sessions = OrderedDict()
    for strategy in strategies:
        session = SimulationSession(strategy, capacity, requests, **config)
        session.run(plan)
        sessions[strategy] = session
    return sessions
