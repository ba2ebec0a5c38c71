# loader.py

"""
Workload files.

The first line holds the pool capacity. Every following line describes one
process as ``id size [arrival_time] [duration]``. Blank lines and lines
starting with ``#`` are ignored; malformed lines are skipped with a warning.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from engine import ProcessRequest

logger = logging.getLogger(__name__)

MAX_PROCESSES = 20


class WorkloadError(ValueError):
    """Raised when a workload cannot be used at all."""


class InvalidCapacityError(WorkloadError):
    pass


class EmptyWorkloadError(WorkloadError):
    pass


@dataclass
class ProcessDescriptor:
    id: int
    size: int
    arrival_time: int = 0
    duration: int = 10

    def to_request(self) -> ProcessRequest:
        return ProcessRequest(self.id, self.size)


@dataclass
class Workload:
    capacity: int
    processes: List[ProcessDescriptor] = field(default_factory=list)

    def requests(self) -> List[ProcessRequest]:
        """Fresh, unallocated requests; each call returns new objects."""
        return [p.to_request() for p in self.processes]


def _leading_ints(line: str, limit: int = 4) -> List[int]:
    values = []
    for token in line.split()[:limit]:
        try:
            values.append(int(token))
        except ValueError:
            break
    return values


def _parse_capacity(line: Optional[str]) -> int:
    values = _leading_ints(line or "", limit=1)
    if not values:
        raise InvalidCapacityError("First line must hold the memory capacity")
    if values[0] <= 0:
        raise InvalidCapacityError(f"Memory capacity must be positive, got {values[0]}")
    return values[0]


def parse_workload(lines: Iterable[str], max_processes: int = MAX_PROCESSES) -> Workload:
    lines = iter(lines)
    capacity = _parse_capacity(next(lines, None))
    workload = Workload(capacity)

    for line_num, line in enumerate(lines, start=2):
        if len(workload.processes) >= max_processes:
            logger.info("Process limit of %d reached, ignoring the rest of the input", max_processes)
            break

        text = line.strip()
        if not text or text.startswith("#"):
            continue

        values = _leading_ints(text)
        if len(values) < 2:
            logger.warning("Line %d has invalid format, skipping", line_num)
            continue

        pid, size = values[0], values[1]
        if size <= 0:
            logger.warning("Line %d has invalid process size (%d), skipping", line_num, size)
            continue

        workload.processes.append(ProcessDescriptor(pid, size, *values[2:]))

    if not workload.processes:
        raise EmptyWorkloadError("No valid processes found in input")
    return workload


def load_workload(path, max_processes: int = MAX_PROCESSES) -> Workload:
    with open(path, "r") as f:
        workload = parse_workload(f, max_processes)
    logger.debug("Loaded %d processes from %s (capacity %d)", len(workload.processes), path, workload.capacity)
    return workload
