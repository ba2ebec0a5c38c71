# engine.py

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional


class FitStrategy:
    """Placement policies for choosing a free block."""
    FIRST = "First-Fit"
    BEST = "Best-Fit"
    WORST = "Worst-Fit"
    ALL = (FIRST, BEST, WORST)


class ProcessStatus:
    NEW = "New"
    ACTIVE = "Active"
    DONE = "Done"


class AllocationError:
    """Reasons an allocation can be rejected. All of them leave state untouched."""
    INSUFFICIENT_TOTAL_FREE = "InsufficientTotalFree"
    NO_FITTING_BLOCK = "NoFittingBlock"
    TABLE_FULL = "TableFull"
    ID_IN_USE = "IdInUse"


class TableFullError(Exception):
    """Raised when a split would exceed the block table's capacity."""


# -----------------------------
# Data model
# -----------------------------

@dataclass
class MemoryBlock:
    start: int
    size: int
    free: bool = True
    owner_id: Optional[int] = None

    def __repr__(self):
        state = "F" if self.free else "A"
        return f"[{state}|{self.start}|{self.size}]"


@dataclass
class ProcessRequest:
    """
    A process asking for a contiguous region.

    ``block_ref`` is a position in the block table, not ownership. It is
    renumbered by the engine whenever a split or merge shifts the blocks before it.
    """
    id: int
    requested_size: int
    status: str = ProcessStatus.NEW
    block_ref: Optional[int] = None

    def __post_init__(self):
        if self.requested_size <= 0:
            raise ValueError(f"P{self.id}: requested size must be positive")


@dataclass
class AllocatorConfig:
    pool_capacity: int
    strategy: str = FitStrategy.FIRST
    split_threshold: int = 10
    max_blocks: int = 100

    def __post_init__(self):
        if self.pool_capacity <= 0:
            raise ValueError("Pool capacity must be positive")
        if self.split_threshold < 0:
            raise ValueError("Split threshold cannot be negative")
        if self.max_blocks < 1:
            raise ValueError("Block table must hold at least one block")
        if self.strategy not in FitStrategy.ALL:
            raise ValueError(f"Unknown strategy: {self.strategy}")


@dataclass
class AllocationResult:
    success: bool
    request_id: int
    error: Optional[str] = None
    block_index: Optional[int] = None
    block: Optional[MemoryBlock] = None
    split: bool = False
    requested_size: int = 0

    @property
    def wasted(self) -> int:
        """Internal fragmentation: units handed out beyond the request."""
        if self.block is None:
            return 0
        return self.block.size - self.requested_size


@dataclass
class MergeEvent:
    index: int
    left_start: int
    left_size: int
    right_start: int
    right_size: int

    @property
    def removed_index(self) -> int:
        return self.index + 1

    @property
    def merged_size(self) -> int:
        return self.left_size + self.right_size


@dataclass
class FragmentationStats:
    attempts: int = 0
    successes: int = 0
    failures: int = 0
    free_block_count: int = 0
    fragmentation_percent: float = 0.0
    average_free_block_size: float = 0.0
    peak_utilization: float = 0.0
    average_utilization: float = 0.0
    largest_free_block: int = 0
    free_size: int = 0
    block_count: int = 0

    @property
    def success_rate(self) -> float:
        if self.attempts == 0:
            return 0.0
        return self.successes / self.attempts * 100.0


# -----------------------------
# Block table
# -----------------------------

class BlockTable:
    """Ordered blocks covering ``[0, capacity)`` without gaps or overlaps."""

    def __init__(self, capacity: int, max_blocks: int = 100):
        self.capacity = capacity
        self.max_blocks = max_blocks
        self._blocks: List[MemoryBlock] = [MemoryBlock(0, capacity)]

    def count(self) -> int:
        return len(self._blocks)

    def at(self, index: int) -> MemoryBlock:
        return self._blocks[index]

    def __len__(self):
        return len(self._blocks)

    def __iter__(self) -> Iterator[MemoryBlock]:
        return iter(self._blocks)

    def __repr__(self):
        return "".join(repr(b) for b in self._blocks)

    def split_at(self, index: int, head_size: int) -> MemoryBlock:
        """
        Shrink free block ``index`` to ``head_size`` and insert the remainder
        as a new free block right after it. Returns the new tail block.
        """
        block = self._blocks[index]
        if not block.free:
            raise ValueError(f"Block {index} is allocated and cannot be split")
        if not 0 < head_size < block.size:
            raise ValueError(f"Cannot split block of size {block.size} at {head_size}")
        if len(self._blocks) >= self.max_blocks:
            raise TableFullError(f"Block table is full ({self.max_blocks} blocks)")

        tail = MemoryBlock(block.start + head_size, block.size - head_size)
        block.size = head_size
        self._blocks.insert(index + 1, tail)
        return tail

    def remove_merge_at(self, index: int) -> int:
        """Fold block ``index + 1`` into block ``index``. Returns the removed position."""
        if not 0 <= index < len(self._blocks) - 1:
            raise IndexError(f"No adjacent pair at position {index}")
        left, right = self._blocks[index], self._blocks[index + 1]
        if not (left.free and right.free):
            raise ValueError(f"Blocks {index} and {index + 1} are not both free")

        left.size += right.size
        del self._blocks[index + 1]
        return index + 1

    def free_blocks(self) -> List[MemoryBlock]:
        return [b for b in self._blocks if b.free]

    def total_free(self) -> int:
        return sum(b.size for b in self._blocks if b.free)

    def largest_free(self) -> int:
        return max((b.size for b in self._blocks if b.free), default=0)

    def validate(self):
        """Raise ValueError if the table breaks any of its invariants."""
        expected_start = 0
        owners = set()
        for i, block in enumerate(self._blocks):
            if block.start != expected_start:
                raise ValueError(f"Block {i} starts at {block.start}, expected {expected_start}")
            if block.size <= 0:
                raise ValueError(f"Block {i} has non-positive size {block.size}")
            if block.free == (block.owner_id is not None):
                raise ValueError(f"Block {i} owner does not match its free flag")
            if block.owner_id is not None:
                if block.owner_id in owners:
                    raise ValueError(f"P{block.owner_id} owns more than one block")
                owners.add(block.owner_id)
            expected_start += block.size
        if expected_start != self.capacity:
            raise ValueError(f"Blocks cover {expected_start} units, pool has {self.capacity}")


# -----------------------------
# Fit strategies
# -----------------------------

def first_fit(table: BlockTable, size: int) -> Optional[int]:
    for i, block in enumerate(table):
        if block.free and block.size >= size:
            return i
    return None


def best_fit(table: BlockTable, size: int) -> Optional[int]:
    best_index = None
    best_leftover = None

    for i, block in enumerate(table):
        if block.free and block.size >= size:
            leftover = block.size - size
            if best_leftover is None or leftover < best_leftover:
                best_leftover = leftover
                best_index = i
    return best_index


def worst_fit(table: BlockTable, size: int) -> Optional[int]:
    worst_index = None
    worst_leftover = -1

    for i, block in enumerate(table):
        if block.free and block.size >= size:
            leftover = block.size - size
            if leftover > worst_leftover:
                worst_leftover = leftover
                worst_index = i
    return worst_index


FIT_FUNCTIONS = {
    FitStrategy.FIRST: first_fit,
    FitStrategy.BEST: best_fit,
    FitStrategy.WORST: worst_fit,
}


def find_block(table: BlockTable, size: int, strategy: str) -> Optional[int]:
    try:
        fit = FIT_FUNCTIONS[strategy]
    except KeyError:
        raise ValueError(f"Unknown strategy: {strategy}") from None
    return fit(table, size)


# -----------------------------
# Fragmentation metrics
# -----------------------------

def analyze(table: BlockTable, free_size: int) -> FragmentationStats:
    """
    Point-in-time fragmentation snapshot.

    ``fragmentation_percent`` is the share of free memory lying outside the
    largest free block; it is 0 with fewer than two free blocks.
    """
    free_sizes = [b.size for b in table if b.free]
    free_count = len(free_sizes)
    largest = max(free_sizes, default=0)

    average = sum(free_sizes) / free_count if free_count else 0.0

    if free_size <= 0 or free_count <= 1:
        percent = 0.0
    else:
        percent = (free_size - largest) / free_size * 100.0

    return FragmentationStats(
        free_block_count=free_count,
        fragmentation_percent=percent,
        average_free_block_size=average,
        largest_free_block=largest,
        free_size=free_size,
        block_count=table.count(),
    )


# -----------------------------
# Engine
# -----------------------------

class MemoryEngine:
    """Allocates and reclaims contiguous regions of a single pool."""

    def __init__(self, config: AllocatorConfig, requests: Iterable[ProcessRequest] = ()):
        self.config = config
        self.requests: List[ProcessRequest] = []
        self.reset()
        self.track(requests)

    def reset(self):
        self.table = BlockTable(self.config.pool_capacity, self.config.max_blocks)
        self.free_size = self.config.pool_capacity
        self.requests = []

    def track(self, requests: Iterable[ProcessRequest]):
        """Register requests whose block references must follow splits and merges."""
        for request in requests:
            if not any(r is request for r in self.requests):
                self.requests.append(request)

    # -----------------------------
    # Allocate
    # -----------------------------
    def allocate(self, request: ProcessRequest) -> AllocationResult:
        self.track([request])
        size = request.requested_size

        if any(b.owner_id == request.id for b in self.table):
            return self._reject(request, AllocationError.ID_IN_USE)

        if size > self.free_size:
            return self._reject(request, AllocationError.INSUFFICIENT_TOTAL_FREE)

        index = find_block(self.table, size, self.config.strategy)
        if index is None:
            return self._reject(request, AllocationError.NO_FITTING_BLOCK)

        block = self.table.at(index)
        split = False
        # Leftovers at or below the threshold stay inside the allocation
        if block.size - size > self.config.split_threshold:
            try:
                self.table.split_at(index, size)
            except TableFullError:
                return self._reject(request, AllocationError.TABLE_FULL)
            self._renumber(index, +1)
            split = True

        block.free = False
        block.owner_id = request.id
        request.status = ProcessStatus.ACTIVE
        request.block_ref = index
        self.free_size -= size

        return AllocationResult(
            success=True,
            request_id=request.id,
            block_index=index,
            block=block,
            split=split,
            requested_size=size,
        )

    def _reject(self, request, error):
        return AllocationResult(
            success=False,
            request_id=request.id,
            error=error,
            requested_size=request.requested_size,
        )

    # -----------------------------
    # Free / coalesce
    # -----------------------------
    def free(self, request: ProcessRequest) -> List[MergeEvent]:
        """
        Release the request's block and coalesce free neighbours until no two
        adjacent blocks are free. Freeing an unallocated request is a no-op.
        Returns the merges performed, in order.
        """
        if request.block_ref is None:
            return []

        block = self.table.at(request.block_ref)
        if block.owner_id != request.id:
            raise ValueError(
                f"P{request.id} refers to block {request.block_ref}, owned by {block.owner_id}"
            )
        block.free = True
        block.owner_id = None
        self.free_size += block.size

        request.status = ProcessStatus.DONE
        request.block_ref = None

        return self._coalesce()

    def _coalesce(self) -> List[MergeEvent]:
        events = []
        merged = True
        while merged:
            merged = False
            for i in range(self.table.count() - 1):
                left, right = self.table.at(i), self.table.at(i + 1)
                if left.free and right.free:
                    events.append(MergeEvent(i, left.start, left.size, right.start, right.size))
                    removed = self.table.remove_merge_at(i)
                    self._renumber(removed, -1)
                    merged = True
                    break
        return events

    def _renumber(self, position: int, delta: int):
        """Shift every tracked reference past ``position`` by ``delta``."""
        for request in self.requests:
            if request.block_ref is not None and request.block_ref > position:
                request.block_ref += delta

    # -----------------------------
    # Queries
    # -----------------------------
    def get_state(self) -> List[MemoryBlock]:
        return list(self.table)

    def assigned_start(self, request: ProcessRequest) -> Optional[int]:
        if request.block_ref is None:
            return None
        return self.table.at(request.block_ref).start

    def used_size(self) -> int:
        # free_size regains whole blocks on release, so it can exceed the pool
        return max(0, self.config.pool_capacity - self.free_size)

    def utilization(self) -> float:
        return self.used_size() / self.config.pool_capacity

    def analyze(self) -> FragmentationStats:
        return analyze(self.table, self.free_size)
