# utils.py

from typing import Dict, Iterable, List, Optional

FREE_COLOR = "#d3d3d3"


def get_color(free, owner_id=None):
    """Return a colour for a block; a process keeps the same pastel colour."""
    if free:
        return FREE_COLOR
    hue = ((owner_id or 0) * 137) % 360
    return f"hsl({hue}, 70%, 75%)"


def block_rows(blocks) -> List[Dict]:
    """Rows for the block list table."""
    return [
        {
            "start": b.start,
            "size": b.size,
            "status": "Free" if b.free else "Allocated",
            "process": "-" if b.owner_id is None else f"P{b.owner_id}",
        }
        for b in blocks
    ]


def process_rows(requests, engine) -> List[Dict]:
    rows = []
    for r in requests:
        start: Optional[int] = engine.assigned_start(r)
        rows.append({
            "process": f"P{r.id}",
            "size": r.requested_size,
            "status": r.status,
            "location": "N/A" if start is None else start,
        })
    return rows


def summary_rows(summaries: Iterable) -> List[Dict]:
    return [
        {
            "strategy": s.strategy,
            "success rate": f"{s.success_rate:.1f}%",
            "fragmentation": f"{s.fragmentation_percent:.1f}%",
            "free blocks": s.free_block_count,
            "blocks": s.block_count,
            "peak usage": f"{s.peak_utilization * 100:.1f}%",
        }
        for s in summaries
    ]
