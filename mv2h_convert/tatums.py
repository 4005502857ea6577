from __future__ import annotations

from typing import List, Optional

from .hierarchy import Hierarchy
from .model import Tatum


def build_tatums(
    hierarchy: Hierarchy,
    first_tick: Optional[int],
    last_tick: Optional[int],
    ms_per_beat: int,
) -> List[Tatum]:
    """One tatum per tick in ``[first_tick, last_tick)``.

    Returns an empty grid when no ticks were seen.
    """
    if first_tick is None or last_tick is None:
        return []
    return [Tatum(hierarchy.time_ms(tick, ms_per_beat)) for tick in range(first_tick, last_tick)]
