"""Metrical hierarchy inference and tick -> millisecond quantization.

A hierarchy has four levels: bar, beat, sub-beat and tatum.  One tatum is
one upstream tick, so ``tatums_per_sub_beat`` is simply the number of
ticks in a sub-beat.

Meter inference from a time signature ``N/D``:

  simple   : beats = N,     sub-beats per beat = 2, sub-beats per quarter = D / 2
  compound : beats = N / 3, sub-beats per beat = 3, sub-beats per quarter = D / 4

A meter is compound when N is a multiple of 3 greater than 3 (6/8, 9/8,
12/8, ...).  3/4 stays simple.

Only one hierarchy is modeled per run.  A later time signature that
derives a different hierarchy is reported and ignored; the first one
stays active for the whole piece.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

MUSICXML_MS_PER_BEAT = 600
DEFAULT_MS_PER_BEAT = 500
DEFAULT_TICKS_PER_QUARTER_NOTE = 4


@dataclass(frozen=True)
class Hierarchy:
    beats_per_bar: int
    sub_beats_per_beat: int  # 2 (simple) or 3 (compound)
    tatums_per_sub_beat: int
    anacrusis_ticks: int = 0

    def same_meter(self, other: "Hierarchy") -> bool:
        """True when both hierarchies share bar, beat and tatum structure.

        The anacrusis is not compared; only the first hierarchy carries one.
        """
        return (
            self.beats_per_bar == other.beats_per_bar
            and self.sub_beats_per_beat == other.sub_beats_per_beat
            and self.tatums_per_sub_beat == other.tatums_per_sub_beat
        )

    @property
    def ticks_per_beat(self) -> int:
        return self.tatums_per_sub_beat * self.sub_beats_per_beat

    def time_ms(self, tick: int, ms_per_beat: int) -> int:
        """Convert a tick position to milliseconds.

        ``round(tick / tatums_per_sub_beat / sub_beats_per_beat * ms_per_beat)``
        with Python's ``round``: halves go to the nearest even integer.
        """
        return round(tick / self.tatums_per_sub_beat / self.sub_beats_per_beat * ms_per_beat)


def infer_hierarchy(
    ticks_per_quarter_note: int,
    numerator: int,
    denominator: int,
    *,
    is_first: bool,
    tick: int,
) -> Hierarchy:
    """Derive a :class:`Hierarchy` from a time signature.

    Parameters
    ----------
    ticks_per_quarter_note : int
        Upstream resolution in effect at ``tick``.
    numerator, denominator : int
        Time signature fields.
    is_first : bool
        Whether this is the first hierarchy of the stream.  Only the first
        one takes ``tick`` as its anacrusis offset; later ones get 0.
    tick : int
        Tick of the attributes record.
    """
    if ticks_per_quarter_note <= 0:
        raise ValueError(f"ticks_per_quarter_note must be positive, got {ticks_per_quarter_note}")
    if numerator <= 0 or denominator <= 0:
        raise ValueError(f"bad time signature {numerator}/{denominator}")

    beats_per_bar = numerator
    sub_beats_per_beat = 2
    # ticks per sub-beat = tpq / (D / 2), kept in integers as 2 * tpq // D
    quarter_multiplier = 2
    if beats_per_bar % 3 == 0 and beats_per_bar > 3:
        beats_per_bar //= 3
        sub_beats_per_beat = 3
        quarter_multiplier = 4

    # Uneven division is an accepted approximation; never drop below one
    # tick per sub-beat.
    tatums_per_sub_beat = max(1, quarter_multiplier * ticks_per_quarter_note // denominator)

    return Hierarchy(
        beats_per_bar=beats_per_bar,
        sub_beats_per_beat=sub_beats_per_beat,
        tatums_per_sub_beat=tatums_per_sub_beat,
        anacrusis_ticks=tick if is_first else 0,
    )


def default_hierarchy(ticks_per_quarter_note: int = DEFAULT_TICKS_PER_QUARTER_NOTE) -> Hierarchy:
    """4/4 at the given resolution, used until the stream supplies a meter."""
    return infer_hierarchy(ticks_per_quarter_note, 4, 4, is_first=False, tick=0)


@dataclass(frozen=True)
class HierarchyApplied:
    """The candidate hierarchy is now the active one."""

    hierarchy: Hierarchy


@dataclass(frozen=True)
class HierarchyConflictIgnored:
    """The candidate disagreed with the active hierarchy and was dropped."""

    active: Hierarchy
    rejected: Hierarchy
    warning: str


HierarchyDecision = Union[HierarchyApplied, HierarchyConflictIgnored]


def apply_hierarchy(active: Optional[Hierarchy], candidate: Hierarchy) -> HierarchyDecision:
    """Decide what happens to the active hierarchy when ``candidate`` arrives.

    With no active hierarchy, the candidate initializes it.  A candidate
    with the same meter leaves the active hierarchy in place unchanged,
    anacrusis included.  A candidate with a different meter is a mid-piece
    meter change, which is not modeled: the active hierarchy is kept and
    the candidate is returned as rejected.
    """
    if active is None:
        return HierarchyApplied(candidate)
    if active.same_meter(candidate):
        # Keep the pickup offset that only the first hierarchy can carry.
        return HierarchyApplied(active)
    return HierarchyConflictIgnored(
        active=active,
        rejected=candidate,
        warning=(
            f"meter change to {candidate.beats_per_bar},{candidate.sub_beats_per_beat} "
            f"{candidate.tatums_per_sub_beat} ignored; keeping "
            f"{active.beats_per_bar},{active.sub_beats_per_beat} {active.tatums_per_sub_beat}"
        ),
    )
