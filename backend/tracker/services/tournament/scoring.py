from typing import List, Sequence, Tuple

from .records import BreakdownEntry

# Raw points are normalized around the starting stack, one point per 1000.
RAW_REFERENCE = 30000
RAW_STEP = 1000

SeatEntry = Tuple[str, int]


def compute_round_deltas(seat_entries: Sequence[SeatEntry], rank_bonus: Sequence[float]) -> List[BreakdownEntry]:
    """Score one round.

    Seats are ranked by raw score, highest first; equal scores keep seat order,
    so the earlier seat takes the better rank. Each seat gets
    ``base = (raw - 30000) / 1000`` plus the bonus for its rank. The result is
    returned in seat order, not rank order.

    Callers validate the entries first: four distinct players, integer scores.
    """
    order = sorted(range(len(seat_entries)), key=lambda idx: -seat_entries[idx][1])
    rank_of = {seat_idx: rank for rank, seat_idx in enumerate(order)}
    breakdown = []
    for idx, (player_id, raw) in enumerate(seat_entries):
        base = (raw - RAW_REFERENCE) / RAW_STEP
        bonus = rank_bonus[rank_of[idx]]
        breakdown.append(BreakdownEntry(
            player_id=player_id,
            raw=raw,
            base=base,
            bonus=bonus,
            delta=base + bonus,
        ))
    return breakdown
