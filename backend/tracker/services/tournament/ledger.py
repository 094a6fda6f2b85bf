import math
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .errors import ValidationError
from .records import SEAT_COUNT, SEAT_WINDS, Round
from .scoring import compute_round_deltas
from .state import TournamentState


def commit_round(state: TournamentState, seat_entries: Sequence[Tuple[Any, Any]],
                 require_total: Optional[int] = None) -> Round:
    """Validate a round, score it and fold it into the ledger.

    ``seat_entries`` holds four ``(player_id, raw_score)`` pairs in East, South,
    West, North order. When ``require_total`` is given the raw scores must add
    up to it exactly. On any validation failure nothing is changed.
    """
    entries = validate_round_entries(state, seat_entries, require_total=require_total)
    breakdown = compute_round_deltas(entries, state.rank_bonus)
    round_ = Round(
        id=_next_round_id(state),
        timestamp=datetime.now(timezone.utc).isoformat(),
        seats=[pid for pid, _ in entries],
        raw_scores=[raw for _, raw in entries],
        breakdown=breakdown,
    )
    state.rounds.append(round_)
    for b in round_.breakdown:
        state.ledger[b.player_id] = state.ledger.get(b.player_id, 0) + b.delta
    return round_


def validate_round_entries(state: TournamentState, seat_entries: Sequence[Tuple[Any, Any]],
                           require_total: Optional[int] = None) -> List[Tuple[str, int]]:
    if len(seat_entries) != SEAT_COUNT:
        raise ValidationError(f'A round needs exactly {SEAT_COUNT} seats', rule='seat_count')
    known = state.players_by_id
    seen = set()
    entries = []
    for wind, (player_id, raw) in zip(SEAT_WINDS, seat_entries):
        if not player_id:
            raise ValidationError(f'No player chosen for {wind}', rule='missing_seat')
        player_id = str(player_id)
        if player_id in seen:
            raise ValidationError(f'Player {player_id} is seated twice', rule='duplicate_player')
        if player_id not in known:
            raise ValidationError(f'Player {player_id} is not on the roster', rule='unknown_player')
        seen.add(player_id)
        entries.append((player_id, _coerce_raw(raw, wind)))
    if require_total is not None:
        total = sum(raw for _, raw in entries)
        if total != require_total:
            raise ValidationError(
                f'Raw scores add up to {total}, expected {require_total}', rule='total_mismatch'
            )
    return entries


def reset_ledger(state: TournamentState) -> None:
    """Zero every player's score and drop the round history.

    Roster, rank-bonus table and grouping configuration are kept; with the
    history gone the grouping lock is released.
    """
    state.ledger = {p.id: 0 for p in state.players}
    state.rounds = []


def fold_ledger(rounds: Iterable[Round]) -> Dict[str, float]:
    totals: Dict[str, float] = {}
    for round_ in rounds:
        for b in round_.breakdown:
            totals[b.player_id] = totals.get(b.player_id, 0) + b.delta
    return totals


def _coerce_raw(value: Any, wind: str) -> int:
    # Integral numeric strings come straight from form fields.
    if isinstance(value, bool):
        raise ValidationError(f'Raw score for {wind} must be an integer', rule='invalid_score')
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return int(value)
    elif isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ValidationError(f'Raw score for {wind} must be an integer', rule='invalid_score')


def _next_round_id(state: TournamentState) -> str:
    taken = {r.id for r in state.rounds}
    base = f'r{int(time.time() * 1000)}'
    candidate, n = base, 1
    while candidate in taken:
        n += 1
        candidate = f'{base}-{n}'
    return candidate
