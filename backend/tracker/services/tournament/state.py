"""Tournament state aggregate.

One ``TournamentState`` owns the roster, ledger, round history, rank-bonus
table and grouping settings. Service functions in this package take it as
their first argument and mutate it in place.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

from .errors import NotFoundError, ValidationError
from .records import SEAT_COUNT, Group, Player, Round, default_groups, default_players

logger = logging.getLogger(__name__)

DEFAULT_RANK_BONUS = (20, 10, -10, -20)
DEFAULT_TOP_K = 4

PERSISTED_KEYS = (
    'roster',
    'ledger',
    'rounds',
    'rank_bonus',
    'top_k',
    'grouping_enabled',
    'groups',
)


@dataclass
class TournamentState:
    players: List[Player] = field(default_factory=lambda: list(default_players()))
    ledger: Dict[str, float] = field(default_factory=dict)
    rounds: List[Round] = field(default_factory=list)
    rank_bonus: List[float] = field(default_factory=lambda: list(DEFAULT_RANK_BONUS))
    top_k: int = DEFAULT_TOP_K
    grouping_enabled: bool = False
    groups: List[Group] = field(default_factory=lambda: list(default_groups()))

    def __post_init__(self):
        for p in self.players:
            self.ledger.setdefault(p.id, 0)

    @property
    def players_by_id(self) -> Dict[str, Player]:
        return {p.id: p for p in self.players}

    @property
    def grouping_locked(self) -> bool:
        """Grouping is frozen once the first round has been recorded."""
        return bool(self.rounds)

    def get_player(self, player_id: str) -> Player:
        for p in self.players:
            if p.id == player_id:
                return p
        raise NotFoundError(f'Player {player_id} not found', rule='unknown_player')

    def set_rank_bonus(self, values: Sequence[Any]) -> List[float]:
        """Replace the rank-bonus table. Applies to rounds committed afterwards only."""
        table = parse_rank_bonus(values)
        self.rank_bonus = table
        return table

    def set_top_k(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValidationError('Top K must be an integer', rule='top_k')
        try:
            top_k = int(value)
        except (TypeError, ValueError, OverflowError):
            raise ValidationError('Top K must be an integer', rule='top_k')
        if top_k != value and str(top_k) != str(value).strip():
            raise ValidationError('Top K must be an integer', rule='top_k')
        if not 1 <= top_k <= len(self.players):
            raise ValidationError(f'Top K must be between 1 and {len(self.players)}', rule='top_k')
        self.top_k = top_k
        return top_k

    def reset_all(self) -> None:
        """Clear scores, round history and grouping. Roster and settings stay."""
        self.ledger = {p.id: 0 for p in self.players}
        self.rounds = []
        self.grouping_enabled = False
        self.groups = list(default_groups())

    def restore_defaults(self, top_k: int = DEFAULT_TOP_K) -> None:
        defaults = TournamentState(top_k=top_k)
        self.__dict__.update(defaults.__dict__)

    def to_persisted(self) -> Dict[str, Any]:
        return {
            'roster': [p.to_dict() for p in self.players],
            'ledger': dict(self.ledger),
            'rounds': [r.to_dict() for r in self.rounds],
            'rank_bonus': list(self.rank_bonus),
            'top_k': self.top_k,
            'grouping_enabled': self.grouping_enabled,
            'groups': [g.to_dict() for g in self.groups],
        }

    @classmethod
    def from_persisted(cls, data: Dict[str, Any], default_top_k: int = DEFAULT_TOP_K) -> 'TournamentState':
        """Rebuild the aggregate from stored values.

        Each key is read on its own; a missing or malformed value falls back
        to its default without affecting the other keys.
        """
        state = cls(top_k=default_top_k)
        players = _load_key(data, 'roster', _parse_roster)
        if players is not None:
            state.players = players
        ledger = _load_key(data, 'ledger', lambda v: {str(k): _finite_number(s) for k, s in v.items()})
        state.ledger = ledger if ledger is not None else {}
        for p in state.players:
            state.ledger.setdefault(p.id, 0)
        rounds = _load_key(data, 'rounds', lambda v: [Round.from_dict(r) for r in v])
        if rounds is not None:
            state.rounds = rounds
        rank_bonus = _load_key(data, 'rank_bonus', parse_rank_bonus)
        if rank_bonus is not None:
            state.rank_bonus = rank_bonus
        top_k = _load_key(data, 'top_k', _parse_top_k)
        if top_k is not None:
            state.top_k = top_k
        state.top_k = min(state.top_k, max(1, len(state.players)))
        enabled = _load_key(data, 'grouping_enabled', _parse_bool)
        if enabled is not None:
            state.grouping_enabled = enabled
        groups = _load_key(data, 'groups', lambda v: [Group.from_dict(g, i) for i, g in enumerate(v)])
        if groups is not None:
            state.groups = groups
        return state


def parse_rank_bonus(values: Sequence[Any]) -> List[float]:
    if isinstance(values, (str, bytes)) or not isinstance(values, Sequence) or len(values) != SEAT_COUNT:
        raise ValidationError(f'Rank bonus needs exactly {SEAT_COUNT} numbers', rule='rank_bonus_size')
    return [_finite_number(v) for v in values]


def _finite_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError('Expected a number', rule='number')
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{value!r} is not a number', rule='number')
    if not math.isfinite(number):
        raise ValidationError(f'{value!r} is not a finite number', rule='number')
    return int(number) if number.is_integer() else number


def _parse_roster(value: Any) -> List[Player]:
    players = [Player.from_dict(p) for p in value]
    ids = [p.id for p in players]
    if len(set(ids)) != len(ids):
        raise ValueError('duplicate player ids in roster')
    return players


def _parse_top_k(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f'bad top_k {value!r}')
    return value


def _parse_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f'bad flag {value!r}')
    return value


def _load_key(data: Dict[str, Any], key: str, parse: Callable[[Any], Any]) -> Optional[Any]:
    if data.get(key) is None:
        return None
    try:
        return parse(data[key])
    except (AttributeError, KeyError, TypeError, ValueError, ValidationError) as exc:
        logger.warning('[store-load-fallback] key=%s error=%s', key, exc)
        return None
