"""Record types held by the tournament state.

Each record validates itself on construction and converts to and from the
plain dicts used by the persisted store and the JSON API.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from .errors import ValidationError

SEAT_COUNT = 4
GROUP_SIZE = 2
SEAT_WINDS = ('East', 'South', 'West', 'North')


def clean_name(value: Any) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError('Player name must be text', rule='player_name')
    name = (value or '').strip()
    if not name:
        raise ValidationError('Player name must not be empty', rule='player_name')
    return name


@dataclass
class Player:
    id: str
    name: str
    avatar: Optional[str] = None
    note: str = ''

    def __post_init__(self):
        if not self.id:
            raise ValidationError('Player id is required', rule='player_id')
        self.name = clean_name(self.name)
        self.note = self.note or ''

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'avatar': self.avatar,
            'note': self.note,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        return cls(
            id=str(data['id']),
            name=data.get('name', ''),
            avatar=data.get('avatar') or None,
            note=data.get('note') or '',
        )


@dataclass(frozen=True)
class BreakdownEntry:
    """One seat's share of a round: raw points, normalized base, rank bonus."""

    player_id: str
    raw: int
    base: float
    bonus: float
    delta: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'player_id': self.player_id,
            'raw': self.raw,
            'base': self.base,
            'bonus': self.bonus,
            'delta': self.delta,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BreakdownEntry':
        return cls(
            player_id=str(data['player_id']),
            raw=int(data['raw']),
            base=float(data['base']),
            bonus=float(data['bonus']),
            delta=float(data['delta']),
        )


@dataclass(frozen=True)
class Round:
    """A committed round. Never modified after creation.

    ``seats`` lists player ids in East, South, West, North order; ``raw_scores``
    and ``breakdown`` follow the same order.
    """

    id: str
    timestamp: str
    seats: Tuple[str, ...]
    raw_scores: Tuple[int, ...]
    breakdown: Tuple[BreakdownEntry, ...]

    def __post_init__(self):
        object.__setattr__(self, 'seats', tuple(self.seats))
        object.__setattr__(self, 'raw_scores', tuple(self.raw_scores))
        object.__setattr__(self, 'breakdown', tuple(self.breakdown))
        if not (len(self.seats) == len(self.raw_scores) == len(self.breakdown) == SEAT_COUNT):
            raise ValidationError(f'A round needs exactly {SEAT_COUNT} seats', rule='seat_count')
        if tuple(b.player_id for b in self.breakdown) != self.seats:
            raise ValidationError('Round breakdown must follow seat order', rule='breakdown_order')

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'seats': list(self.seats),
            'raw_scores': list(self.raw_scores),
            'breakdown': [b.to_dict() for b in self.breakdown],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Round':
        return cls(
            id=str(data['id']),
            timestamp=str(data['timestamp']),
            seats=[str(pid) for pid in data['seats']],
            raw_scores=[int(r) for r in data['raw_scores']],
            breakdown=[BreakdownEntry.from_dict(b) for b in data['breakdown']],
        )


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    members: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'members', tuple(self.members))
        if not self.id:
            raise ValidationError('Group id is required', rule='group_id')
        if len(self.members) > GROUP_SIZE:
            raise ValidationError(
                f'Group {self.id} has more than {GROUP_SIZE} members', rule='group_size'
            )
        if len(set(self.members)) != len(self.members):
            raise ValidationError(f'Group {self.id} lists a player twice', rule='group_members')

    def without(self, player_id: str) -> 'Group':
        return Group(self.id, self.name, tuple(m for m in self.members if m != player_id))

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'members': list(self.members)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], position: int = 0) -> 'Group':
        gid = str(data.get('id') or f'g{position + 1}')
        name = data.get('name') or f'Group {chr(ord("A") + position)}'
        members = data.get('members')
        if members is None:
            members = []
        if not isinstance(members, (list, tuple)):
            raise ValidationError(f'Members of group {gid} must be a list', rule='group_members')
        return cls(id=gid, name=name, members=[str(m) for m in members])


def default_players() -> Sequence[Player]:
    names = [
        'Sitaowex', 'Len Ozora', 'TT', 'Lakto',
        'Tigris Scientificus', 'okamipancake', 'Silveryena', 'Neon',
    ]
    return [Player(id=f'p{i + 1}', name=name) for i, name in enumerate(names)]


def default_groups() -> Sequence[Group]:
    return [Group(id=f'g{i + 1}', name=f'Group {letter}') for i, letter in enumerate('ABCD')]
