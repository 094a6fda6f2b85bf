import uuid
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import LockedError, ValidationError
from .records import GROUP_SIZE, Group, Player, clean_name
from .state import TournamentState

EDITABLE_FIELDS = ('name', 'avatar', 'note')


def add_player(state: TournamentState, name: str, avatar: Optional[str] = None, note: str = '') -> Player:
    player = Player(id=_new_player_id(state), name=name, avatar=avatar or None, note=note)
    state.players.append(player)
    state.ledger[player.id] = 0
    return player


def remove_player(state: TournamentState, player_id: str) -> Player:
    """Drop a player from the roster, the ledger and any group.

    Recorded rounds keep referring to the removed id.
    """
    player = state.get_player(player_id)
    state.players = [p for p in state.players if p.id != player_id]
    state.ledger.pop(player_id, None)
    state.groups = [g.without(player_id) for g in state.groups]
    state.top_k = min(state.top_k, max(1, len(state.players)))
    return player


def update_player(state: TournamentState, player_id: str, patch: Dict[str, Any]) -> Player:
    player = state.get_player(player_id)
    unknown = set(patch) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot update {', '.join(sorted(unknown))}", rule='player_fields')
    if 'name' in patch:
        player.name = clean_name(patch['name'])
    if 'avatar' in patch:
        player.avatar = patch['avatar'] or None
    if 'note' in patch:
        player.note = patch['note'] or ''
    return player


def set_grouping(state: TournamentState, enabled: bool,
                 groups: Sequence[Union[Group, Dict[str, Any]]]) -> List[Group]:
    """Replace the grouping configuration.

    Refused once any round exists. With grouping enabled every group must hold
    exactly two rostered players and no player may sit in two groups. Disabled
    configurations are kept as drafts.
    """
    if state.grouping_locked:
        raise LockedError('Grouping is locked once rounds have been recorded', rule='grouping_locked')
    parsed = [g if isinstance(g, Group) else Group.from_dict(g, i) for i, g in enumerate(groups)]
    ids = [g.id for g in parsed]
    if len(set(ids)) != len(ids):
        raise ValidationError('Group ids must be unique', rule='group_id')
    if enabled:
        if not parsed:
            raise ValidationError('Enable grouping with at least one group', rule='group_size')
        known = state.players_by_id
        assigned = set()
        for g in parsed:
            if len(g.members) != GROUP_SIZE:
                raise ValidationError(
                    f'{g.name} needs exactly {GROUP_SIZE} players', rule='group_size'
                )
            for member in g.members:
                if member not in known:
                    raise ValidationError(f'Player {member} is not on the roster', rule='unknown_player')
                if member in assigned:
                    raise ValidationError(f'Player {member} is in more than one group', rule='group_overlap')
                assigned.add(member)
    state.grouping_enabled = bool(enabled)
    state.groups = parsed
    return parsed


def _new_player_id(state: TournamentState) -> str:
    taken = {p.id for p in state.players}
    while True:
        candidate = f'p{uuid.uuid4().hex[:8]}'
        if candidate not in taken:
            return candidate
