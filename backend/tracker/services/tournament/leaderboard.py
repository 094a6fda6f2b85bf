"""Leaderboard and history views.

Everything here is a pure function of the current state and is rebuilt on
every request. Sorting is stable, so equal scores keep roster (or group)
order.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence

from .records import SEAT_WINDS, Group, Player, Round

WINNING_GROUPS = 2
UNKNOWN_PLAYER_NAME = 'Unknown player'


def initials(name: str) -> str:
    """First letter of the first and last word, for placeholder avatars."""
    parts = (name or '').split()
    if not parts:
        return ''
    return (parts[0][0] + parts[-1][0]).upper()


def player_card(player_id: str, players_by_id: Mapping[str, Player]) -> Dict[str, Any]:
    player = players_by_id.get(player_id)
    if player is None:
        return {'id': player_id, 'name': UNKNOWN_PLAYER_NAME, 'avatar': None, 'initials': '?', 'known': False}
    return {
        'id': player.id,
        'name': player.name,
        'avatar': player.avatar,
        'initials': initials(player.name),
        'known': True,
    }


def build_player_board(players: Sequence[Player], ledger: Mapping[str, float],
                       top_k: Optional[int] = None) -> List[Dict[str, Any]]:
    rows = sorted(
        ({'player_id': p.id, 'name': p.name, 'avatar': p.avatar, 'initials': initials(p.name),
          'score': ledger.get(p.id, 0)} for p in players),
        key=lambda row: -row['score'],
    )
    for rank, row in enumerate(rows, start=1):
        row['rank'] = rank
        # top_k only decides where the divider goes
        row['above_divider'] = top_k is not None and rank <= top_k
    return rows


def build_group_board(groups: Sequence[Group], players_by_id: Mapping[str, Player],
                      ledger: Mapping[str, float]) -> List[Dict[str, Any]]:
    rows = sorted(
        ({'group_id': g.id, 'name': g.name,
          'members': [player_card(pid, players_by_id) for pid in g.members],
          'score': sum(ledger.get(pid, 0) for pid in g.members)} for g in groups),
        key=lambda row: -row['score'],
    )
    for rank, row in enumerate(rows, start=1):
        row['rank'] = rank
        row['winning'] = rank <= WINNING_GROUPS
    return rows


def build_round_history(rounds: Sequence[Round], players_by_id: Mapping[str, Player]) -> List[Dict[str, Any]]:
    history = []
    for number, round_ in enumerate(rounds, start=1):
        history.append({
            'number': number,
            'id': round_.id,
            'timestamp': round_.timestamp,
            'seats': [
                dict(b.to_dict(), seat=wind, player=player_card(b.player_id, players_by_id))
                for wind, b in zip(SEAT_WINDS, round_.breakdown)
            ],
        })
    history.reverse()
    return history
