from flask import Blueprint, jsonify, request, current_app
from tracker import socketio
from tracker.services.tournament.errors import TrackerError, ValidationError
from tracker.services.tournament.leaderboard import (
    build_group_board,
    build_player_board,
    build_round_history,
)
from tracker.services.tournament.ledger import commit_round
from tracker.services.tournament.roster import add_player, remove_player, set_grouping, update_player
from tracker.services.tournament.state import PERSISTED_KEYS
from tracker.services.tournament.store import get_state, save_state, state_lock
from tracker.socketio_events import BOARD_ROOM


tournament = Blueprint('tournament', __name__)


@tournament.errorhandler(TrackerError)
def handle_tracker_error(exc: TrackerError):
    current_app.logger.info(f"[rejected] {exc.__class__.__name__} rule={exc.rule} {exc.message}")
    return jsonify(exc.to_dict()), exc.status_code


def _state():
    return get_state(current_app._get_current_object())


def _boards(state):
    return {
        'players_board': build_player_board(state.players, state.ledger, state.top_k),
        'groups_board': build_group_board(state.groups, state.players_by_id, state.ledger)
        if state.grouping_enabled else [],
    }


def snapshot(state):
    payload = state.to_persisted()
    payload.update(_boards(state))
    payload['grouping_locked'] = state.grouping_locked
    return payload


def _flush(state, keys, reason):
    save_state(current_app._get_current_object(), state, keys)
    socketio.emit('state_update', {'reason': reason}, to=BOARD_ROOM, namespace='/ws')


def _payload():
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object', rule='body')
    return data


@tournament.route('/state', methods=['GET'])
def get_tournament_state():
    with state_lock:
        return jsonify(snapshot(_state()))


@tournament.route('/players', methods=['GET'])
def list_players():
    with state_lock:
        return jsonify([p.to_dict() for p in _state().players])


@tournament.route('/players', methods=['POST'])
def create_player():
    data = _payload()
    with state_lock:
        state = _state()
        player = add_player(state, data.get('name') or '', avatar=data.get('avatar'), note=data.get('note') or '')
        current_app.logger.info(f"[player-add] id={player.id} name={player.name}")
        _flush(state, ('roster', 'ledger'), 'player_added')
        return jsonify(player.to_dict()), 201


@tournament.route('/players/<string:player_id>', methods=['PATCH'])
def patch_player(player_id):
    data = _payload()
    with state_lock:
        state = _state()
        player = update_player(state, player_id, data)
        current_app.logger.info(f"[player-update] id={player.id} fields={','.join(sorted(data))}")
        _flush(state, ('roster',), 'player_updated')
        return jsonify(player.to_dict())


@tournament.route('/players/<string:player_id>', methods=['DELETE'])
def delete_player(player_id):
    with state_lock:
        state = _state()
        player = remove_player(state, player_id)
        current_app.logger.info(f"[player-remove] id={player.id}")
        _flush(state, ('roster', 'ledger', 'groups', 'top_k'), 'player_removed')
        return jsonify({'removed': player.to_dict()})


@tournament.route('/settings/rank-bonus', methods=['PUT'])
def put_rank_bonus():
    data = _payload()
    with state_lock:
        state = _state()
        table = state.set_rank_bonus(data.get('rank_bonus'))
        current_app.logger.info(f"[settings] rank_bonus={table}")
        _flush(state, ('rank_bonus',), 'settings_changed')
        return jsonify({'rank_bonus': table})


@tournament.route('/settings/top-k', methods=['PUT'])
def put_top_k():
    data = _payload()
    with state_lock:
        state = _state()
        top_k = state.set_top_k(data.get('top_k'))
        current_app.logger.info(f"[settings] top_k={top_k}")
        _flush(state, ('top_k',), 'settings_changed')
        return jsonify({'top_k': top_k})


@tournament.route('/grouping', methods=['PUT'])
def put_grouping():
    data = _payload()
    enabled = data.get('enabled', False)
    groups = data.get('groups', [])
    if not isinstance(enabled, bool):
        raise ValidationError('enabled must be true or false', rule='body')
    if not isinstance(groups, list) or not all(isinstance(g, dict) for g in groups):
        raise ValidationError('groups must be a list of objects', rule='body')
    with state_lock:
        state = _state()
        applied = set_grouping(state, enabled, groups)
        current_app.logger.info(f"[grouping] enabled={state.grouping_enabled} groups={len(applied)}")
        _flush(state, ('grouping_enabled', 'groups'), 'grouping_changed')
        return jsonify({
            'grouping_enabled': state.grouping_enabled,
            'groups': [g.to_dict() for g in applied],
        })


@tournament.route('/rounds', methods=['GET'])
def list_rounds():
    with state_lock:
        state = _state()
        return jsonify(build_round_history(state.rounds, state.players_by_id))


@tournament.route('/rounds', methods=['POST'])
def submit_round():
    entries = _seat_entries(_payload())
    cfg = current_app.config
    require_total = int(cfg.get('RAW_TOTAL', 100000)) if cfg.get('ENFORCE_RAW_TOTAL') else None
    with state_lock:
        state = _state()
        round_ = commit_round(state, entries, require_total=require_total)
        current_app.logger.info(
            f"[round-commit] round={round_.id} "
            + ' '.join(f"{b.player_id}={b.delta:+.1f}" for b in round_.breakdown)
        )
        _flush(state, ('rounds', 'ledger'), 'round_committed')
        payload = {'round': round_.to_dict(), 'ledger': dict(state.ledger)}
        payload.update(_boards(state))
        return jsonify(payload), 201


@tournament.route('/leaderboard/players', methods=['GET'])
def player_leaderboard():
    with state_lock:
        state = _state()
        return jsonify({
            'top_k': state.top_k,
            'entries': build_player_board(state.players, state.ledger, state.top_k),
        })


@tournament.route('/leaderboard/groups', methods=['GET'])
def group_leaderboard():
    with state_lock:
        state = _state()
        return jsonify({
            'grouping_enabled': state.grouping_enabled,
            'entries': _boards(state)['groups_board'],
        })


@tournament.route('/reset', methods=['POST'])
def reset_scores():
    with state_lock:
        state = _state()
        state.reset_all()
        current_app.logger.info("[reset] scores, rounds and grouping cleared")
        _flush(state, ('ledger', 'rounds', 'grouping_enabled', 'groups'), 'reset')
        return jsonify(snapshot(state))


@tournament.route('/reset/defaults', methods=['POST'])
def reset_to_defaults():
    with state_lock:
        state = _state()
        state.restore_defaults(top_k=int(current_app.config.get('DEFAULT_TOP_K', 4)))
        current_app.logger.info("[reset] restored defaults")
        _flush(state, PERSISTED_KEYS, 'reset')
        return jsonify(snapshot(state))


def _seat_entries(data):
    """Accept either ``seats: [{player_id, raw}, ...]`` or parallel
    ``seats: [ids]`` / ``raw_scores: [...]`` lists."""
    seats = data.get('seats')
    if not isinstance(seats, list):
        raise ValidationError('seats must be a list', rule='seat_count')
    if all(isinstance(s, dict) for s in seats):
        return [(s.get('player_id'), s.get('raw')) for s in seats]
    raw_scores = data.get('raw_scores')
    if not isinstance(raw_scores, list) or len(raw_scores) != len(seats):
        raise ValidationError('raw_scores must list one score per seat', rule='seat_count')
    return list(zip(seats, raw_scores))
