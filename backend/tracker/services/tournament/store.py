"""Persisted key/value storage for the tournament state.

The state lives in memory on the Flask app; after every successful mutation
the changed keys are written to the ``stored_value`` table. Read failures fall
back to defaults and write failures are logged and dropped, never raised.
"""

import json
import math
import threading
import time
from typing import Iterable, Optional

from tracker import db
from tracker.models import StoredValue

from .ledger import fold_ledger
from .state import DEFAULT_TOP_K, PERSISTED_KEYS, TournamentState

EXTENSION_KEY = 'tracker_state'
_load_lock = threading.Lock()
state_lock = threading.RLock()


def load_state(app) -> TournamentState:
    default_top_k = int(app.config.get('DEFAULT_TOP_K', DEFAULT_TOP_K))
    raw = {}
    try:
        rows = StoredValue.query.filter(StoredValue.key.in_(PERSISTED_KEYS)).all()
    except Exception as exc:
        db.session.rollback()
        app.logger.warning(f"[store-load-failed] using defaults: {exc}")
        rows = []
    for row in rows:
        try:
            raw[row.key] = row.decoded()
        except ValueError as exc:
            app.logger.warning(f"[store-load-fallback] key={row.key} unparseable: {exc}")
    state = TournamentState.from_persisted(raw, default_top_k=default_top_k)
    reconcile_ledger(app, state)
    app.logger.info(
        f"[store-load] players={len(state.players)} rounds={len(state.rounds)} grouping={state.grouping_enabled}"
    )
    return state


def reconcile_ledger(app, state: TournamentState) -> None:
    """Make every rostered player's ledger entry equal the sum of their round deltas."""
    folded = fold_ledger(state.rounds)
    for p in state.players:
        expected = folded.get(p.id, 0)
        if not math.isclose(state.ledger.get(p.id, 0), expected, abs_tol=1e-9):
            app.logger.warning(
                f"[store-load-ledger-rebuilt] player={p.id} stored={state.ledger.get(p.id)} folded={expected}"
            )
            state.ledger[p.id] = expected


def save_state(app, state: TournamentState, keys: Optional[Iterable[str]] = None) -> bool:
    """Write ``keys`` (default: all) of ``state``. Returns False if the write failed."""
    snapshot = state.to_persisted()
    keys = list(keys) if keys is not None else list(PERSISTED_KEYS)
    try:
        now = time.time()
        for key in keys:
            db.session.merge(StoredValue(key=key, value=json.dumps(snapshot[key]), updated_at=now))
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        app.logger.warning(f"[store-save-failed] keys={','.join(keys)} error={exc}")
        return False
    return True


def get_state(app) -> TournamentState:
    """Return the app's tournament state, loading it on first use."""
    state = app.extensions.get(EXTENSION_KEY)
    if state is None:
        with _load_lock:
            state = app.extensions.get(EXTENSION_KEY)
            if state is None:
                state = load_state(app)
                app.extensions[EXTENSION_KEY] = state
    return state


def forget_state(app) -> None:
    app.extensions.pop(EXTENSION_KEY, None)
