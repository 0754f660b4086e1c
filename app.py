# /// script
# requires-python = ">=3.12"
# dependencies = ["flask>=3.0", "pydantic>=2.0"]
# ///
"""Read-only live scoreboard API.

Serves the live view of games held by the in-process log service, plus a
server-sent-event stream that pushes a fresh view whenever a game's log
changes.

Usage:
    uv run app.py
"""

from __future__ import annotations

import json
import logging
import os
import queue

from flask import Flask, Response, jsonify

import config
from event_log import current_batter, derive_current_state
from live_view import render_live_view
from log_service import InMemoryLogService

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = Flask(__name__)

# Authoritative log for every game this process serves
SERVICE = InMemoryLogService()

KEEPALIVE_SECONDS = 30


def _view_json(game_id: str) -> dict:
    snapshot = SERVICE.fetch_snapshot(game_id)
    return render_live_view(snapshot, config.get_recent_plays()).model_dump(mode="json")


# ---------------------------------------------------------------------------
# API routes
# ---------------------------------------------------------------------------


@app.route("/api/games")
def api_list_games():
    games = []
    for game_id in SERVICE.game_ids():
        summary = SERVICE.fetch_snapshot(game_id).summary
        games.append(summary.model_dump(mode="json"))
    return jsonify(games)


@app.route("/api/games/<game_id>/live")
def api_live_view(game_id: str):
    if not SERVICE.has_game(game_id):
        return jsonify({"error": "Game not found"}), 404
    return jsonify(_view_json(game_id))


@app.route("/api/games/<game_id>/state")
def api_game_state(game_id: str):
    if not SERVICE.has_game(game_id):
        return jsonify({"error": "Game not found"}), 404
    snapshot = SERVICE.fetch_snapshot(game_id)
    summary = snapshot.summary
    state = derive_current_state(snapshot.events, summary.inning, summary.inning_half)
    batter = current_batter(snapshot.events, snapshot.batting_lineup(state.half), state.half)
    return jsonify({
        "inning": state.inning,
        "inning_half": state.half.value,
        "outs": state.outs,
        "runners": state.runners.model_dump(mode="json"),
        "bases": state.runners.bases_string(),
        "home_score": summary.home_score,
        "away_score": summary.away_score,
        "status": summary.status.value,
        "batter_id": batter.player_id if batter else None,
        "active_events": state.active_count,
    })


@app.route("/api/games/<game_id>/stream")
def api_game_stream(game_id: str):
    if not SERVICE.has_game(game_id):
        return jsonify({"error": "Game not found"}), 404

    q: queue.Queue = queue.Queue()

    def on_change(kind: str, item) -> None:
        # One view per change; the "event" push is followed by a snapshot.
        if kind == "snapshot":
            q.put(kind)

    unsubscribe = SERVICE.subscribe(game_id, on_change)
    logger.info("Stream opened for %s", game_id)

    def generate():
        try:
            yield f"event: view\ndata: {json.dumps(_view_json(game_id))}\n\n"
            while True:
                try:
                    q.get(timeout=KEEPALIVE_SECONDS)
                except queue.Empty:
                    # Send keepalive
                    yield ":\n\n"
                    continue
                yield f"event: view\ndata: {json.dumps(_view_json(game_id))}\n\n"
        finally:
            unsubscribe()
            logger.info("Stream closed for %s", game_id)

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    config.configure_logging()
    port = int(os.environ.get("PORT", 5050))
    app.run(debug=True, host="0.0.0.0", port=port, threaded=True)
