"""
Break The Code Server

A real-time two-player game where each player tries to crack the other's
secret 4-digit number. Built with Flask and Socket.IO for WebSocket support.
Game rules live in game.py; this module only translates Socket.IO events.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Tuple

from flask import Flask, jsonify, request
from flask_socketio import SocketIO, emit

from config import (
    CORS_ORIGINS,
    CREATE_ROOM_LIMIT,
    DEBUG,
    GUESS_LIMIT,
    HOST,
    JOIN_ROOM_LIMIT,
    LOG_FORMAT,
    LOG_LEVEL,
    PORT,
    ROOM_CLEANUP_INTERVAL_SECONDS,
    ROOM_MAX_AGE_SECONDS,
    SECRET_KEY,
    VERSION,
)
from errors import GameError, RateLimitError
from game import GameService, Notification
from ratelimit import RateLimiter

# =============================================================================
# Logging Configuration
# =============================================================================

logging.basicConfig(level=getattr(logging, LOG_LEVEL), format=LOG_FORMAT)
logger = logging.getLogger(__name__)

# =============================================================================
# Flask Application Setup
# =============================================================================

app = Flask(__name__)
app.config['SECRET_KEY'] = SECRET_KEY

socketio = SocketIO(
    app,
    cors_allowed_origins=CORS_ORIGINS,
    logger=DEBUG,
    engineio_logger=DEBUG,
    async_mode='threading'
)

# =============================================================================
# Game State
# =============================================================================

game = GameService()
limiter = RateLimiter()

_sweeper_started = False
_sweeper_lock = threading.Lock()

# =============================================================================
# Helpers
# =============================================================================


def dispatch(notifications: Iterable[Notification]) -> None:
    """Deliver each notification to the connection it is addressed to."""
    for note in notifications:
        socketio.emit(note.event, note.payload, to=note.to)


def report_error(message: str) -> None:
    """Send an error to the connection that triggered the current event."""
    emit('error', {'message': message})


def check_rate_limit(action: str, max_actions: int, message: str) -> None:
    if limiter.is_limited(request.sid, action, max_actions):
        raise RateLimitError(message)


def player_name_from(data: Any) -> Optional[str]:
    """Accept a bare name or a payload carrying playerName/displayName."""
    if isinstance(data, dict):
        return data.get('playerName') or data.get('displayName')
    return data


def number_from(data: Any, key: str) -> Any:
    if isinstance(data, dict):
        return data.get(key)
    return data


def sweep_stale_rooms() -> None:
    """Background loop removing empty rooms past their maximum age."""
    while True:
        socketio.sleep(ROOM_CLEANUP_INTERVAL_SECONDS)
        try:
            removed = game.sweep_stale(ROOM_MAX_AGE_SECONDS)
            logger.debug(f"Stale room sweep removed {len(removed)} room(s), {game.room_count()} active")
        except Exception as e:
            logger.error(f"Error sweeping stale rooms: {e}")


def start_sweeper() -> None:
    """Start the stale-room sweep once per process."""
    global _sweeper_started
    with _sweeper_lock:
        if _sweeper_started or ROOM_CLEANUP_INTERVAL_SECONDS <= 0:
            return
        _sweeper_started = True
    socketio.start_background_task(sweep_stale_rooms)
    logger.info(f"Room sweeper started (every {ROOM_CLEANUP_INTERVAL_SECONDS}s)")


# =============================================================================
# HTTP Routes
# =============================================================================


@app.route('/health')
def health() -> Tuple[Dict[str, Any], int]:
    """Health check endpoint for monitoring."""
    return jsonify({
        'status': 'healthy',
        'timestamp': datetime.utcnow().isoformat(),
        'rooms': game.room_count(),
        'version': VERSION,
    }), 200


# =============================================================================
# Socket.IO Event Handlers
# =============================================================================


@socketio.on('connect')
def on_connect() -> None:
    """Handle client connection."""
    logger.info(f"Player connected: {request.sid}")
    if not app.config.get('TESTING'):
        start_sweeper()


@socketio.on('disconnect')
def on_disconnect(*_args: Any) -> None:
    """Release the player's seat and tell the opponent."""
    sid = request.sid
    logger.info(f"Player disconnected: {sid}")
    try:
        dispatch(game.disconnect(sid))
    except Exception as e:
        logger.error(f"Error handling disconnect: {e}")
    finally:
        limiter.forget(sid)


@socketio.on('createRoom')
def on_create_room(data: Any = None) -> None:
    """Create a new game room."""
    try:
        check_rate_limit('createRoom', CREATE_ROOM_LIMIT, 'Too many room creation attempts. Please wait.')
        dispatch(game.create_room(request.sid, player_name_from(data)))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error creating room: {e}")
        report_error('Failed to create room. Please try again.')


@socketio.on('joinRoom')
def on_join_room(data: Optional[Dict[str, Any]] = None) -> None:
    """Join an existing game room."""
    data = data if isinstance(data, dict) else {}
    try:
        check_rate_limit('joinRoom', JOIN_ROOM_LIMIT, 'Too many join attempts. Please wait.')
        dispatch(game.join_room(request.sid, data.get('roomCode'), player_name_from(data)))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error joining room: {e}")
        report_error('Failed to join room. Please try again.')


@socketio.on('rejoinRoom')
def on_rejoin_room(data: Optional[Dict[str, Any]] = None) -> None:
    """Reclaim a seat after a dropped connection."""
    data = data if isinstance(data, dict) else {}
    try:
        check_rate_limit('rejoinRoom', JOIN_ROOM_LIMIT, 'Too many rejoin attempts. Please wait.')
        dispatch(game.rejoin_room(request.sid, data.get('roomCode'), player_name_from(data)))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error rejoining room: {e}")
        report_error('Failed to rejoin room. Please try again.')


@socketio.on('leaveRoom')
def on_leave_room(*_args: Any) -> None:
    """Leave the current game room."""
    try:
        dispatch(game.leave_room(request.sid))
    except Exception as e:
        logger.error(f"Error leaving room: {e}")
        report_error('Failed to leave room. Please try again.')


@socketio.on('setSecretNumber')
def on_set_secret(data: Any = None) -> None:
    """Set the player's secret number."""
    try:
        dispatch(game.set_secret(request.sid, number_from(data, 'secretNumber')))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error setting secret: {e}")
        report_error('Failed to set secret number. Please try again.')


@socketio.on('makeGuess')
def on_make_guess(data: Any = None) -> None:
    """Submit a guess for the opponent's secret number."""
    try:
        check_rate_limit('makeGuess', GUESS_LIMIT, 'Too many guesses. Please slow down.')
        dispatch(game.make_guess(request.sid, number_from(data, 'guess')))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error submitting guess: {e}")
        report_error('Failed to submit guess. Please try again.')


@socketio.on('playAgain')
def on_play_again(*_args: Any) -> None:
    """Start a rematch in the same room (scores are kept)."""
    try:
        dispatch(game.play_again(request.sid))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error starting new round: {e}")
        report_error('Failed to start a new round. Please try again.')


@socketio.on('getRoomStats')
def on_get_room_stats(*_args: Any) -> None:
    """Send the room's stats snapshot to the requester."""
    try:
        dispatch(game.room_stats(request.sid))
    except GameError as e:
        report_error(e.message)
    except Exception as e:
        logger.error(f"Error getting room stats: {e}")
        report_error('Failed to get room stats.')


# =============================================================================
# Application Entry Point
# =============================================================================

if __name__ == '__main__':
    logger.info("=" * 50)
    logger.info("Starting Break The Code Server")
    logger.info(f"Debug mode: {DEBUG}")
    logger.info(f"Host: {HOST}, Port: {PORT}")
    logger.info(f"Stale room cutoff: {ROOM_MAX_AGE_SECONDS} seconds")
    logger.info("=" * 50)
    socketio.run(app, host=HOST, port=PORT, debug=DEBUG, allow_unsafe_werkzeug=DEBUG)
