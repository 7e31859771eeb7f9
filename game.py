"""
Room state machine for Break The Code.

GameService applies one inbound action at a time to the rooms it owns and
returns the notifications the transport should deliver. Rooms move through
waiting -> setup -> playing -> finished -> setup (rematch). Every check is
done before any mutation, so a rejected action never changes a room.
"""

import logging
import threading
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from config import DIGIT_COUNT
from errors import NotFoundError, StateError, ValidationError
from game_logic import clean_player_name, evaluate_guess, normalize_number, validate_room_code
from rooms import ConnectionIndex, GameState, Guess, Player, Room, RoomRegistry

logger = logging.getLogger(__name__)


class Notification(NamedTuple):
    """An outbound event addressed to a single connection."""

    event: str
    payload: Dict[str, Any]
    to: str


def _clean_room_code(value: Any) -> str:
    code = value.strip().upper() if isinstance(value, str) else ''
    if not validate_room_code(code):
        raise ValidationError('Invalid room code format.')
    return code


def _require_name(value: Any) -> str:
    name = clean_player_name(value)
    if name is None:
        raise ValidationError(
            'Invalid player name. Use 2-20 characters, letters, numbers, '
            'spaces, hyphens, underscores only.'
        )
    return name


class GameService:
    """Owns the room registry and connection index and applies game actions."""

    def __init__(self, registry: Optional[RoomRegistry] = None,
                 connections: Optional[ConnectionIndex] = None) -> None:
        self.registry = registry if registry is not None else RoomRegistry()
        self.connections = connections if connections is not None else ConnectionIndex()
        self._lock = threading.Lock()

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve(self, sid: str) -> Tuple[Room, Player]:
        """Find the room and player record for a connection."""
        binding = self.connections.lookup(sid)
        if binding is None:
            raise NotFoundError('You are not in a room.')
        room = self.registry.get_room(binding.room_code)
        if room is None:
            raise NotFoundError('Room not found.')
        player = room.player_by_sid(sid)
        if player is None:
            raise NotFoundError('You are not a player in this room.')
        return room, player

    def _ensure_unbound(self, sid: str) -> None:
        if self.connections.lookup(sid) is not None:
            raise StateError('You are already in a room. Leave it first.')

    @staticmethod
    def _broadcast(room: Room, event: str, payload: Dict[str, Any],
                   exclude: Optional[Player] = None) -> List[Notification]:
        return [
            Notification(event, payload, p.sid)
            for p in room.connected_players
            if exclude is None or p.player_id != exclude.player_id
        ]

    def _room_update(self, room: Room) -> List[Notification]:
        return self._broadcast(room, 'roomUpdate', {
            'players': room.public_players(),
            'gameState': room.state.value,
        })

    def _turn_name(self, room: Room) -> Optional[str]:
        player = room.player_by_id(room.current_turn)
        return player.name if player else None

    # =========================================================================
    # Room Membership
    # =========================================================================

    def create_room(self, sid: str, player_name: Any) -> List[Notification]:
        """Create a room with the sender as its first player."""
        with self._lock:
            name = _require_name(player_name)
            self._ensure_unbound(sid)

            room, _creator = self.registry.create_room(sid, name)
            self.connections.bind(sid, room.code, name)
            return [Notification('roomCreated', {'roomCode': room.code, 'playerName': name}, sid)]

    def join_room(self, sid: str, room_code: Any, player_name: Any) -> List[Notification]:
        """Add the sender as the second player of a waiting room."""
        with self._lock:
            name = _require_name(player_name)
            code = _clean_room_code(room_code)
            self._ensure_unbound(sid)

            room = self.registry.get_room(code)
            if room is None:
                raise NotFoundError('Room not found! Please check the room code.')
            if room.is_full:
                raise StateError('Room is full! Please try another room.')
            if room.state is not GameState.WAITING:
                raise StateError('Game is already in progress!')
            if room.player_by_name(name) is not None:
                raise ValidationError('That name is already taken in this room.')

            player = Player(name=name, sid=sid)
            room.players.append(player)
            room.state = GameState.SETUP
            self.connections.bind(sid, room.code, name)
            logger.info(f"{name} joined room: {room.code}")

            notes = [Notification('roomJoined', {
                'roomCode': room.code,
                'playerName': name,
                'isHost': False,
            }, sid)]
            notes += self._broadcast(room, 'playerJoined', {'playerName': name}, exclude=player)
            notes += self._room_update(room)
            return notes

    def leave_room(self, sid: str) -> List[Notification]:
        """Explicitly leave the current room. The seat stays reclaimable."""
        with self._lock:
            binding = self.connections.lookup(sid)
            notes = self._drop_connection(sid)
            if binding is not None:
                notes.append(Notification('roomLeft', {'roomCode': binding.room_code}, sid))
            return notes

    def disconnect(self, sid: str) -> List[Notification]:
        """Handle a dropped connection."""
        with self._lock:
            return self._drop_connection(sid)

    def _drop_connection(self, sid: str) -> List[Notification]:
        binding = self.connections.unbind(sid)
        if binding is None:
            return []
        room = self.registry.get_room(binding.room_code)
        if room is None:
            return []

        player = room.player_by_sid(sid)
        if player is None:
            return []
        player.sid = None
        logger.info(f"{player.name} disconnected from room: {room.code}")

        notes = self._broadcast(room, 'playerDisconnected', {
            'message': f'{player.name} has left the game.',
            'playerName': player.name,
            'canRejoin': True,
        })
        self.registry.delete_if_empty(room.code)
        return notes

    # =========================================================================
    # Setup
    # =========================================================================

    def set_secret(self, sid: str, value: Any) -> List[Notification]:
        """Commit the sender's secret number during setup."""
        with self._lock:
            room, player = self._resolve(sid)

            if room.state is GameState.WAITING:
                raise StateError('Waiting for an opponent to join.')
            elif room.state in (GameState.PLAYING, GameState.FINISHED):
                raise StateError('Cannot change your secret number once the game has started.')

            secret = normalize_number(value)
            if secret is None:
                raise ValidationError(f'Secret number must be exactly {DIGIT_COUNT} digits!')

            player.secret = secret
            player.ready = True
            opponent = room.opponent_of(player)

            if opponent is not None and opponent.ready:
                return self._start_game(room)

            notes = [Notification('secretNumberSet', {
                'message': 'Secret number set! Waiting for opponent...',
            }, sid)]
            if opponent is not None and opponent.connected:
                notes.append(Notification('opponentReady', {
                    'message': f'{player.name} is ready! Set your secret number to begin.',
                    'playerName': player.name,
                }, opponent.sid))
            return notes

    def _start_game(self, room: Room) -> List[Notification]:
        creator = room.creator
        room.state = GameState.PLAYING
        room.current_turn = creator.player_id
        room.turn_count = 0
        room.winner = None
        for p in room.players:
            p.guesses = []
        logger.info(f"Game started in room: {room.code}")

        players = room.public_players()
        return [
            Notification('gameStart', {
                'message': 'Both players ready! The guessing battle begins!',
                'players': players,
                'currentTurn': creator.name,
                'isYourTurn': p.player_id == creator.player_id,
                'yourSecret': p.secret,
            }, p.sid)
            for p in room.connected_players
        ]

    # =========================================================================
    # Play
    # =========================================================================

    def make_guess(self, sid: str, value: Any) -> List[Notification]:
        """Evaluate the sender's guess against the opponent's secret."""
        with self._lock:
            room, player = self._resolve(sid)

            if room.state is not GameState.PLAYING:
                raise StateError('Game is not in progress.')
            if room.current_turn != player.player_id:
                raise StateError('Not your turn.')

            digits = normalize_number(value)
            if digits is None:
                raise ValidationError(f'Guess must be exactly {DIGIT_COUNT} digits!')

            opponent = room.opponent_of(player)
            if opponent is None or opponent.secret is None:
                raise StateError('Opponent has not set a secret number.')

            result = evaluate_guess(opponent.secret, digits)
            player.guesses.append(Guess(digits, result))
            room.turn_count += 1
            guess_number = len(player.guesses)

            if result.is_win:
                return self._finish_game(room, player, opponent)

            room.current_turn = opponent.player_id
            notes = [Notification('guessResult', {
                'guess': digits,
                'result': result.to_dict(),
                'guessNumber': guess_number,
                'isYourTurn': False,
                'currentTurn': opponent.name,
            }, sid)]
            if opponent.connected:
                notes.append(Notification('opponentGuess', {
                    'playerName': player.name,
                    'guess': digits,
                    'result': result.to_dict(),
                    'guessNumber': guess_number,
                    'isYourTurn': True,
                    'turnMessage': "It's your turn!",
                }, opponent.sid))
            return notes

    def _finish_game(self, room: Room, winner: Player, loser: Player) -> List[Notification]:
        room.state = GameState.FINISHED
        room.winner = winner.player_id
        room.current_turn = None
        winner.score += 1
        logger.info(f"{winner.name} won in room: {room.code}")

        return self._broadcast(room, 'gameWon', {
            'winner': winner.name,
            'secretNumber': loser.secret,
            'secrets': {winner.name: winner.secret, loser.name: loser.secret},
            'totalGuesses': len(winner.guesses),
            'turnCount': room.turn_count,
            'scores': room.scores(),
        })

    def play_again(self, sid: str) -> List[Notification]:
        """Start a rematch in the same room. Scores carry over."""
        with self._lock:
            room, player = self._resolve(sid)

            if room.state is not GameState.FINISHED:
                raise StateError('A new round can only start once the game is finished.')

            for p in room.players:
                p.reset_round()
            room.turn_count = 0
            room.current_turn = None
            room.winner = None
            room.state = GameState.SETUP
            logger.info(f"{player.name} started a new round in room: {room.code}")

            return self._broadcast(room, 'newRoundStarted', {
                'message': 'New round started! Set your secret numbers.',
                'gameState': room.state.value,
                'scores': room.scores(),
                'players': room.public_players(),
            })

    # =========================================================================
    # Reconnection
    # =========================================================================

    def rejoin_room(self, sid: str, room_code: Any, player_name: Any) -> List[Notification]:
        """Reattach a new connection to an existing player record by display name."""
        with self._lock:
            name = _require_name(player_name)
            code = _clean_room_code(room_code)
            self._ensure_unbound(sid)

            room = self.registry.get_room(code)
            if room is None:
                raise NotFoundError('Room no longer exists.')
            player = room.player_by_name(name)
            if player is None:
                raise NotFoundError('You are not a member of this room.')

            if player.connected:
                raise StateError('That player is still connected.')

            player.sid = sid
            self.connections.bind(sid, room.code, name)
            logger.info(f"{name} rejoined room: {room.code}")

            notes = [Notification('roomRejoined', self._snapshot(room, player), sid)]
            notes += self._broadcast(room, 'playerReconnected', {
                'message': f'{name} has reconnected.',
                'playerName': name,
            }, exclude=player)
            return notes

    def _snapshot(self, room: Room, player: Player) -> Dict[str, Any]:
        opponent = room.opponent_of(player)
        snapshot = {
            'roomCode': room.code,
            'playerName': player.name,
            'gameState': room.state.value,
            'isHost': player is room.creator,
            'players': room.public_players(),
            'scores': room.scores(),
            'currentTurn': self._turn_name(room),
            'isYourTurn': room.current_turn == player.player_id,
            'turnCount': room.turn_count,
            'ready': player.ready,
            'yourSecret': player.secret,
            'guesses': [g.to_dict() for g in player.guesses],
            'opponentGuesses': [g.to_dict() for g in opponent.guesses] if opponent else [],
        }
        winner = room.player_by_id(room.winner)
        if room.state is GameState.FINISHED and winner is not None:
            # Secrets are only revealed once the round is over.
            snapshot['winner'] = winner.name
            snapshot['secrets'] = {p.name: p.secret for p in room.players}
            snapshot['totalGuesses'] = len(winner.guesses)
        return snapshot

    # =========================================================================
    # Queries and Maintenance
    # =========================================================================

    def room_stats(self, sid: str) -> List[Notification]:
        with self._lock:
            room, _player = self._resolve(sid)
            return [Notification('roomStats', {
                'roomCode': room.code,
                'gameState': room.state.value,
                'turnCount': room.turn_count,
                'players': room.public_players(),
            }, sid)]

    def sweep_stale(self, max_age_seconds: float) -> List[str]:
        with self._lock:
            return self.registry.sweep_stale(max_age_seconds)

    def room_count(self) -> int:
        with self._lock:
            return len(self.registry)
