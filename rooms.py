"""
In-memory room storage.

Holds the Room/Player/Guess records, the registry that owns live rooms and
the connection index that routes a Socket.IO sid to its room. These are
plain containers; the game rules live in game.py.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple

from config import MAX_PLAYERS, ROOM_CODE_LENGTH
from game_logic import GuessResult, gen_room_code

logger = logging.getLogger(__name__)


class GameState(str, Enum):
    WAITING = 'waiting'
    SETUP = 'setup'
    PLAYING = 'playing'
    FINISHED = 'finished'


@dataclass(frozen=True)
class Guess:
    digits: str
    result: GuessResult
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {'guess': self.digits, 'result': self.result.to_dict(), 'timestamp': self.timestamp}


@dataclass
class Player:
    """
    A player seat inside a room.

    ``player_id`` is stable for the lifetime of the room. ``sid`` is the
    current Socket.IO connection and is None while the player is
    disconnected and waiting to rejoin.
    """

    name: str
    sid: Optional[str]
    player_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    secret: Optional[str] = None
    ready: bool = False
    guesses: List[Guess] = field(default_factory=list)
    score: int = 0

    @property
    def connected(self) -> bool:
        return self.sid is not None

    def reset_round(self) -> None:
        """Clear everything except identity and score."""
        self.secret = None
        self.ready = False
        self.guesses = []

    def public_info(self) -> dict:
        return {
            'name': self.name,
            'ready': self.ready,
            'score': self.score,
            'connected': self.connected,
            'guessCount': len(self.guesses),
        }


@dataclass
class Room:
    code: str
    players: List[Player] = field(default_factory=list)
    state: GameState = GameState.WAITING
    current_turn: Optional[str] = None
    turn_count: int = 0
    winner: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    @property
    def is_full(self) -> bool:
        return len(self.players) >= MAX_PLAYERS

    @property
    def creator(self) -> Optional[Player]:
        return self.players[0] if self.players else None

    @property
    def connected_players(self) -> List[Player]:
        return [p for p in self.players if p.connected]

    def player_by_sid(self, sid: str) -> Optional[Player]:
        for p in self.players:
            if p.sid == sid:
                return p
        return None

    def player_by_id(self, player_id: Optional[str]) -> Optional[Player]:
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def player_by_name(self, name: str) -> Optional[Player]:
        for p in self.players:
            if p.name == name:
                return p
        return None

    def opponent_of(self, player: Player) -> Optional[Player]:
        for p in self.players:
            if p.player_id != player.player_id:
                return p
        return None

    def public_players(self) -> List[dict]:
        return [p.public_info() for p in self.players]

    def scores(self) -> List[dict]:
        return [{'name': p.name, 'score': p.score} for p in self.players]


# =============================================================================
# Room Registry
# =============================================================================


class RoomRegistry:
    """Live rooms keyed by room code."""

    def __init__(self, code_factory: Callable[[int], str] = gen_room_code) -> None:
        self._rooms: Dict[str, Room] = {}
        self._code_factory = code_factory

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, code: object) -> bool:
        return code in self._rooms

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def _unique_code(self) -> str:
        code = self._code_factory(ROOM_CODE_LENGTH)
        while code in self._rooms:
            logger.debug(f"Room code collision on {code}, regenerating")
            code = self._code_factory(ROOM_CODE_LENGTH)
        return code

    def create_room(self, sid: str, player_name: str) -> Tuple[Room, Player]:
        """Create a room in the waiting state with the creator as its only player."""
        room = Room(code=self._unique_code())
        creator = Player(name=player_name, sid=sid)
        room.players.append(creator)
        self._rooms[room.code] = room
        logger.info(f"Room created: {room.code} by {player_name}")
        return room, creator

    def get_room(self, code: Optional[str]) -> Optional[Room]:
        if not code:
            return None
        return self._rooms.get(code)

    def delete(self, code: str) -> None:
        self._rooms.pop(code, None)

    def delete_if_empty(self, code: str) -> bool:
        """Remove the room once no connected players remain. Returns True if removed."""
        room = self._rooms.get(code)
        if room is None or room.connected_players:
            return False
        del self._rooms[code]
        logger.info(f"Empty room deleted: {code}")
        return True

    def sweep_stale(self, max_age_seconds: float, now: Optional[float] = None) -> List[str]:
        """
        Remove empty rooms created more than ``max_age_seconds`` ago.

        Rooms with at least one connected player are never removed, whatever
        their age.
        """
        now = time.time() if now is None else now
        removed = []
        for code, room in list(self._rooms.items()):
            if now - room.created_at > max_age_seconds and not room.connected_players:
                del self._rooms[code]
                removed.append(code)
        if removed:
            logger.info(f"Cleaned up {len(removed)} stale room(s): {', '.join(removed)}")
        return removed


# =============================================================================
# Connection Index
# =============================================================================


class Binding(NamedTuple):
    room_code: str
    player_name: str


class ConnectionIndex:
    """Routing table from connection sid to (room code, display name)."""

    def __init__(self) -> None:
        self._bindings: Dict[str, Binding] = {}

    def __len__(self) -> int:
        return len(self._bindings)

    def bind(self, sid: str, room_code: str, player_name: str) -> None:
        self._bindings[sid] = Binding(room_code, player_name)

    def lookup(self, sid: str) -> Optional[Binding]:
        return self._bindings.get(sid)

    def unbind(self, sid: str) -> Optional[Binding]:
        return self._bindings.pop(sid, None)
