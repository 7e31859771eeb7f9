"""
Pure game logic for Break The Code: guess evaluation, input validation and
room code generation. Nothing in here touches room state or the network.
"""

import random
import re
import string
from typing import Any, NamedTuple, Optional, Union

from config import (
    DIGIT_COUNT,
    MAX_NUMBER,
    MAX_PLAYER_NAME_LENGTH,
    MIN_NUMBER,
    MIN_PLAYER_NAME_LENGTH,
    PLAYER_NAME_PATTERN,
    ROOM_CODE_LENGTH,
)

ROOM_CODE_CHARS = string.ascii_uppercase + string.digits

_name_re = re.compile(PLAYER_NAME_PATTERN)
_room_code_re = re.compile(r'^[A-Z0-9]+$')


class GuessResult(NamedTuple):
    """Outcome of comparing one guess against a secret."""

    correct_place: int
    wrong_place: int

    @property
    def is_win(self) -> bool:
        return self.correct_place == DIGIT_COUNT

    def to_dict(self) -> dict:
        return {'correctPlace': self.correct_place, 'wrongPlace': self.wrong_place}


# =============================================================================
# Number Handling
# =============================================================================


def normalize_number(value: Any) -> Optional[str]:
    """
    Convert a secret or guess into its zero-padded string form.

    Accepts an int in [MIN_NUMBER, MAX_NUMBER] or a string of exactly
    DIGIT_COUNT decimal digits. Returns None for anything else.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        if MIN_NUMBER <= value <= MAX_NUMBER:
            return str(value).zfill(DIGIT_COUNT)
        return None
    if isinstance(value, str):
        if len(value) == DIGIT_COUNT and value.isascii() and value.isdigit():
            return value
    return None


def validate_number(value: Any) -> bool:
    """Validate that a value is a valid 4-digit secret/guess number."""
    return normalize_number(value) is not None


def evaluate_guess(secret: Union[str, int], guess: Union[str, int]) -> GuessResult:
    """
    Compare a guess with a secret.

    Two passes: exact position matches first, then each remaining guess
    digit claims the first unused secret position holding the same digit.
    Repeated digits therefore never count more often than they occur in
    the secret.

    Raises:
        ValueError: If either argument is not a valid 4-digit number.
    """
    secret_str = normalize_number(secret)
    guess_str = normalize_number(guess)
    if secret_str is None or guess_str is None:
        raise ValueError(f'Secret and guess must be {DIGIT_COUNT}-digit numbers.')

    secret_used = [False] * DIGIT_COUNT
    guess_used = [False] * DIGIT_COUNT

    correct_place = 0
    for i in range(DIGIT_COUNT):
        if secret_str[i] == guess_str[i]:
            correct_place += 1
            secret_used[i] = guess_used[i] = True

    wrong_place = 0
    for i in range(DIGIT_COUNT):
        if guess_used[i]:
            continue
        for j in range(DIGIT_COUNT):
            if not secret_used[j] and secret_str[j] == guess_str[i]:
                wrong_place += 1
                secret_used[j] = True
                break

    return GuessResult(correct_place, wrong_place)


# =============================================================================
# Names and Room Codes
# =============================================================================


def clean_player_name(value: Any) -> Optional[str]:
    """Return the trimmed display name if it is valid, otherwise None."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not MIN_PLAYER_NAME_LENGTH <= len(trimmed) <= MAX_PLAYER_NAME_LENGTH:
        return None
    if not _name_re.match(trimmed):
        return None
    return trimmed


def validate_room_code(value: Any) -> bool:
    """Room codes are exactly ROOM_CODE_LENGTH uppercase letters or digits."""
    if not isinstance(value, str):
        return False
    return len(value) == ROOM_CODE_LENGTH and bool(_room_code_re.match(value))


def gen_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    """Generate a random room code."""
    return ''.join(random.choice(ROOM_CODE_CHARS) for _ in range(length))
