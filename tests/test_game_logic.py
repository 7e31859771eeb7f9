"""
Unit tests for game logic functions.
"""

import itertools

import pytest
from config import ROOM_CODE_LENGTH
from game_logic import (
    GuessResult,
    clean_player_name,
    evaluate_guess,
    gen_room_code,
    normalize_number,
    validate_number,
    validate_room_code,
)


class TestEvaluateGuess:
    """Tests for the evaluate_guess function."""

    def test_exact_match(self):
        """Identical numbers are a win."""
        result = evaluate_guess("1234", "1234")
        assert result == GuessResult(4, 0)
        assert result.is_win

    def test_no_common_digits(self):
        assert evaluate_guess("1234", "5678") == GuessResult(0, 0)

    def test_swapped_pair(self):
        """Two in place, two present elsewhere."""
        assert evaluate_guess("1234", "1243") == GuessResult(2, 2)

    def test_all_wrong_place(self):
        assert evaluate_guess("1234", "4321") == GuessResult(0, 4)

    def test_repeated_digits_swapped(self):
        assert evaluate_guess("1122", "2211") == GuessResult(0, 4)

    def test_repeated_digit_in_secret(self):
        """Extra 1s in the guess find no unused 1 in the secret."""
        assert evaluate_guess("1111", "1112") == GuessResult(3, 0)

    def test_repeated_digit_in_guess(self):
        """Only two 1s exist in the secret, both matched in place."""
        assert evaluate_guess("1123", "1111") == GuessResult(2, 0)

    def test_repeated_digit_claims_first_unused(self):
        """One 1 in the secret can satisfy only one misplaced 1."""
        assert evaluate_guess("1234", "5115") == GuessResult(0, 1)

    def test_leading_zeros(self):
        assert evaluate_guess("0012", "0021") == GuessResult(2, 2)

    def test_integer_inputs_are_zero_padded(self):
        """Integers behave like their 4-digit zero-padded strings."""
        assert evaluate_guess(12, "0012") == GuessResult(4, 0)
        assert evaluate_guess(7, 7000) == GuessResult(2, 2)

    def test_result_dict(self):
        assert evaluate_guess("1234", "1243").to_dict() == {'correctPlace': 2, 'wrongPlace': 2}

    def test_invalid_input_raises(self):
        with pytest.raises(ValueError):
            evaluate_guess("123", "1234")
        with pytest.raises(ValueError):
            evaluate_guess("1234", 10000)

    def test_bounds_and_win_condition(self):
        """Sum never exceeds 4, and 4 in place only for equal numbers."""
        samples = ["0000", "1111", "1122", "1234", "4321", "9090", "0909", "1123", "2211", "9876"]
        for secret, guess in itertools.product(samples, repeat=2):
            result = evaluate_guess(secret, guess)
            assert result.correct_place + result.wrong_place <= 4
            assert (result.correct_place == 4) == (secret == guess)

    def test_correct_place_symmetric(self):
        for secret, guess in [("1123", "1111"), ("1234", "5115"), ("9090", "0909")]:
            assert evaluate_guess(secret, guess).correct_place == evaluate_guess(guess, secret).correct_place


class TestNormalizeNumber:
    """Tests for number parsing and validation."""

    def test_integers(self):
        assert normalize_number(0) == "0000"
        assert normalize_number(42) == "0042"
        assert normalize_number(9999) == "9999"

    def test_integers_out_of_range(self):
        assert normalize_number(-1) is None
        assert normalize_number(10000) is None

    def test_digit_strings(self):
        assert normalize_number("0042") == "0042"
        assert normalize_number("1234") == "1234"

    def test_invalid_strings(self):
        """Wrong length, spaces or non-digits are rejected."""
        for value in ["", "123", "12345", " 1234", "12a4", "-123", "12.4"]:
            assert normalize_number(value) is None

    def test_other_types(self):
        assert normalize_number(None) is None
        assert normalize_number(True) is None
        assert normalize_number(12.0) is None

    def test_validate_number(self):
        assert validate_number(1234) is True
        assert validate_number("0000") is True
        assert validate_number("abcd") is False


class TestPlayerName:
    """Tests for display name validation."""

    def test_valid_names(self):
        assert clean_player_name("Al") == "Al"
        assert clean_player_name("  Code Breaker_1 ") == "Code Breaker_1"
        assert clean_player_name("a-b") == "a-b"

    def test_length_bounds(self):
        assert clean_player_name("A") is None
        assert clean_player_name("x" * 20) == "x" * 20
        assert clean_player_name("x" * 21) is None
        assert clean_player_name("   ") is None

    def test_invalid_characters(self):
        assert clean_player_name("<script>") is None
        assert clean_player_name("name!") is None

    def test_non_string(self):
        assert clean_player_name(None) is None
        assert clean_player_name(123) is None


class TestRoomCodes:
    """Tests for room code generation and validation."""

    def test_default_length(self):
        """Generated code should have default length."""
        assert len(gen_room_code()) == ROOM_CODE_LENGTH

    def test_generated_codes_validate(self):
        for _ in range(50):
            assert validate_room_code(gen_room_code())

    def test_uniqueness(self):
        """Generated codes should be unique (statistically)."""
        codes = [gen_room_code() for _ in range(100)]
        assert len(set(codes)) >= 95

    def test_invalid_codes(self):
        assert validate_room_code("abc123") is False
        assert validate_room_code("ABC12") is False
        assert validate_room_code("ABC1234") is False
        assert validate_room_code("ABC-12") is False
        assert validate_room_code(None) is False
