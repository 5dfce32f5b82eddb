"""
Game Configuration Constants Module

This module defines the game rule constants, the puzzle profile limits and
the bundled dictionaries. All game parameters are centralized here so that a
profile (word length x board count x guess limit) can be normalized in one place.
"""

import json
import math
import os
from functools import lru_cache
from typing import Dict, Final, List, Optional

# Profile limits
MIN_WORD_LENGTH: Final[int] = 4
MAX_WORD_LENGTH: Final[int] = 10
MIN_BOARD_COUNT: Final[int] = 1
MAX_BOARD_COUNT: Final[int] = 128
MIN_GUESS_COUNT: Final[int] = 1

# Default profile: 32 boards of six-letter words with 37 guesses
DEFAULT_WORD_LENGTH: Final[int] = 6
DEFAULT_BOARD_COUNT: Final[int] = 32
DEFAULT_MAX_GUESSES: Final[int] = 37

# Daily seed = daily_number * DAILY_SEED_MULTIPLIER + DAILY_SEED_OFFSET
DAILY_SEED_MULTIPLIER: Final[int] = 12345
DAILY_SEED_OFFSET: Final[int] = 67890

DICTIONARY_DIR: Final[str] = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'dictionaries')

KEYBOARD_ROWS: Final[List[List[str]]] = [
    ['Q', 'W', 'E', 'R', 'T', 'Y', 'U', 'I', 'O', 'P'],
    ['A', 'S', 'D', 'F', 'G', 'H', 'J', 'K', 'L'],
    ['ENTER', 'Z', 'X', 'C', 'V', 'B', 'N', 'M', 'BACKSPACE'],
]


def create_profile_id(word_length: int, board_count: int, max_guesses: int) -> str:
    """Deterministic storage namespace for a puzzle shape, e.g. ``6x32x37``."""
    return f"{word_length}x{board_count}x{max_guesses}"


def _to_safe_integer(value, fallback: int) -> int:
    # bool is an int subclass but never a meaningful profile value
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return fallback
    if not math.isfinite(value):
        return fallback
    # Round half up to match the stored client format
    return int(math.floor(value + 0.5))


def _clamp(value: int, minimum: int, maximum: int) -> int:
    return min(maximum, max(minimum, value))


def normalize_profile(word_length=None, board_count=None, max_guesses=None) -> Dict[str, int]:
    """
    Clamp raw profile values into their valid ranges.

    Malformed values (strings, NaN, None) fall back to the defaults rather than
    being rejected, since profile input comes from settings and stored snapshots.

    Returns:
        dict: ``word_length``, ``board_count``, ``max_guesses``
    """
    return {
        'word_length': _clamp(_to_safe_integer(word_length, DEFAULT_WORD_LENGTH),
                              MIN_WORD_LENGTH, MAX_WORD_LENGTH),
        'board_count': _clamp(_to_safe_integer(board_count, DEFAULT_BOARD_COUNT),
                              MIN_BOARD_COUNT, MAX_BOARD_COUNT),
        'max_guesses': max(MIN_GUESS_COUNT, _to_safe_integer(max_guesses, DEFAULT_MAX_GUESSES)),
    }


def default_max_guesses(word_length: int, board_count: int) -> int:
    """Guess limit suggested for a profile: one spare guess per extra letter."""
    return max(MIN_GUESS_COUNT, board_count + word_length - 1)


def has_dictionary_for_length(word_length: int) -> bool:
    return os.path.isfile(_dictionary_path(word_length))


def _dictionary_path(word_length: int) -> str:
    return os.path.join(DICTIONARY_DIR, f"{word_length}.json")


@lru_cache(maxsize=None)
def load_dictionary(word_length: int) -> List[str]:
    """
    Load the bundled dictionary for one word length.

    Args:
        word_length: Exact length of the words to load

    Returns:
        List[str]: Deduplicated uppercase words in file order, or an empty
        list when no dictionary exists for the length

    Raises:
        ValueError: If the file is not a JSON array of strings
    """
    path = _dictionary_path(word_length)
    if not os.path.isfile(path):
        return []

    with open(path, 'r', encoding='utf-8') as f:
        word_list = json.load(f)

    if not isinstance(word_list, list):
        raise ValueError(f"Dictionary {path} must contain an array of words")

    seen = set()
    words = []
    for word in word_list:
        if not isinstance(word, str):
            raise ValueError(f"Dictionary {path} contains a non-string entry: {word!r}")
        upper = word.upper()
        if len(upper) != word_length or not upper.isalpha() or upper in seen:
            continue
        seen.add(upper)
        words.append(upper)
    return words


def validate_word_list_integrity(word_length: int, words: Optional[List[str]] = None) -> bool:
    """
    Validates the integrity and consistency of a dictionary.

    This function performs validation to ensure:
    1. Length validation: All words must have exactly ``word_length`` characters
    2. Character validation: Only alphabetic characters allowed
    3. Uniqueness validation: No duplicate entries
    4. Format validation: Consistent uppercase formatting

    Returns:
        bool: True if the word list passes all validation checks

    Raises:
        ValueError: If any validation check fails with detailed error message
    """
    if words is None:
        words = load_dictionary(word_length)

    if not words:
        raise ValueError(f"Word list for length {word_length} cannot be empty")

    for index, word in enumerate(words):
        if len(word) != word_length:
            raise ValueError(f"Word at index {index} '{word}' is not {word_length} characters long")

        if not word.isalpha():
            raise ValueError(f"Word at index {index} '{word}' contains non-alphabetic characters")

        if not word.isupper():
            raise ValueError(f"Word at index {index} '{word}' is not in uppercase format")

    if len(words) != len(set(words)):
        duplicates = sorted({word for word in words if words.count(word) > 1})
        raise ValueError(f"Duplicate words found in word list: {duplicates}")

    return True


def get_word_statistics(word_length: int) -> dict:
    """
    Summarize one bundled dictionary.

    Returns:
        dict: total_words, avg_vowel_count and the five most common letters
    """
    words = load_dictionary(word_length)
    if not words:
        return {"error": f"No dictionary for length {word_length}"}

    vowels = set('AEIOU')
    total_vowels = sum(len([char for char in word if char in vowels]) for word in words)

    letter_frequency: Dict[str, int] = {}
    for word in words:
        for char in word:
            letter_frequency[char] = letter_frequency.get(char, 0) + 1

    return {
        "total_words": len(words),
        "avg_vowel_count": round(total_vowels / len(words), 2),
        "most_common_letters": sorted(letter_frequency.items(), key=lambda x: x[1], reverse=True)[:5]
    }


if __name__ == "__main__":

    try:
        for length in range(MIN_WORD_LENGTH, MAX_WORD_LENGTH + 1):
            validate_word_list_integrity(length)
            print(f" Length {length}: {get_word_statistics(length)}")

        print(" All dictionary validation checks passed")
    except ValueError as config_error:
        print(f" Dictionary validation failed: {config_error}")
        exit(1)
