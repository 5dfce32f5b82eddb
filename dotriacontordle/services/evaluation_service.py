"""
Evaluation Service

Implements the letter scoring algorithm and the keyboard state aggregation.
Both functions are pure; ``evaluate_guess`` runs once per (guess, board) pair on
every submission and is the hot path of the game.
"""

from typing import Dict, List, Optional

from ..models.game import EvaluationResult, TileState

# Higher rank wins when merging keyboard state
_KEYBOARD_RANK: Dict[TileState, int] = {
    TileState.ABSENT: 1,
    TileState.PRESENT: 2,
    TileState.CORRECT: 3,
}


def evaluate_guess(guess: str, answer: str, word_length: Optional[int] = None) -> EvaluationResult:
    """
    Score one guess against one answer.

    First pass marks exact position matches (CORRECT) and consumes those letters
    from the answer; second pass marks PRESENT while unconsumed copies of the
    letter remain, ABSENT otherwise. An exact match is never downgraded by a
    duplicate elsewhere, and a letter appearing k times in the answer earns at
    most k non-absent marks.

    Args:
        guess: Guessed word, any case
        answer: Target word, any case
        word_length: Expected length; defaults to the answer's length

    Returns:
        EvaluationResult with one TileState per position

    Raises:
        ValueError: If either word does not have ``word_length`` letters
    """
    guess_upper = guess.upper()
    answer_upper = answer.upper()
    if word_length is None:
        word_length = len(answer_upper)

    if len(guess_upper) != word_length or len(answer_upper) != word_length:
        raise ValueError(f"Words must be {word_length} letters")

    states: List[TileState] = [TileState.ABSENT] * word_length
    remaining: Dict[str, int] = {}
    for letter in answer_upper:
        remaining[letter] = remaining.get(letter, 0) + 1

    # First pass: exact matches
    correct_count = 0
    for i in range(word_length):
        letter = guess_upper[i]
        if letter == answer_upper[i]:
            states[i] = TileState.CORRECT
            remaining[letter] -= 1
            correct_count += 1

    # Second pass: displaced letters while copies remain
    if correct_count < word_length:
        for i in range(word_length):
            if states[i] is TileState.CORRECT:
                continue
            letter = guess_upper[i]
            if remaining.get(letter, 0) > 0:
                states[i] = TileState.PRESENT
                remaining[letter] -= 1

    return EvaluationResult(states=states, is_correct=correct_count == word_length)


def update_keyboard_state(current: Dict[str, TileState],
                          guess: str,
                          states: List[TileState]) -> Dict[str, TileState]:
    """
    Merge one evaluated guess into the keyboard map.

    A letter's state only moves up the order CORRECT > PRESENT > ABSENT > unseen,
    so CORRECT is never downgraded and PRESENT never becomes ABSENT.

    Returns:
        A new dict; ``current`` is left untouched
    """
    merged = dict(current)
    guess_upper = guess.upper()

    for letter, new_state in zip(guess_upper, states):
        new_rank = _KEYBOARD_RANK.get(new_state, 0)
        if new_rank == 0:
            continue
        existing = merged.get(letter)
        if existing is None or new_rank > _KEYBOARD_RANK.get(existing, 0):
            merged[letter] = new_state

    return merged


def replay_keyboard_state(guesses: List[str], answers: List[str],
                          solved_at: List[Optional[int]]) -> Dict[str, TileState]:
    """
    Rebuild the keyboard map from the full guess history.

    A board contributes every guess up to and including the one that solved it
    and nothing afterwards.
    """
    keyboard: Dict[str, TileState] = {}
    for guess_index, guess in enumerate(guesses):
        for answer, solved_index in zip(answers, solved_at):
            if solved_index is not None and guess_index > solved_index:
                continue
            evaluation = evaluate_guess(guess, answer)
            keyboard = update_keyboard_state(keyboard, guess, evaluation.states)
    return keyboard
