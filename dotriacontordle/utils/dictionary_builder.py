"""
Dictionary Builder

Builds the bundled ``{length}.json`` word lists from a plain word list such as
``/usr/share/dict/words``. Only all-lowercase alphabetic lines are kept, which
drops proper nouns and abbreviations.
"""

import argparse
import json
import re
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config.game_settings import DICTIONARY_DIR, MAX_WORD_LENGTH, MIN_WORD_LENGTH

DEFAULT_SOURCE = Path('/usr/share/dict/words')


def words_of_length(lines: Iterable[str], length: int) -> List[str]:
    """Uppercased, deduplicated, sorted words of exactly ``length`` letters."""
    pattern = re.compile(rf'^[a-z]{{{length}}}$')
    return sorted({line.strip().upper() for line in lines if pattern.match(line.strip())})


def build_dictionaries(lines: List[str], output_dir: Path,
                       min_length: int = MIN_WORD_LENGTH,
                       max_length: int = MAX_WORD_LENGTH) -> Dict[int, int]:
    """
    Write one JSON array per length.

    Returns:
        Mapping of length -> word count

    Raises:
        ValueError: If some length has no words; nothing after it is written
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    counts = {}
    for length in range(min_length, max_length + 1):
        words = words_of_length(lines, length)
        if not words:
            raise ValueError(f"No words generated for length {length}")
        (output_dir / f"{length}.json").write_text(json.dumps(words) + '\n', encoding='utf-8')
        counts[length] = len(words)
    return counts


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description='Build per-length dictionaries from a word list.')
    parser.add_argument('--source', type=Path, default=DEFAULT_SOURCE,
                        help=f'Word list, one word per line (default: {DEFAULT_SOURCE})')
    parser.add_argument('--output', type=Path, default=Path(DICTIONARY_DIR),
                        help='Directory for the {length}.json files')
    args = parser.parse_args(argv)

    if not args.source.exists():
        print(f"Source dictionary not found at {args.source}", file=sys.stderr)
        print("Pass an alternate file path with --source /path/to/wordlist", file=sys.stderr)
        return 1

    lines = args.source.read_text(encoding='utf-8', errors='ignore').splitlines()
    try:
        counts = build_dictionaries(lines, args.output)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1

    for length, count in counts.items():
        print(f"length={length} words={count} -> {args.output / f'{length}.json'}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
