"""Deterministic text metrics: word counts, syllables, readability, keyword density."""

import re
from collections import Counter
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List

from pagescore.constants import (
    GRADE_MAPPING,
    MIN_KEYWORD_LENGTH,
    MIN_KEYWORD_OCCURRENCES,
    STOP_WORDS,
    TOP_KEYWORDS_COUNT,
)
from pagescore.utils import clamp, round_half_up

CJK_PATTERN = re.compile(r'[\u4e00-\u9fff]')
LATIN_WORD_PATTERN = re.compile(r'[A-Za-z]+')
SENTENCE_END_PATTERN = re.compile(r'[.!?。！？]+')
TOKEN_PATTERN = re.compile(r'[a-z]+|[\u4e00-\u9fff]')


def count_words(text: str) -> int:
    """Count words: every CJK character plus every Latin word."""
    return len(CJK_PATTERN.findall(text)) + len(LATIN_WORD_PATTERN.findall(text))


def count_sentences(text: str) -> int:
    """Count runs of sentence-ending punctuation, at least one."""
    return max(1, len(SENTENCE_END_PATTERN.findall(text)))


def count_syllables(word: str) -> int:
    """Count syllables in a word (simple approximation).

    Args:
        word: Word to analyze

    Returns:
        Estimated syllable count, at least 1
    """
    word = word.lower()
    vowels = 'aeiouy'
    syllable_count = 0
    previous_was_vowel = False

    for char in word:
        is_vowel = char in vowels
        if is_vowel and not previous_was_vowel:
            syllable_count += 1
        previous_was_vowel = is_vowel

    # Adjust for silent 'e'
    if word.endswith('e') and syllable_count > 1:
        syllable_count -= 1

    return max(1, syllable_count)


def count_text_syllables(text: str) -> int:
    """Syllables of all Latin words plus one per CJK character."""
    latin = sum(count_syllables(word) for word in LATIN_WORD_PATTERN.findall(text))
    return latin + len(CJK_PATTERN.findall(text))


def flesch_reading_ease(words: int, sentences: int, syllables: int) -> float:
    """Flesch Reading Ease clamped to 0-100 with one decimal.

    Returns 0.0 when there are no words.
    """
    if words == 0 or sentences == 0:
        return 0.0

    score = 206.835 - 1.015 * (words / sentences) - 84.6 * (syllables / words)
    return round_half_up(clamp(score), 1)


def score_to_grade(score: float, words: int = 1) -> str:
    """Convert a Flesch Reading Ease score to a grade level description."""
    if words == 0:
        return "N/A"
    for (low, _high), grade in GRADE_MAPPING.items():
        if score >= low:
            return grade
    return "College Graduate"


def tokenize(text: str) -> List[str]:
    """Lowercased keyword tokens with stop words and short tokens removed."""
    return [
        token for token in TOKEN_PATTERN.findall(text.lower())
        if len(token) >= MIN_KEYWORD_LENGTH and token not in STOP_WORDS
    ]


def keyword_density(text: str) -> Dict[str, float]:
    """Percentage share of each repeated keyword among all keyword tokens.

    Only tokens occurring more than once survive. Densities carry two
    decimals; the TOP_KEYWORDS_COUNT densest terms are kept, ties in order
    of first appearance.
    """
    tokens = tokenize(text)
    if not tokens:
        return {}

    total = len(tokens)
    counts = Counter(tokens)
    densities = []
    for token, count in counts.items():
        if count <= MIN_KEYWORD_OCCURRENCES:
            continue
        basis_points = (Decimal(count * 10000) / Decimal(total)).quantize(
            Decimal(1), rounding=ROUND_HALF_UP
        )
        densities.append((token, float(basis_points / 100)))

    densities.sort(key=lambda item: item[1], reverse=True)
    return dict(densities[:TOP_KEYWORDS_COUNT])


def cjk_ratio(text: str) -> float:
    """Share of CJK characters in text."""
    if not text:
        return 0.0
    return len(CJK_PATTERN.findall(text)) / len(text)
