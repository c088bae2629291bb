"""Fuzzy matching of a spoken guess against a round's answer board.

The host types what a contestant said; these helpers rank the unrevealed
answers so the host can pick one. Nothing here reveals an answer: the
result is only ever a suggestion.

``normalize_text`` goes one step past lower-casing, punctuation removal and
whitespace collapsing: it also drops a single leading "a", "an" or "the".
So "a DOG!" and "dog" score 1.0 instead of the 0.6 the bare edit-distance
formula gives.
"""

import re
from typing import List, NamedTuple, Optional, Sequence

from .state import Answer

DEFAULT_THRESHOLD = 0.7
DEFAULT_MIN_CONFIDENCE = 0.3

_PUNCTUATION = re.compile(r'[^\w\s]')
_WHITESPACE = re.compile(r'\s+')
# Hosts type what they hear: "a dog" should land on "Dog".
_LEADING_ARTICLE = re.compile(r'^(?:a|an|the) (?=\S)')


class Candidate(NamedTuple):
    index: int
    confidence: float


class MatchResult(NamedTuple):
    matched: bool
    answer_index: Optional[int]
    confidence: float


def normalize_text(text: str) -> str:
    text = _PUNCTUATION.sub('', text.lower().strip())
    text = _WHITESPACE.sub(' ', text).strip()
    return _LEADING_ARTICLE.sub('', text)


def levenshtein_distance(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(
                previous[j] + 1,         # deletion
                current[j - 1] + 1,      # insertion
                previous[j - 1] + cost,  # substitution
            ))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Return a score in [0, 1]; 1 means identical after normalization."""
    na, nb = normalize_text(a), normalize_text(b)
    if na == nb:
        return 1.0
    longest = max(len(na), len(nb))
    return 1.0 - levenshtein_distance(na, nb) / longest


def _answer_confidence(guess: str, answer: Answer) -> float:
    best = similarity(guess, answer.text)
    for alias in answer.aliases:
        best = max(best, similarity(guess, alias))
    return best


def rank_candidates(
    guess: str,
    answers: Sequence[Answer],
    revealed: Sequence[bool],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> List[Candidate]:
    """Unrevealed answers scoring at least ``min_confidence``, best first.

    Each answer scores the better of its text and any alias. Ties keep
    board order.
    """
    candidates = []
    for index, answer in enumerate(answers):
        if revealed[index]:
            continue
        confidence = _answer_confidence(guess, answer)
        if confidence >= min_confidence:
            candidates.append(Candidate(index, confidence))
    candidates.sort(key=lambda c: c.confidence, reverse=True)
    return candidates


def find_best_match(
    guess: str,
    answers: Sequence[Answer],
    revealed: Sequence[bool],
    threshold: float = DEFAULT_THRESHOLD,
) -> MatchResult:
    ranked = rank_candidates(guess, answers, revealed, min_confidence=0.0)
    if not ranked or ranked[0].confidence <= 0:
        return MatchResult(False, None, 0.0)
    best = ranked[0]
    return MatchResult(best.confidence >= threshold, best.index, best.confidence)
