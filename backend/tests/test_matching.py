import pytest

from feud.services.games.matching import (
    find_best_match,
    levenshtein_distance,
    normalize_text,
    rank_candidates,
    similarity,
)
from feud.services.games.state import Answer


ANSWERS = (
    Answer('Dog', 500, ('puppy',)),
    Answer('Cat', 300, ('kitty', 'kitten')),
    Answer('Goldfish', 150, ('fish',)),
    Answer('Bird', 50, ('parrot',)),
)


def test_normalize_text_strips_case_punctuation_and_spacing():
    assert normalize_text('  Brush   your TEETH!! ') == 'brush your teeth'
    assert normalize_text("Rock 'n' roll") == 'rock n roll'
    assert normalize_text('') == ''


def test_normalize_text_drops_one_leading_article():
    assert normalize_text('The Dog') == 'dog'
    assert normalize_text('a DOG!') == 'dog'
    assert normalize_text('the the end') == 'the end'
    assert normalize_text('the') == 'the'
    assert normalize_text('Apple') == 'apple'
    assert similarity('a DOG!', 'dog') == 1.0


@pytest.mark.parametrize('a,b,expected', [
    ('kitten', 'sitting', 3),
    ('', 'abc', 3),
    ('abc', '', 3),
    ('flaw', 'lawn', 2),
    ('same', 'same', 0),
])
def test_levenshtein_distance(a, b, expected):
    assert levenshtein_distance(a, b) == expected
    assert levenshtein_distance(b, a) == expected


def test_similarity_bounds():
    assert similarity('', '') == 1.0
    assert similarity('!!!', '   ') == 1.0
    assert similarity('abc', 'xyz') == 0.0
    assert 0.0 <= similarity('coffee', 'tea') <= 1.0


def test_similarity_tolerates_plurals_and_noise():
    assert similarity('Dog', 'dogs') >= 0.7
    assert similarity('a DOG!', 'dog') >= 0.7
    assert similarity('Dog', 'dogs') == pytest.approx(0.75)


def test_rank_candidates_orders_by_confidence_and_skips_revealed():
    revealed = (False, False, False, False)
    ranked = rank_candidates('kitty', ANSWERS, revealed)
    assert ranked[0].index == 1
    assert ranked[0].confidence == 1.0
    assert all(earlier.confidence >= later.confidence for earlier, later in zip(ranked, ranked[1:]))

    ranked = rank_candidates('kitty', ANSWERS, (False, True, False, False))
    assert 1 not in [c.index for c in ranked]


def test_rank_candidates_uses_aliases_and_min_confidence():
    revealed = (False,) * 4
    ranked = rank_candidates('fish', ANSWERS, revealed, min_confidence=0.9)
    assert [c.index for c in ranked] == [2]

    assert rank_candidates('zzzzzz', ANSWERS, revealed, min_confidence=0.5) == []


def test_find_best_match_flags_threshold():
    revealed = (False,) * 4
    result = find_best_match('puppy', ANSWERS, revealed)
    assert result.matched is True
    assert result.answer_index == 0
    assert result.confidence == 1.0

    weak = find_best_match('bard', ANSWERS, revealed, threshold=0.9)
    assert weak.answer_index == 3
    assert weak.matched is False


def test_find_best_match_with_everything_revealed():
    result = find_best_match('dog', ANSWERS, (True,) * 4)
    assert result.matched is False
    assert result.answer_index is None
    assert result.confidence == 0.0
