import pytest
from hypothesis import given, strategies as st

from core.similarity import dice_coefficient, levenshtein_distance, levenshtein_similarity, title_similarity


def test_identical_strings_are_fully_similar():
    assert dice_coefficient("gpt-4 turbo", "gpt-4 turbo") == 1.0


def test_dice_over_bigrams():
    assert dice_coefficient("night", "nacht") == pytest.approx(0.25)


def test_dice_ignores_whitespace():
    assert dice_coefficient("gpt 4", "gpt4") == 1.0


def test_short_strings_have_no_bigrams():
    assert dice_coefficient("a", "b") == 0.0


def test_title_similarity_is_case_insensitive():
    assert title_similarity("OpenAI GPT-4", "openai gpt-4") == 1.0


@given(st.text(max_size=30), st.text(max_size=30))
def test_dice_is_bounded(first, second):
    assert 0.0 <= dice_coefficient(first, second) <= 1.0


def test_levenshtein_distance():
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3


def test_levenshtein_similarity():
    assert levenshtein_similarity("", "") == 1.0
    assert levenshtein_similarity("abcd", "abce") == pytest.approx(0.75)
