import random

from hypothesis import given, strategies as st

from composition.voice import (
    CompositionSession,
    clean_summary,
    get_persona_stats,
    humanize,
    select_closer,
    select_rhetorical_device,
    truncate_to_length,
    voice_for_source,
)
from core.personas import CASUAL, CONVERSATIONAL, PRECISE_TONE
from services.config import PersonaConfig


class AlwaysRandom(random.Random):
    """random() pinned to a value so chance() branches can be forced."""

    def __init__(self, value: float):
        super().__init__(0)
        self.value = value

    def random(self):
        return self.value


@given(st.integers(min_value=0, max_value=10_000))
def test_opener_never_repeats_back_to_back(seed):
    session = CompositionSession(seed=seed)
    openers = [session.pick_opener(PRECISE_TONE.openers) for _ in range(20)]
    assert all(a != b for a, b in zip(openers, openers[1:]))


def test_single_opener_pool_may_repeat():
    session = CompositionSession(seed=1)
    assert session.pick_opener(["Only:"]) == session.pick_opener(["Only:"]) == "Only:"


def test_reset_forgets_last_opener():
    session = CompositionSession(seed=3)
    session.pick_opener(PRECISE_TONE.openers)
    session.reset()
    assert session.last_opener is None


def test_same_seed_same_choices():
    first = CompositionSession(seed=42)
    second = CompositionSession(seed=42)
    assert [first.pick_opener(CASUAL.openers) for _ in range(5)] == [
        second.pick_opener(CASUAL.openers) for _ in range(5)
    ]


def test_clean_summary():
    assert clean_summary("  A   groundbreaking model!!  ") == "A significant model."
    assert clean_summary("") == ""


def test_source_voice_overrides_style():
    assert voice_for_source("TechCrunch AI", "casual") == "professional"
    assert voice_for_source("Some Feed", "conversational") == "conversational"
    assert voice_for_source("Some Feed", "unknown") == "casual"


def test_rhetorical_device_skipped_for_long_summaries():
    assert select_rhetorical_device("x" * 181, CompositionSession(seed=1)) is None
    assert select_rhetorical_device("short", CompositionSession(seed=1))


def test_closer_chance_is_injectable():
    config = PersonaConfig(closer_chance=0.3)
    assert select_closer("casual", config, CompositionSession(rng=AlwaysRandom(0.99))) is None
    assert select_closer("casual", config, CompositionSession(rng=AlwaysRandom(0.0))) in CASUAL.closers


def test_humanize_adds_conversational_topic_opener():
    config = PersonaConfig(include_rhetorical_device=False, include_closer=False)
    text = humanize("New agents SDK released", "Hacker News AI", config=config, session=CompositionSession(seed=2))
    assert text == "If you follow AI: New agents SDK released."


def test_humanize_never_exceeds_max_length():
    config = PersonaConfig(max_length=120, include_emoji=True, emoji_chance=1.0, closer_chance=1.0)
    session = CompositionSession(seed=5)
    for _ in range(20):
        assert len(humanize("word " * 40, "Some Feed", config=config, session=session)) <= 120


def test_humanize_additions_only_when_they_fit():
    summary = "y" * 230
    config = PersonaConfig(max_length=240, closer_chance=1.0, include_voice_prefix=False)
    text = humanize(summary, "Some Feed", config=config, session=CompositionSession(seed=9))
    assert text == summary + "."


def test_truncate_to_length():
    assert truncate_to_length("short", 10) == "short"
    cut = truncate_to_length("word " * 30, 50)
    assert len(cut) <= 50 and cut.endswith("...")


def test_persona_stats():
    stats = get_persona_stats(["Quick take: " + "a" * 210, "Notable: short"])
    assert stats["total"] == 2
    assert stats["length_distribution"] == {"short": 1, "medium": 1, "long": 0}
    assert stats["voice_prefixes"] == {"Quick take:": 1, "Notable:": 1}
    assert get_persona_stats([])["total"] == 0
    assert CONVERSATIONAL.openers
