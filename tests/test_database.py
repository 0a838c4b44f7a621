import json
from datetime import datetime, timedelta, timezone

import pytest

from conftest import make_facts, make_item, run
from core.entities import Tweet
from core.schemas import ComputedDeltas
from processing.deltas import build_event_record
from services.database import Database


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "test.db"))


def fresh_item(title, hours_ago=1.0, **kwargs):
    return make_item(title, hours_ago=hours_ago, now=datetime.now(timezone.utc), **kwargs)


def tweet(tweet_id, event_id=None, order=1, content="Posted text", hours_ago=0.0):
    return Tweet(
        id=tweet_id,
        content=content,
        posted_at=datetime.now(timezone.utc) - timedelta(hours=hours_ago),
        event_id=event_id,
        thread_json=json.dumps({"order": order}),
    )


def test_upsert_is_keyed_by_url(db):
    item = fresh_item("GPT-4.1 release", url="https://openai.com/blog/gpt-4-1")
    run(db.upsert_item(item))
    run(db.upsert_item(fresh_item("GPT-4.1 release (updated)", url="https://openai.com/blog/gpt-4-1", text="Body")))

    items = run(db.get_items_since(24))
    assert len(items) == 1
    assert items[0].id == item.id
    assert items[0].title == "GPT-4.1 release (updated)"
    assert items[0].text == "Body"
    assert items[0].published_at.tzinfo is not None


def test_items_since_respects_window(db):
    run(db.upsert_item(fresh_item("Recent", hours_ago=2)))
    run(db.upsert_item(fresh_item("Old", hours_ago=100)))

    assert [i.title for i in run(db.get_items_since(48))] == ["Recent"]
    assert run(db.count_items_since(200)) == 2
    assert len(run(db.get_items_by_vendor_product("openai", "gpt-4"))) == 2


def test_prior_facts_round_trip(db):
    facts = make_facts()
    items = [fresh_item("GPT-4.1 release")]
    event = build_event_record(facts, ComputedDeltas(summary="New announcement"), items)
    run(db.insert_event(event))

    prior = run(db.get_prior_facts("openai", "gpt-4"))
    assert prior == facts
    assert run(db.get_prior_facts("anthropic", "claude")) is None
    assert run(db.get_recent_event_titles(48)) == ["GPT-4.1 release"]


def test_tweet_count_only_counts_thread_roots(db):
    run(db.insert_tweet(tweet("t1", order=1)))
    run(db.insert_tweet(tweet("t2", order=2)))
    run(db.insert_tweet(tweet("t3", order=3)))
    run(db.insert_tweet(tweet("old", order=1, hours_ago=30)))

    assert run(db.count_tweets_since(24)) == 1


def test_recent_posts_are_scoped_to_vendor_product(db):
    facts = make_facts()
    event = build_event_record(facts, ComputedDeltas(summary="x"), [fresh_item("GPT-4.1 release")])
    run(db.insert_event(event))
    run(db.insert_tweet(tweet("t1", event_id=event.id, content="GPT-4.1 is out")))

    assert run(db.get_recent_posts("openai", "gpt-4", 48)) == ["GPT-4.1 is out"]
    assert run(db.get_recent_posts("anthropic", "claude", 48)) == []


def test_skip_reason_stats(db):
    run(db.record_skip_reason("NO_OFFICIAL_SOURCE", "no official url", {"cluster": "a"}))
    run(db.record_skip_reason("NO_OFFICIAL_SOURCE", "no official url", {"cluster": "b"}))
    run(db.record_skip_reason("CONTENT_TOO_SHORT", "42 chars", {}))

    stats = run(db.get_skip_reason_stats())
    assert stats["total_skips"] == 3
    assert stats["skip_reasons"] == {"NO_OFFICIAL_SOURCE": 2, "CONTENT_TOO_SHORT": 1}
    assert stats["recent_skips"][0]["reason"] == "CONTENT_TOO_SHORT"
