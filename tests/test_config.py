from services.config import Config, load_config, parse_config, get_enabled_sources


def test_defaults():
    config = parse_config({})
    assert config.pipeline.test_mode is True
    assert config.pipeline.enable_posting is False
    assert config.clustering.time_window_hours == 36.0
    assert config.thread.max_tweet_length == 270
    assert config.preflight.max_tweets_per_day == 5
    assert "github.com" in config.preflight.official_domains
    assert "github.com" not in config.safety.official_domains


def test_load_yaml_with_sources(tmp_path):
    path = tmp_path / "config.yml"
    path.write_text(
        """
DATABASE_PATH: /tmp/radar.db
OLLAMA_MODEL: qwen2.5:7b
pipeline:
  hours_back: 24
  enable_posting: true
thread:
  max_tweets: 4
sources:
  - type: rss
    name: openai-blog
    feeds:
      - "https://openai.com/news/rss.xml"
    vendor: openai
  - type: github
    enabled: false
    repos:
      - owner: openai
        repo: openai-python
  - name: missing-type
"""
    )
    config = load_config(str(path))

    assert config.DATABASE_PATH == "/tmp/radar.db"
    assert config.OLLAMA_MODEL == "qwen2.5:7b"
    assert config.pipeline.hours_back == 24
    assert config.pipeline.enable_posting is True
    assert config.thread.max_tweets == 4
    assert len(config.sources) == 2
    assert [s.name for s in get_enabled_sources(config)] == ["openai-blog"]
    assert config.sources[1].repos[0].repo == "openai-python"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TEST_MODE", "false")
    monkeypatch.setenv("OLLAMA_BASE_URL", "http://ollama:11434")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_test")

    config = parse_config({"pipeline": {"test_mode": True}})
    assert config.pipeline.test_mode is False
    assert config.OLLAMA_BASE_URL == "http://ollama:11434"
    assert config.GITHUB_TOKEN == "ghp_test"


def test_config_model_defaults_match_parse():
    assert Config().thread == parse_config({}).thread
