"""
Loads and handles config from config.yml
Secrets (GITHUB_TOKEN) and run-mode overrides (TEST_MODE, OLLAMA_BASE_URL) come from .env
"""
import logging
import os
from typing import Any, Dict, List, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_OFFICIAL_DOMAINS: List[str] = [
    "openai.com", "x.ai", "anthropic.com", "ai.googleblog.com", "google.com", "blog.google",
    "meta.ai", "ai.meta.com", "mistral.ai", "cohere.com", "cohere.ai", "huggingface.co",
    "microsoft.com", "nvidia.com", "deepmind.com", "deepmind.google", "stability.ai",
    "midjourney.com", "runwayml.com", "replicate.com", "together.ai", "perplexity.ai",
    "claude.ai", "chatgpt.com", "gemini.google.com", "apple.com", "amazon.com",
    "aws.amazon.com", "character.ai",
]

DEFAULT_GITHUB_ORGS: List[str] = [
    "openai", "anthropics", "google", "google-deepmind", "meta", "meta-llama", "facebookresearch",
    "microsoft", "huggingface", "stability-ai", "runwayml", "replicate", "togethercomputer",
    "perplexity-ai", "mistralai", "nvidia",
]


class GitHubRepoConfig(BaseModel):
    owner: str
    repo: str
    vendor: Optional[str] = None
    product: Optional[str] = None


class SourceConfig(BaseModel):
    """Configuration for a single ingestion source."""
    type: str  # rss, github
    enabled: bool = True
    name: Optional[str] = None
    feeds: Optional[List[str]] = None  # For rss
    repos: Optional[List[GitHubRepoConfig]] = None  # For github
    vendor: Optional[str] = None  # Pin every item of this source to a vendor
    product: Optional[str] = None


class ClusteringConfig(BaseModel):
    time_window_hours: float = 36.0
    similarity_threshold: float = 0.4
    min_cluster_size: int = 2
    recent_hours: int = 24


class SafetyConfig(BaseModel):
    max_daily_posts: int = 5
    min_content_length: int = 100
    duplicate_title_similarity: float = 0.98
    official_domains: List[str] = Field(default_factory=lambda: list(DEFAULT_OFFICIAL_DOMAINS))
    official_github_orgs: List[str] = Field(default_factory=lambda: list(DEFAULT_GITHUB_ORGS))


class StyleConfig(BaseModel):
    emoji_enabled: bool = True
    emoji_per_tweet_max: int = 1
    emoji_set: List[str] = Field(default_factory=lambda: ["🆕", "🚀", "📣", "🧪", "🧵"])
    tone: Literal["precise", "casual"] = "precise"
    disclaim_benchmarks: bool = True
    link_preference: List[str] = Field(default_factory=lambda: ["vendor", "github", "blog", "media"])


class ThreadConfig(BaseModel):
    max_tweet_length: int = 270
    max_bullets_per_tweet: int = 2
    max_total_bullets: int = 4
    max_tweets: int = 5
    include_date: bool = True
    include_product_name: bool = True


class PersonaConfig(BaseModel):
    max_length: int = 240
    min_length: int = 200
    include_rhetorical_device: bool = True
    include_voice_prefix: bool = True
    include_closer: bool = True
    include_emoji: bool = False
    emoji_chance: float = Field(0.12, ge=0.0, le=1.0)
    closer_chance: float = Field(0.3, ge=0.0, le=1.0)


class QualityConfig(BaseModel):
    max_output_length: int = 280
    reserved_url_space: int = 30
    max_consecutive_words: int = 8
    break_marker: str = "…"


class PreflightConfig(BaseModel):
    max_tweets_per_day: int = 5
    duplicate_check_hours: int = 48
    official_domains: List[str] = Field(default_factory=lambda: list(DEFAULT_OFFICIAL_DOMAINS) + ["github.com"])


class PipelineConfig(BaseModel):
    hours_back: int = 48
    max_clusters_per_run: int = 3
    min_confidence: float = 0.0
    test_mode: bool = True
    enable_posting: bool = False
    thread_chance: float = Field(0.15, ge=0.0, le=1.0)


class Config(BaseModel):
    # Core
    DATABASE_PATH: str = "data/app.db"
    OUTPUT_DIR: str = "output"

    # Ollama
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    OLLAMA_MODEL: str = "llama3.1:8b"
    LLM_TIMEOUT: float = 120.0

    # GitHub
    GITHUB_TOKEN: Optional[str] = None

    sources: List[SourceConfig] = Field(default_factory=list)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    clustering: ClusteringConfig = Field(default_factory=ClusteringConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    style: StyleConfig = Field(default_factory=StyleConfig)
    thread: ThreadConfig = Field(default_factory=ThreadConfig)
    persona: PersonaConfig = Field(default_factory=PersonaConfig)
    quality: QualityConfig = Field(default_factory=QualityConfig)
    preflight: PreflightConfig = Field(default_factory=PreflightConfig)


def _bool(value: str | bool) -> bool:
    """Convert string or bool to boolean."""
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("1", "true", "yes", "on")


def _get_config_path() -> Optional[str]:
    """Get the path to config.yml, handling different working directories."""
    if os.path.exists("resources/config.yml"):
        return "resources/config.yml"

    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    config_path = os.path.join(project_root, "resources", "config.yml")
    if os.path.exists(config_path):
        return config_path

    return None


def _parse_sources(data: List[Dict[str, Any]]) -> List[SourceConfig]:
    sources = []
    for src in data or []:
        try:
            sources.append(SourceConfig(**src))
        except Exception as e:
            logger.error(f"Failed to parse source '{src}': {e}")
    return sources


def parse_config(data: Dict[str, Any]) -> Config:
    """Build a Config from a YAML mapping, applying environment overrides."""
    pipeline = PipelineConfig(**data.get("pipeline", {}))
    if os.getenv("TEST_MODE") is not None:
        test_mode = _bool(os.getenv("TEST_MODE"))
        pipeline = pipeline.model_copy(update={"test_mode": test_mode})

    return Config(
        DATABASE_PATH=data.get("DATABASE_PATH", "data/app.db"),
        OUTPUT_DIR=data.get("OUTPUT_DIR", "output"),
        OLLAMA_BASE_URL=os.getenv("OLLAMA_BASE_URL") or data.get("OLLAMA_BASE_URL", "http://localhost:11434"),
        OLLAMA_MODEL=data.get("OLLAMA_MODEL", "llama3.1:8b"),
        LLM_TIMEOUT=float(data.get("LLM_TIMEOUT", 120.0)),
        GITHUB_TOKEN=os.getenv("GITHUB_TOKEN"),
        sources=_parse_sources(data.get("sources", [])),
        pipeline=pipeline,
        clustering=ClusteringConfig(**data.get("clustering", {})),
        safety=SafetyConfig(**data.get("safety", {})),
        style=StyleConfig(**data.get("style", {})),
        thread=ThreadConfig(**data.get("thread", {})),
        persona=PersonaConfig(**data.get("persona", {})),
        quality=QualityConfig(**data.get("quality", {})),
        preflight=PreflightConfig(**data.get("preflight", {})),
    )


def load_config(path: Optional[str] = None) -> Config:
    """Load configuration from config.yml and secrets from .env."""
    load_dotenv()

    config_path = path or _get_config_path()
    if config_path is None:
        logger.warning("No resources/config.yml found, using defaults")
        return parse_config({})

    with open(config_path, "r") as file:
        data = yaml.safe_load(file) or {}

    return parse_config(data)


def get_enabled_sources(config: Config) -> List[SourceConfig]:
    """Get only enabled sources."""
    return [src for src in config.sources if src.enabled]
