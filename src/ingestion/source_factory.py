"""
Source Factory - Creates ingestion adapters from configuration.
"""
import logging
from typing import List, Optional

from ingestion.base import SourceAdapter
from ingestion.github import GitHubReleasesAdapter
from ingestion.rss import RSSAdapter
from services.config import Config, SourceConfig, get_enabled_sources

logger = logging.getLogger(__name__)


def create_source_adapter(source_config: SourceConfig, github_token: Optional[str] = None) -> SourceAdapter:
    """
    Create a source adapter from configuration.

    Raises:
        ValueError: If source type is unknown or required fields are missing
    """
    source_type = source_config.type.lower()

    if source_type == "rss":
        if not source_config.feeds:
            raise ValueError("RSS source requires 'feeds' field")
        return RSSAdapter(
            feed_urls=source_config.feeds,
            source_name=source_config.name or "rss",
            vendor=source_config.vendor,
            product=source_config.product,
        )

    elif source_type == "github":
        if not source_config.repos:
            raise ValueError("GitHub source requires 'repos' field")
        return GitHubReleasesAdapter(
            repos=source_config.repos,
            token=github_token,
            source_name=source_config.name or "github",
        )

    else:
        raise ValueError(f"Unknown source type: {source_type}")


def create_adapters_from_config(config: Config) -> List[SourceAdapter]:
    """
    Create all enabled source adapters. Misconfigured sources are logged and skipped.
    """
    adapters = []

    for source_config in get_enabled_sources(config):
        try:
            adapter = create_source_adapter(source_config, github_token=config.GITHUB_TOKEN)
            adapters.append(adapter)
            logger.info(f"Created {source_config.type} adapter: {source_config.name or 'default'}")
        except Exception as e:
            logger.error(f"Failed to create adapter for {source_config.type}: {e}")

    return adapters
