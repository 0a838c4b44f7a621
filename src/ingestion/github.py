"""
Ingest releases from the GitHub REST API
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import httpx

from core.entities import Item
from ingestion.base import SourceAdapter
from services.config import GitHubRepoConfig

logger = logging.getLogger(__name__)


class GitHubReleasesAdapter(SourceAdapter):
    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        repos: List[GitHubRepoConfig],
        token: Optional[str] = None,
        source_name: str = "github",
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.repos = repos
        self.token = token
        self.name = source_name
        self._client = client

    def _headers(self) -> dict:
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "ReleaseRadar/1.0",
        }
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def _to_item(self, repo: GitHubRepoConfig, release: dict) -> Optional[Item]:
        url = release.get("html_url")
        published = release.get("published_at") or release.get("created_at")
        if not url or not published:
            return None

        body = release.get("body") or ""
        return Item.create(
            source="github",
            url=url,
            title=release.get("name") or release.get("tag_name") or "Release",
            published_at=published,
            vendor=repo.vendor,
            product=repo.product or repo.repo,
            summary=body[:500] or None,
            text=body,
            raw=release,
        )

    async def _fetch_repo(self, client: httpx.AsyncClient, repo: GitHubRepoConfig, cutoff: datetime) -> List[Item]:
        resp = await client.get(
            f"{self.BASE_URL}/repos/{repo.owner}/{repo.repo}/releases",
            headers=self._headers(),
        )

        if resp.status_code == 404:
            logger.warning(f"Repository {repo.owner}/{repo.repo} not found or has no releases")
            return []
        if resp.status_code == 403:
            logger.warning(f"Rate limited for {repo.owner}/{repo.repo} (consider adding GITHUB_TOKEN)")
            return []
        resp.raise_for_status()

        releases = resp.json()
        if not isinstance(releases, list):
            logger.warning(f"Unexpected response format from {repo.owner}/{repo.repo}")
            return []

        items = []
        for release in releases:
            item = self._to_item(repo, release)
            if item and item.published_at >= cutoff:
                items.append(item)
        return items

    async def fetch_items(self, hours: int) -> List[Item]:
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        items: List[Item] = []

        client = self._client or httpx.AsyncClient(timeout=30)
        try:
            for repo in self.repos:
                try:
                    repo_items = await self._fetch_repo(client, repo, cutoff)
                    logger.info(f"Fetched {len(repo_items)} releases from {repo.owner}/{repo.repo}")
                    items.extend(repo_items)
                except Exception as e:
                    logger.error(f"Error fetching releases from {repo.owner}/{repo.repo}: {e}")
        finally:
            if self._client is None:
                await client.aclose()

        return items

