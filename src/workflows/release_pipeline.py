# src/workflows/release_pipeline.py
import dataclasses
import logging
import time
from typing import List, Optional, Tuple

from composition.thread import build_thread, format_thread
from composition.voice import CompositionSession
from core.entities import CandidateCluster, Item, PipelineResult
from core.scoring import passes_threshold
from delivery.base import PostingTransport
from delivery.file_delivery import FileTransport
from delivery.publisher import post_thread_with_safeguards
from ingestion.base import SourceAdapter
from ingestion.extractor import ArticleExtractor
from ingestion.source_factory import create_adapters_from_config
from processing.clustering import cluster_candidates
from processing.deltas import build_event_record, compute_deltas
from processing.facts import ExtractionError, extract_facts
from processing.prefilter import prepare_items
from processing.safety import SafetyGate, SkipReason, is_official
from services.config import Config
from services.database import Database
from services.llm import LLMClient, OllamaClient
from services.media import MediaPreviewFetcher
from workflows.base import Pipeline

logger = logging.getLogger(__name__)

MIN_EXTRACTED_TEXT = 100


class ReleasePipeline(Pipeline):
    name = "release_radar"

    def __init__(
        self,
        config: Config,
        *,
        llm: Optional[LLMClient] = None,
        db: Optional[Database] = None,
        sources: Optional[List[SourceAdapter]] = None,
        transport: Optional[PostingTransport] = None,
        extractor: Optional[ArticleExtractor] = None,
        media_fetcher: Optional[MediaPreviewFetcher] = None,
        session: Optional[CompositionSession] = None,
    ):
        self.config = config

        self.llm = llm or OllamaClient(
            base_url=config.OLLAMA_BASE_URL,
            model=config.OLLAMA_MODEL,
            timeout=config.LLM_TIMEOUT,
        )
        self.db = db or Database(config.DATABASE_PATH)
        self.sources = sources if sources is not None else create_adapters_from_config(config)
        self.extractor = extractor or ArticleExtractor()
        self.media_fetcher = media_fetcher or MediaPreviewFetcher()
        self.session = session or CompositionSession()
        self.safety = SafetyGate(config.safety)

        if transport is not None:
            self.transport: Optional[PostingTransport] = transport
        elif config.pipeline.test_mode:
            self.transport = FileTransport(config.OUTPUT_DIR)
        else:
            logger.warning("Live mode without a posting transport, threads will not be posted")
            self.transport = None

    # ----------------------------
    # Step 1: collect and extract
    # ----------------------------
    async def _collect(self, result: PipelineResult) -> List[Item]:
        items: List[Item] = []
        for source in self.sources:
            try:
                fetched = await source.fetch_items(hours=self.config.pipeline.hours_back)
                logger.info(f"Fetched {len(fetched)} items from {source.name}")
                items.extend(fetched)
            except Exception as e:
                logger.error(f"Source {source.name} failed: {e}")
                result.errors.append(f"Failed to collect from {source.name}: {e}")
        return items

    async def _with_text(self, item: Item) -> Item:
        """
        GitHub releases already carry their body. RSS items get the article
        text, falling back to the title when extraction comes back thin.
        """
        if item.source != "rss":
            return item if item.text else dataclasses.replace(item, text=item.title)

        article = await self.extractor.extract(item.url, fallback_title=item.title)
        if article.success and len(article.text) > MIN_EXTRACTED_TEXT:
            text = article.text
        else:
            text = article.text or item.title
        return dataclasses.replace(item, text=text)

    async def _store(self, items: List[Item], result: PipelineResult) -> int:
        stored = 0
        for item in items:
            try:
                item = await self._with_text(item)
            except Exception as e:
                logger.error(f"Failed to process {item.url}: {e}")
                result.errors.append(f"Failed to process {item.url}: {e}")
                item = dataclasses.replace(item, text=item.title)

            try:
                await self.db.upsert_item(item)
                stored += 1
            except Exception as e:
                logger.error(f"Failed to upsert {item.url}: {e}")
                result.errors.append(f"Failed to store {item.url}: {e}")
        return stored

    # ----------------------------
    # Step 2: cluster
    # ----------------------------
    async def _detect(self, result: PipelineResult) -> List[CandidateCluster]:
        try:
            recent = await self.db.get_items_since(self.config.pipeline.hours_back)
        except Exception as e:
            logger.error(f"Failed to load recent items: {e}")
            result.errors.append(f"Failed to detect events: {e}")
            return []

        clusters = cluster_candidates(recent, self.config.clustering)
        return [c for c in clusters if passes_threshold(c, self.config.pipeline.min_confidence)]

    # ----------------------------
    # Step 3: per-cluster processing
    # ----------------------------
    async def _record_skip(self, reason: str, details: str, metadata: dict, result: PipelineResult) -> None:
        result.skip_reasons[reason] = result.skip_reasons.get(reason, 0) + 1
        try:
            await self.db.record_skip_reason(reason, details, metadata)
        except Exception as e:
            logger.error(f"Failed to record skip reason {reason}: {e}")

    async def _daily_post_count(self) -> int:
        try:
            return await self.db.count_tweets_since(24)
        except Exception as e:
            logger.warning(f"Could not read daily post count: {e}")
            return 0

    async def _recent_titles(self) -> List[str]:
        try:
            return await self.db.get_recent_event_titles(self.config.preflight.duplicate_check_hours)
        except Exception as e:
            logger.warning(f"Could not read recent event titles: {e}")
            return []

    def _source_url(self, cluster: CandidateCluster) -> str:
        safety = self.config.safety
        for item in cluster.items:
            if is_official(item.url, safety.official_domains, safety.official_github_orgs):
                return item.url
        return cluster.items[0].url

    async def _process_cluster(self, cluster: CandidateCluster, result: PipelineResult) -> Tuple[bool, bool]:
        """
        Returns (event_created, thread_posted).
        """
        label = f"{cluster.vendor}:{cluster.product}"

        try:
            facts = await extract_facts(cluster.items, self.llm)
        except ExtractionError as e:
            await self._record_skip(SkipReason.EXTRACTION_FAILED.value, str(e), {"cluster": label}, result)
            result.errors.append(f"Fact extraction failed for {label}: {e}")
            return False, False

        first = cluster.items[0]
        check = self.safety.check(
            facts,
            title=facts.title or first.title,
            text=facts.summary or first.text,
            url=self._source_url(cluster),
            existing_titles=await self._recent_titles(),
            daily_post_count=await self._daily_post_count(),
        )
        if check.skip:
            await self._record_skip(check.reason.value, check.details, check.metadata, result)
            return False, False

        prior = None
        try:
            prior = await self.db.get_prior_facts(facts.vendor, facts.product)
        except Exception as e:
            logger.warning(f"Could not load prior facts for {label}: {e}")

        deltas = await compute_deltas(facts, prior, self.llm)

        event = build_event_record(facts, deltas, cluster.items, extra_metadata={"confidence": cluster.confidence})
        await self.db.insert_event(event)

        canonical_url = facts.citations[0] if facts.citations else first.url
        thread = await build_thread(
            facts,
            deltas,
            canonical_url,
            config=self.config.thread,
            style=self.config.style,
            quality=self.config.quality,
            session=self.session,
            media_fetcher=self.media_fetcher,
        )
        logger.debug(format_thread(thread))

        if thread.draft_only:
            logger.info(f"Thread for {label} is draft only, not posting")
            return True, False
        if not self.config.pipeline.enable_posting or self.transport is None:
            logger.info(f"Posting disabled, thread for {label} composed only")
            return True, False

        post = await post_thread_with_safeguards(
            thread,
            facts,
            self.transport,
            history=self.db,
            recorder=self.db,
            config=self.config.preflight,
            event_id=event.id,
            test_mode=self.config.pipeline.test_mode,
        )
        if not post.success:
            result.errors.append(f"Thread posting failed for {label}: {post.error}")
        return True, post.success

    async def run(self) -> PipelineResult:
        start_time = time.perf_counter()
        result = PipelineResult()
        self.session.reset()

        try:
            collected = await self._collect(result)
            prepared = prepare_items(collected, hours_back=self.config.pipeline.hours_back)
            result.items_processed = await self._store(prepared, result)

            clusters = await self._detect(result)
            result.clusters_found = len(clusters)

            for cluster in clusters[:self.config.pipeline.max_clusters_per_run]:
                try:
                    created, posted = await self._process_cluster(cluster, result)
                    result.events_created += int(created)
                    result.threads_posted += int(posted)
                except Exception as e:
                    logger.exception(f"Failed to process cluster {cluster.vendor}:{cluster.product}: {e}")
                    result.errors.append(f"Failed to process cluster {cluster.vendor}:{cluster.product}: {e}")

            result.success = True

        except Exception as e:
            logger.exception(f"Pipeline error: {e}")
            result.errors.append(f"Pipeline failed: {e}")

        result.duration_seconds = time.perf_counter() - start_time
        logger.info(
            "Pipeline run completed",
            extra={
                "items_processed": result.items_processed,
                "clusters_found": result.clusters_found,
                "events_created": result.events_created,
                "threads_posted": result.threads_posted,
                "errors": len(result.errors),
                "skip_reasons": result.skip_reasons,
            },
        )
        return result


def format_result(result: PipelineResult) -> str:
    lines = [
        "Pipeline Results:",
        f"  Success: {result.success}",
        f"  Items processed: {result.items_processed}",
        f"  Clusters found: {result.clusters_found}",
        f"  Events created: {result.events_created}",
        f"  Threads posted: {result.threads_posted}",
        f"  Errors: {len(result.errors)}",
        f"  Duration: {result.duration_seconds:.1f}s",
    ]
    if result.skip_reasons:
        lines.append("  Skip reasons:")
        for reason, count in sorted(result.skip_reasons.items(), key=lambda kv: kv[1], reverse=True):
            lines.append(f"    {reason}: {count}")
    for error in result.errors:
        lines.append(f"  - {error}")
    return "\n".join(lines)
