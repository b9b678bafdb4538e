"""Classification coordinator: sends unprocessed articles to the provider."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
import time
from typing import Callable

from ..config import ClassifyConfig
from ..core.types import Article, ClassificationOutcome, ClassificationResult
from ..llm.providers.base import ClassifierProvider
from ..store.sqlite import ArticleStore
from ..utils.logging import get_logger, log_event


class ClassificationCoordinator:
    """Classify pending articles in bounded concurrent batches.

    Each article is isolated: a provider failure leaves that article
    unprocessed for the next run and never affects its batch siblings.
    Results are committed to the store one by one as they complete.
    """

    def __init__(
        self,
        store: ArticleStore,
        provider: ClassifierProvider,
        cfg: ClassifyConfig,
        logger: logging.Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.store = store
        self.provider = provider
        self.cfg = cfg
        self.logger = logger or get_logger("classify")
        self._sleep = sleep

    def classify_pending(self, limit: int | None = None) -> list[ClassificationOutcome]:
        """Classify up to `limit` unprocessed articles, newest first.

        Returns:
            One outcome per selected article, in selection order
        """
        limit = self.cfg.limit if limit is None else limit
        articles = self.store.list_unprocessed(limit)
        if not articles:
            log_event(self.logger, "No unprocessed articles", event="classify_skipped")
            return []

        concurrency = max(1, int(self.cfg.concurrency))
        batches = [articles[i : i + concurrency] for i in range(0, len(articles), concurrency)]
        log_event(
            self.logger,
            f"Classifying {len(articles)} articles",
            event="classify_start",
            total=len(articles),
            batches=len(batches),
            workers=concurrency,
        )

        outcomes: list[ClassificationOutcome] = []
        with ThreadPoolExecutor(max_workers=concurrency) as executor:
            for index, batch in enumerate(batches):
                if index > 0 and self.cfg.batch_pause_seconds > 0:
                    self._sleep(self.cfg.batch_pause_seconds)
                outcomes.extend(self._run_batch(executor, batch))

        succeeded = sum(1 for outcome in outcomes if outcome.ok)
        log_event(
            self.logger,
            f"Classified {succeeded}/{len(outcomes)} articles",
            event="classify_complete",
            total=len(outcomes),
            succeeded=succeeded,
            failed=len(outcomes) - succeeded,
        )
        return outcomes

    def _run_batch(
        self, executor: ThreadPoolExecutor, batch: list[Article]
    ) -> list[ClassificationOutcome]:
        slots: list[ClassificationOutcome | None] = [None] * len(batch)
        future_map = {executor.submit(self.provider.classify, article): idx for idx, article in enumerate(batch)}

        for future in as_completed(future_map):
            idx = future_map[future]
            article = batch[idx]
            try:
                result = future.result()
            except Exception as exc:  # noqa: BLE001
                log_event(
                    self.logger,
                    f"Classification failed: {article.title}",
                    event="classify_failed",
                    level=logging.WARNING,
                    url=article.url,
                    error=f"{type(exc).__name__}: {exc}",
                )
                slots[idx] = ClassificationOutcome(article=article, result=None, error=str(exc))
                continue

            slots[idx] = self._persist(article, result)

        return [slot for slot in slots if slot is not None]

    def _persist(self, article: Article, result: ClassificationResult) -> ClassificationOutcome:
        if article.id is None:
            return ClassificationOutcome(article=article, result=None, error="article has no id")
        try:
            self.store.update_classification(
                article.id, result.summary, result.category.label, result.importance
            )
        except Exception as exc:  # noqa: BLE001
            log_event(
                self.logger,
                f"Failed to store classification: {article.title}",
                event="classify_store_failed",
                level=logging.ERROR,
                url=article.url,
                error=f"{type(exc).__name__}: {exc}",
            )
            return ClassificationOutcome(article=article, result=None, error=str(exc))

        article.summary = result.summary
        article.category = result.category.label
        article.importance_score = result.importance
        article.processed = True
        log_event(
            self.logger,
            f"Classified: {article.title}",
            event="classify_ok",
            level=logging.DEBUG,
            url=article.url,
            category=result.category.label,
            importance=result.importance,
            status=result.status,
        )
        return ClassificationOutcome(article=article, result=result)
