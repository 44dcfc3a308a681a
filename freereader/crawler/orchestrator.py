"""Strategy loop driving fetch, extraction, scoring and persistence.

One ``ArticleFetcher.extract`` call is one independent invocation: it looks
the URL up in the cache, then walks the strategies in priority order,
retrying each within its budget, and stops at the first attempt scoring at
or above the success threshold. Partial results are remembered and returned
with a warning only once every strategy is exhausted.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from freereader import config
from freereader.utils.article_cache import ArticleCache
from freereader.utils.completeness import CompletenessReport, count_words, score_completeness
from freereader.utils.comprehensive_telemetry import (
    ExtractionAttemptMetrics,
    ExtractionLogger,
)
from freereader.utils.extraction_outcomes import (
    GENERIC_FAILURE_MESSAGE,
    INVALID_INPUT_MESSAGE,
    PARTIAL_WARNING,
    ArticleResponse,
    AttemptStatus,
    ExtractionOutcome,
    ExtractionResult,
    reading_time_minutes,
)
from freereader.utils.reliability import ReliabilityTracker

from . import (
    AllStrategiesExhaustedError,
    AttemptError,
    ExtractionCancelled,
    InvalidInputError,
    SideChannelError,
)
from .extractor import ContentExtractor
from .fetcher import Fetcher
from .strategies import ExtractionStrategy, load_strategies
from .utils import (
    CancellationToken,
    build_source_pattern,
    extract_url_pattern,
    is_valid_article_url,
    mask_url_credentials,
)

logger = logging.getLogger(__name__)

CACHE_METHOD = "cache"


class ArticleFetcher:
    """Extract an article through the configured mirror strategies.

    Persistence collaborators are optional; pass ``db`` to build all three
    from one ``DatabaseManager`` or pass them individually. Any that are
    missing are simply skipped.
    """

    def __init__(
        self,
        db=None,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[ContentExtractor] = None,
        cache: Optional[ArticleCache] = None,
        reliability: Optional[ReliabilityTracker] = None,
        extraction_logger: Optional[ExtractionLogger] = None,
        backoff_base: Optional[float] = None,
        source_domains: Optional[list[str]] = None,
    ):
        self.strategies = list(
            strategies if strategies is not None else load_strategies(config.STRATEGIES_FILE)
        )
        if not self.strategies:
            raise ValueError("At least one extraction strategy is required")

        self.fetcher = fetcher or Fetcher()
        self.extractor = extractor or ContentExtractor()

        if db is not None:
            cache = cache or ArticleCache(db)
            reliability = reliability or ReliabilityTracker(db)
            extraction_logger = extraction_logger or ExtractionLogger(db)
        self.cache = cache
        self.reliability = reliability
        self.extraction_logger = extraction_logger

        self.backoff_base = (
            config.BACKOFF_BASE_SECONDS if backoff_base is None else backoff_base
        )
        self.success_threshold = config.SUCCESS_THRESHOLD
        self.partial_threshold = config.PARTIAL_THRESHOLD
        self.fallback_threshold = config.FALLBACK_THRESHOLD
        self.source_pattern = build_source_pattern(source_domains)

    # Public API

    def fetch_article(
        self, url: str, cancel_token: Optional[CancellationToken] = None
    ) -> ArticleResponse:
        """Extract ``url`` and map the outcome to a caller-facing response.

        Only cancellation propagates; every other failure becomes a generic
        failure response.
        """
        try:
            outcome = self.extract(url, cancel_token=cancel_token)
        except InvalidInputError:
            return ArticleResponse.failure(INVALID_INPUT_MESSAGE, "invalid_input")
        except AllStrategiesExhaustedError as e:
            logger.warning(f"Extraction failed for {mask_url_credentials(url)}: {e}")
            return ArticleResponse.failure(
                GENERIC_FAILURE_MESSAGE, "all_strategies_exhausted"
            )
        return ArticleResponse.from_outcome(outcome)

    def extract(
        self, url: str, cancel_token: Optional[CancellationToken] = None
    ) -> ExtractionOutcome:
        """Run the cache lookup and strategy loop for ``url``.

        Raises:
            InvalidInputError: ``url`` is not an accepted article URL
            AllStrategiesExhaustedError: nothing usable was extracted
            ExtractionCancelled: ``cancel_token`` was cancelled
        """
        if not is_valid_article_url(url, self.source_pattern):
            raise InvalidInputError(f"Not an accepted article URL: {url!r}")

        token = cancel_token or CancellationToken()

        cached = self._cache_lookup(url)
        if cached is not None:
            logger.info(f"Cache hit for {url}")
            metrics = ExtractionAttemptMetrics(url, CACHE_METHOD, 0)
            metrics.record_result(
                AttemptStatus.SUCCESS,
                len(cached.content),
                cached.completeness_score,
            )
            self._log_attempt(metrics)
            return ExtractionOutcome(result=cached, cached=True)

        domain = extract_url_pattern(url)
        best_partial: Optional[ExtractionResult] = None
        last_error: Optional[Exception] = None

        for strategy in self.strategies:
            for attempt in range(1, strategy.max_retries + 1):
                if token.cancelled:
                    raise ExtractionCancelled(f"Extraction of {url} cancelled")

                logger.info(
                    f"Trying {strategy.name} (attempt {attempt}/{strategy.max_retries}) "
                    f"for {url}"
                )
                metrics = ExtractionAttemptMetrics(url, strategy.name, attempt)
                result = None
                try:
                    result, report = self._attempt(url, strategy, token)
                except ExtractionCancelled:
                    raise
                except AttemptError as e:
                    last_error = e
                    metrics.record_error(e)
                    logger.info(f"{strategy.name} attempt {attempt} failed: {e}")
                except Exception as e:
                    last_error = e
                    metrics.record_error(e)
                    logger.warning(
                        f"{strategy.name} attempt {attempt} raised "
                        f"{e.__class__.__name__}: {e}"
                    )

                if result is not None:
                    score = result.completeness_score
                    status = (
                        AttemptStatus.SUCCESS
                        if score >= self.success_threshold
                        else AttemptStatus.PARTIAL
                    )
                    metrics.record_result(
                        status, len(result.content), score, report.indicators
                    )
                    logger.info(f"{strategy.name} scored {score} for {url}")

                self._log_attempt(metrics)
                self._update_reliability(
                    domain,
                    strategy.name,
                    metrics.status is AttemptStatus.SUCCESS,
                    metrics.response_time_ms,
                )

                if result is not None:
                    if result.completeness_score >= self.success_threshold:
                        self._store_in_cache(url, result)
                        return ExtractionOutcome(result=result)

                    if result.completeness_score >= self.partial_threshold and (
                        best_partial is None
                        or result.completeness_score > best_partial.completeness_score
                    ):
                        best_partial = result
                    last_error = AttemptError(
                        f"Completeness score {result.completeness_score} "
                        f"below {self.success_threshold}"
                    )

                if attempt < strategy.max_retries:
                    delay = self.backoff_base * (2 ** (attempt - 1))
                    if delay > 0:
                        logger.debug(f"Backing off {delay:.1f}s before retrying {strategy.name}")
                    if token.wait(delay):
                        raise ExtractionCancelled(f"Extraction of {url} cancelled")

        if (
            best_partial is not None
            and best_partial.completeness_score >= self.fallback_threshold
        ):
            logger.warning(
                f"Returning partial result for {url} "
                f"(score {best_partial.completeness_score} via {best_partial.method})"
            )
            return ExtractionOutcome(result=best_partial, warning=PARTIAL_WARNING)

        raise AllStrategiesExhaustedError(last_error)

    def close(self) -> None:
        self.fetcher.close()

    # Attempt pipeline

    def _attempt(
        self, url: str, strategy: ExtractionStrategy, token: CancellationToken
    ) -> tuple[ExtractionResult, CompletenessReport]:
        target = strategy.resolve_url(url)
        response = self.fetcher.fetch(
            target,
            timeout=strategy.timeout,
            headers=strategy.headers(),
            cancel_token=token,
        )
        extracted = self.extractor.extract(response.html)
        report = score_completeness(
            extracted.title,
            extracted.author,
            extracted.content,
            extracted.plain_text,
            response.html,
        )
        word_count = count_words(extracted.plain_text)
        result = ExtractionResult(
            title=extracted.title,
            author=extracted.author,
            content=extracted.content,
            plain_text=extracted.plain_text,
            word_count=word_count,
            reading_time=reading_time_minutes(word_count),
            completeness_score=report.score,
            method=strategy.name,
            metadata={
                "final_url": mask_url_credentials(response.final_url),
                "status_code": response.status_code,
                "fetch_ms": round(response.elapsed_ms, 2),
                "completeness_indicators": report.indicators,
            },
        )
        return result, report

    # Side channels: failures are logged and never reach the caller

    def _cache_lookup(self, url: str) -> Optional[ExtractionResult]:
        if self.cache is None:
            return None
        try:
            return self.cache.get(url)
        except SQLAlchemyError as e:
            logger.warning(f"Cache lookup failed for {url}, treating as miss: {e}")
            return None

    def _store_in_cache(self, url: str, result: ExtractionResult) -> None:
        if self.cache is None:
            return
        try:
            self.cache.store(url, result)
        except (SideChannelError, ValueError) as e:
            logger.warning(f"Cache write skipped: {e}")

    def _log_attempt(self, metrics: ExtractionAttemptMetrics) -> None:
        if self.extraction_logger is None:
            return
        try:
            self.extraction_logger.record(metrics)
        except SideChannelError as e:
            logger.warning(f"Attempt log dropped: {e}")

    def _update_reliability(
        self, domain: str, method: str, success: bool, response_time_ms: float
    ) -> None:
        if self.reliability is None:
            return
        try:
            self.reliability.record_attempt(domain, method, success, response_time_ms)
        except SideChannelError as e:
            logger.warning(f"Reliability update dropped: {e}")
