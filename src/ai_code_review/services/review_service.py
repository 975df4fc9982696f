"""
Review service for orchestrating chunked code reviews
"""

import asyncio
import functools
import logging
from contextlib import AsyncExitStack
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Sequence

from ai_code_review.config.settings import Settings, get_settings
from ai_code_review.exceptions import (
    AllChunksFailedException,
    CodeReviewException,
)
from ai_code_review.models.review_models import (
    Chunk,
    ChunkError,
    ChunkResult,
    ChunkStatus,
    CombinedReport,
    FocusArea,
    ReviewReport,
    ReviewRequest,
)
from ai_code_review.services.deepseek_service import DeepSeekService
from ai_code_review.services.result_merger import (
    enhance_output_format,
    merge_chunk_results,
)
from ai_code_review.utils.chunking import build_chunks
from ai_code_review.utils.file_utils import get_file_info, read_file_content
from ai_code_review.utils.progress import ChunkProgressTracker, ProgressCallback
from ai_code_review.utils.retry import execute_with_retry

logger = logging.getLogger(__name__)

CODE_SAMPLE_LENGTH = 100


def _error_message(error: BaseException) -> str:
    if isinstance(error, CodeReviewException):
        return error.message
    return str(error)


class ReviewService:
    """Fans chunk reviews out concurrently and merges whatever succeeds"""

    def __init__(
        self,
        deepseek_service: DeepSeekService,
        settings: Optional[Settings] = None,
        on_progress: Optional[ProgressCallback] = None,
        max_concurrency: Optional[int] = None,
    ):
        self.deepseek_service = deepseek_service
        self.settings = settings or get_settings()
        self.on_progress = on_progress
        if max_concurrency is None:
            max_concurrency = self.settings.max_concurrent_chunks
        self.max_concurrency = max_concurrency

    async def _process_chunk(
        self,
        chunk: Chunk,
        total_chunks: int,
        focus_areas: List[FocusArea],
        timeout: float,
        tracker: ChunkProgressTracker,
        semaphore: Optional[asyncio.Semaphore],
    ) -> ChunkResult:
        async with AsyncExitStack() as stack:
            if semaphore is not None:
                await stack.enter_async_context(semaphore)

            tracker.update(chunk.index, ChunkStatus.IN_PROGRESS)
            operation = functools.partial(
                self.deepseek_service.review_chunk,
                chunk.text,
                focus_areas,
                timeout,
                chunk.chunk_number,
                total_chunks,
            )
            try:
                result = await execute_with_retry(
                    operation,
                    chunk_number=chunk.chunk_number,
                    on_status=tracker.callback_for(chunk.index),
                    max_retries=self.settings.ai_retries,
                    base_delay=self.settings.retry_base_delay,
                    max_delay=self.settings.retry_max_delay,
                )
            except Exception as e:
                logger.error(
                    f"Error processing chunk {chunk.chunk_number}: {_error_message(e)}",
                    extra={
                        "operation": "process_chunk",
                        "chunk_number": chunk.chunk_number,
                        "error_type": type(e).__name__,
                    },
                )
                tracker.update(chunk.index, ChunkStatus.FAILED)
                raise

            tracker.update(chunk.index, ChunkStatus.COMPLETED)
            return result

    async def review_all(
        self,
        chunks: Sequence[Chunk],
        focus_areas: Iterable[FocusArea],
        timeout: float,
    ) -> CombinedReport:
        """
        Review every chunk concurrently and merge the results.

        All chunk tasks are awaited before deciding the outcome; a failing
        chunk never cancels the others. Failed chunks are reported in
        ``errors`` and flag the report as a partial success.

        Raises:
            ValueError: If ``chunks`` is empty
            AllChunksFailedException: If no chunk could be reviewed
        """
        if not chunks:
            raise ValueError("No chunks to review")

        requested = set(focus_areas)
        focus_areas = [area for area in FocusArea if area in requested]
        total_chunks = len(chunks)
        tracker = ChunkProgressTracker(total_chunks, self.on_progress)
        semaphore = (
            asyncio.Semaphore(self.max_concurrency) if self.max_concurrency > 0 else None
        )

        logger.info(
            f"Code split into {total_chunks} chunks for DeepSeek review",
            extra={"operation": "review_all_start", "total_chunks": total_chunks},
        )

        outcomes = await asyncio.gather(
            *(
                self._process_chunk(
                    chunk, total_chunks, focus_areas, timeout, tracker, semaphore
                )
                for chunk in chunks
            ),
            return_exceptions=True,
        )

        results: List[Optional[ChunkResult]] = []
        errors: List[ChunkError] = []
        for chunk, outcome in zip(chunks, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                results.append(None)
                errors.append(
                    ChunkError(
                        chunk_number=chunk.chunk_number,
                        error=_error_message(outcome),
                        code_sample=chunk.text[:CODE_SAMPLE_LENGTH] + "...",
                    )
                )
            else:
                results.append(outcome)

        processed = total_chunks - len(errors)
        if processed == 0:
            raise AllChunksFailedException(
                message=f"All {len(errors)} chunks failed to process. "
                f"First error: {errors[0].error}",
                failed_count=len(errors),
                first_error=errors[0].error,
            )

        report = CombinedReport.from_result(
            merge_chunk_results(results),
            processed_chunks=processed,
            total_chunks=total_chunks,
            chunk_results=results,
        )

        if errors:
            logger.warning(
                f"{len(errors)} of {total_chunks} chunks failed to process",
                extra={"operation": "review_all_partial", "failed_count": len(errors)},
            )
            report = report.model_copy(
                update={
                    "errors": errors,
                    "partial_success": True,
                    "summary": f"⚠️ Note: {len(errors)} of {total_chunks} chunks "
                    "failed to process. The review is incomplete.\n\n" + report.summary,
                }
            )

        return report

    async def review_request(self, request: ReviewRequest) -> CombinedReport:
        """Chunk a review request, review it and enhance the summary"""
        chunks = build_chunks(request.code, self.settings.chunk_size)
        report = await self.review_all(chunks, request.focus_areas, request.timeout)
        return enhance_output_format(report)


async def review(
    code: str,
    focus_areas: Iterable[FocusArea],
    timeout: float,
    api_key: Optional[str],
    settings: Optional[Settings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> CombinedReport:
    """
    Review source code with DeepSeek.

    Args:
        code: Source code to review
        focus_areas: Requested review lenses
        timeout: Per-request timeout in seconds
        api_key: DeepSeek API key supplied by the caller
        settings: Settings override
        on_progress: Observer notified on every chunk status change

    Returns:
        CombinedReport covering every chunk that could be reviewed

    Raises:
        ConfigurationException: If ``api_key`` is missing
        AllChunksFailedException: If no chunk could be reviewed
    """
    settings = settings or get_settings()
    request = ReviewRequest(code=code, focus_areas=frozenset(focus_areas), timeout=timeout)

    # DeepSeekService validates the key before anything is chunked
    async with DeepSeekService(api_key or "", settings=settings) as deepseek_service:
        service = ReviewService(deepseek_service, settings=settings, on_progress=on_progress)
        return await service.review_request(request)


async def review_code(
    file_path: Optional[str] = None,
    code_snippet: Optional[str] = None,
    focus_areas: Iterable[FocusArea] = (FocusArea.GENERAL,),
    timeout: Optional[float] = None,
    settings: Optional[Settings] = None,
    on_progress: Optional[ProgressCallback] = None,
) -> ReviewReport:
    """
    Review a file or a snippet and wrap the outcome for rendering.

    A failed DeepSeek review is captured as ``{"error": message}`` in the
    report instead of being raised; reading the file is not.

    Raises:
        ValueError: If neither ``file_path`` nor ``code_snippet`` is given
        FileReadException: If the file cannot be read
    """
    settings = settings or get_settings()
    requested = set(focus_areas)
    focus_areas = [area for area in FocusArea if area in requested]

    if file_path:
        code = read_file_content(file_path)
        info = get_file_info(file_path)
        source_type, source_name, language = "file", file_path, info["language"]
        logger.info(
            f"File read: {file_path} ({info['size']} bytes)",
            extra={"operation": "read_file", "language": language},
        )
    elif code_snippet:
        code = code_snippet
        source_type, source_name, language = "snippet", "Code Snippet", "plaintext"
    else:
        raise ValueError("Either file_path or code_snippet must be provided")

    logger.debug(
        f"Focus areas: {', '.join(area.value for area in focus_areas)}; source: {source_name}"
    )

    report = ReviewReport(
        source_type=source_type,
        source_name=source_name,
        language=language,
        focus_areas=focus_areas,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )

    try:
        report.deepseek = await review(
            code,
            focus_areas,
            timeout if timeout is not None else settings.request_timeout,
            settings.deepseek_api_key,
            settings=settings,
            on_progress=on_progress,
        )
        logger.info("DeepSeek review completed")
    except CodeReviewException as e:
        logger.error(
            f"DeepSeek review failed: {e.message}",
            extra={"operation": "review_code", "error_type": type(e).__name__},
        )
        report.deepseek = {"error": e.message}

    return report
