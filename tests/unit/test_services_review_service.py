"""
Tests for ai_code_review/services/review_service.py
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from ai_code_review.exceptions import (
    AllChunksFailedException,
    ConfigurationException,
    DeepSeekAPIException,
    FileReadException,
    ReviewTimeoutException,
)
from ai_code_review.models.review_models import (
    Chunk,
    ChunkStatus,
    CombinedReport,
    FocusArea,
    ReviewRequest,
)
from ai_code_review.services.review_service import ReviewService, review, review_code


def _chunks(count: int):
    return [Chunk(index=i, text=f"line {i}\n" * 20) for i in range(count)]


@pytest.fixture
def fast_settings(settings):
    """Settings with a single retry so failing chunks settle quickly"""
    return settings.model_copy(update={"ai_retries": 1})


class TestReviewAll:
    """Test ReviewService.review_all"""

    async def test_all_chunks_succeed(self, mock_deepseek_service, fast_settings, make_chunk_result):
        """Test every chunk is reviewed and merged"""

        async def review_chunk(code, focus_areas, timeout, chunk_number, total_chunks):
            return make_chunk_result(chunk_number, total_chunks, critical=[f"Issue {chunk_number}"])

        mock_deepseek_service.review_chunk.side_effect = review_chunk
        service = ReviewService(mock_deepseek_service, settings=fast_settings)

        report = await service.review_all(_chunks(3), [FocusArea.GENERAL], 5.0)

        assert isinstance(report, CombinedReport)
        assert report.processed_chunks == 3
        assert report.total_chunks == 3
        assert report.partial_success is False
        assert report.errors == []
        assert report.issues.critical == ["Issue 1", "Issue 2", "Issue 3"]
        assert mock_deepseek_service.review_chunk.await_count == 3

    async def test_single_chunk_is_promoted_to_report(
        self, mock_deepseek_service, fast_settings, make_chunk_result
    ):
        """Test a one-chunk review keeps its sections and gains counts"""
        mock_deepseek_service.review_chunk.return_value = make_chunk_result(
            summary="Only chunk", high=["Slow"]
        )
        service = ReviewService(mock_deepseek_service, settings=fast_settings)

        report = await service.review_all(_chunks(1), [FocusArea.GENERAL], 5.0)

        assert report.summary == "Only chunk"
        assert report.issue_count.high == 1
        assert report.processed_chunks == 1
        assert len(report.chunk_results) == 1

    async def test_partial_failure(self, mock_deepseek_service, fast_settings, make_chunk_result):
        """Test failed chunks are reported while the rest are merged"""

        async def review_chunk(code, focus_areas, timeout, chunk_number, total_chunks):
            if chunk_number in (2, 4):
                raise DeepSeekAPIException(
                    f"DeepSeek API error: 500 - boom {chunk_number}", status_code=500
                )
            return make_chunk_result(chunk_number, total_chunks)

        mock_deepseek_service.review_chunk.side_effect = review_chunk
        service = ReviewService(mock_deepseek_service, settings=fast_settings)
        chunks = _chunks(5)

        report = await service.review_all(chunks, [FocusArea.GENERAL], 5.0)

        assert report.partial_success is True
        assert report.processed_chunks == 3
        assert report.total_chunks == 5
        assert [error.chunk_number for error in report.errors] == [2, 4]
        assert report.errors[0].error == "DeepSeek API error: 500 - boom 2"
        assert report.errors[0].code_sample == chunks[1].text[:100] + "..."
        assert report.summary.startswith(
            "⚠️ Note: 2 of 5 chunks failed to process. The review is incomplete.\n\n"
        )
        assert [r is None for r in report.chunk_results] == [False, True, False, True, False]
        # one initial attempt plus one retry for each failing chunk
        assert mock_deepseek_service.review_chunk.await_count == 3 + 2 * 2

    async def test_all_chunks_fail(self, mock_deepseek_service, fast_settings):
        """Test the run fails when no chunk can be reviewed"""
        mock_deepseek_service.review_chunk.side_effect = ReviewTimeoutException(
            "DeepSeek API request timed out for chunk 1", chunk_number=1
        )
        service = ReviewService(mock_deepseek_service, settings=fast_settings)

        with pytest.raises(AllChunksFailedException) as exc_info:
            await service.review_all(_chunks(2), [FocusArea.GENERAL], 5.0)

        assert exc_info.value.failed_count == 2
        assert exc_info.value.message == (
            "All 2 chunks failed to process. "
            "First error: DeepSeek API request timed out for chunk 1"
        )

    async def test_retry_recovers_chunk(
        self, mock_deepseek_service, fast_settings, make_chunk_result
    ):
        """Test a chunk that succeeds on retry carries its retry metadata"""
        mock_deepseek_service.review_chunk.side_effect = [
            DeepSeekAPIException("flaky"),
            make_chunk_result(),
        ]
        service = ReviewService(mock_deepseek_service, settings=fast_settings)

        report = await service.review_all(_chunks(1), [FocusArea.GENERAL], 5.0)

        assert report.retry_attempts == 1
        assert report.retry_success is True
        assert report.chunk_results[0].retry_success is True

    async def test_progress_transitions(
        self, mock_deepseek_service, fast_settings, make_chunk_result
    ):
        """Test the observer sees in-progress, retrying and terminal states"""
        snapshots = []
        mock_deepseek_service.review_chunk.side_effect = [
            DeepSeekAPIException("flaky"),
            make_chunk_result(),
        ]
        service = ReviewService(
            mock_deepseek_service, settings=fast_settings, on_progress=snapshots.append
        )

        await service.review_all(_chunks(1), [FocusArea.GENERAL], 5.0)

        assert [snapshot[0] for snapshot in snapshots] == [
            ChunkStatus.IN_PROGRESS,
            ChunkStatus.RETRYING,
            ChunkStatus.COMPLETED,
        ]

    async def test_failed_chunk_ends_failed(self, mock_deepseek_service, fast_settings, make_chunk_result):
        """Test a chunk that exhausts its retries is marked failed"""
        snapshots = []

        async def review_chunk(code, focus_areas, timeout, chunk_number, total_chunks):
            if chunk_number == 2:
                raise DeepSeekAPIException("down")
            return make_chunk_result(chunk_number, total_chunks)

        mock_deepseek_service.review_chunk.side_effect = review_chunk
        service = ReviewService(
            mock_deepseek_service, settings=fast_settings, on_progress=snapshots.append
        )

        await service.review_all(_chunks(2), [FocusArea.GENERAL], 5.0)

        assert snapshots[-1] == [ChunkStatus.COMPLETED, ChunkStatus.FAILED]
        assert ChunkStatus.RETRYING in [snapshot[1] for snapshot in snapshots]

    @pytest.mark.parametrize("limit, expected_peak", [(2, 2), (0, 6)])
    async def test_concurrency_limit(
        self, mock_deepseek_service, fast_settings, make_chunk_result, limit, expected_peak
    ):
        """Test no more than the configured number of chunks run at once"""
        active = 0
        peak = 0

        async def review_chunk(code, focus_areas, timeout, chunk_number, total_chunks):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return make_chunk_result(chunk_number, total_chunks)

        mock_deepseek_service.review_chunk.side_effect = review_chunk
        service = ReviewService(
            mock_deepseek_service, settings=fast_settings, max_concurrency=limit
        )

        report = await service.review_all(_chunks(6), [FocusArea.GENERAL], 5.0)

        assert report.processed_chunks == 6
        assert peak == expected_peak

    async def test_focus_areas_passed_in_stable_order(
        self, mock_deepseek_service, fast_settings, make_chunk_result
    ):
        """Test focus areas reach the client as an ordered list"""
        mock_deepseek_service.review_chunk.return_value = make_chunk_result()
        service = ReviewService(mock_deepseek_service, settings=fast_settings)

        await service.review_all(
            _chunks(1), {FocusArea.READABILITY, FocusArea.SECURITY}, 7.5
        )

        args = mock_deepseek_service.review_chunk.await_args.args
        assert args[1] == [FocusArea.SECURITY, FocusArea.READABILITY]
        assert args[2] == 7.5
        assert args[3:] == (1, 1)

    async def test_no_chunks(self, mock_deepseek_service, fast_settings):
        """Test an empty chunk list is rejected before any request"""
        service = ReviewService(mock_deepseek_service, settings=fast_settings)

        with pytest.raises(ValueError, match="No chunks to review"):
            await service.review_all([], [FocusArea.GENERAL], 5.0)

        mock_deepseek_service.review_chunk.assert_not_awaited()


class TestReviewRequest:
    """Test ReviewService.review_request"""

    async def test_code_is_chunked_and_enhanced(
        self, mock_deepseek_service, fast_settings, make_chunk_result
    ):
        """Test the request is split by chunk_size and the summary gets quick stats"""

        async def review_chunk(code, focus_areas, timeout, chunk_number, total_chunks):
            return make_chunk_result(chunk_number, total_chunks)

        mock_deepseek_service.review_chunk.side_effect = review_chunk
        settings = fast_settings.model_copy(update={"chunk_size": 100})
        service = ReviewService(mock_deepseek_service, settings=settings)
        request = ReviewRequest(code="x = 1\n" * 50, timeout=5.0)

        report = await service.review_request(request)

        assert report.total_chunks == 4
        assert report.summary.startswith("## Quick Stats")
        assert "- **Chunks Processed**: 4/4" in report.summary


class TestReview:
    """Test the review entry point"""

    async def test_missing_api_key(self, settings):
        """Test reviewing without a key fails before any request"""
        with pytest.raises(ConfigurationException):
            await review("x = 1", [FocusArea.GENERAL], 5.0, None, settings=settings)

    async def test_review_uses_client(
        self, settings, mock_transport_client, json_response, make_completion, sample_review_text
    ):
        """Test the entry point reviews through the DeepSeek client"""
        client = mock_transport_client(
            lambda request: json_response(make_completion(sample_review_text))
        )

        with patch(
            "ai_code_review.services.deepseek_service.httpx.AsyncClient", return_value=client
        ):
            report = await review(
                "x = 1\n", [FocusArea.SECURITY], 5.0, "sk-test", settings=settings
            )

        assert report.issues.critical == ["1. SQL injection"]
        assert report.summary.startswith("## Quick Stats")
        assert client.is_closed


class TestReviewCode:
    """Test review_code"""

    async def test_snippet(self, settings, make_chunk_result):
        """Test a snippet review is wrapped in a report"""
        combined = CombinedReport.from_result(make_chunk_result())

        with patch(
            "ai_code_review.services.review_service.review", AsyncMock(return_value=combined)
        ) as mock_review:
            report = await review_code(
                code_snippet="x = 1", focus_areas=[FocusArea.SECURITY], settings=settings
            )

        assert report.source_type == "snippet"
        assert report.source_name == "Code Snippet"
        assert report.language == "plaintext"
        assert report.focus_areas == [FocusArea.SECURITY]
        assert report.deepseek is combined
        assert report.review_error is None
        args = mock_review.await_args.args
        assert args[0] == "x = 1"
        assert args[2] == settings.request_timeout
        assert args[3] == "sk-test-deepseek-key"

    async def test_file(self, settings, tmp_path, make_chunk_result):
        """Test a file review reads the file and detects its language"""
        source = tmp_path / "app.py"
        source.write_text("print('hi')\n")
        combined = CombinedReport.from_result(make_chunk_result())

        with patch(
            "ai_code_review.services.review_service.review", AsyncMock(return_value=combined)
        ) as mock_review:
            report = await review_code(file_path=str(source), timeout=12.0, settings=settings)

        assert report.source_type == "file"
        assert report.source_name == str(source)
        assert report.language == "python"
        assert mock_review.await_args.args[0] == "print('hi')\n"
        assert mock_review.await_args.args[2] == 12.0

    async def test_explicit_timeout_is_not_replaced(self, settings, make_chunk_result):
        """Test a falsy timeout is passed through instead of the configured default"""
        combined = CombinedReport.from_result(make_chunk_result())

        with patch(
            "ai_code_review.services.review_service.review", AsyncMock(return_value=combined)
        ) as mock_review:
            await review_code(code_snippet="x = 1", timeout=0.0, settings=settings)

        assert mock_review.await_args.args[2] == 0.0

    async def test_review_error_is_captured(self):
        """Test a failed review becomes an error entry instead of raising"""
        report = await review_code(code_snippet="x = 1")

        assert report.deepseek == {"error": report.review_error}
        assert "DeepSeek API key not found" in report.review_error

    async def test_missing_file(self, settings):
        """Test an unreadable file is raised"""
        with pytest.raises(FileReadException):
            await review_code(file_path="does/not/exist.py", settings=settings)

    async def test_no_input(self, settings):
        """Test a file or snippet is required"""
        with pytest.raises(ValueError, match="Either file_path or code_snippet"):
            await review_code(settings=settings)
