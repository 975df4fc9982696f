"""Pytest configuration and fixtures for the DeepSeek code review tests."""

import json
from typing import Any, Callable, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from ai_code_review.config.settings import Settings, get_settings
from ai_code_review.models.review_models import (
    ChunkResult,
    FocusArea,
    IssuesBySeverity,
)
from ai_code_review.services.deepseek_service import DeepSeekService

TEST_BASE_URL = "https://api.deepseek.test/v1"

# ============================================================================
# Settings and Configuration Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep real credentials, .env and .aicodereviewrc files out of the tests."""
    for key in (
        "DEEPSEEK_API_KEY",
        "NEXT_PUBLIC_DEEPSEEK_API_KEY",
        "DEEPSEEK_MODEL",
        "DEEPSEEK_BASE_URL",
        "LOG_LEVEL",
        "CHUNK_SIZE",
        "MAX_CONCURRENT_CHUNKS",
    ):
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Set up mock environment variables for testing."""
    env_vars = {
        "DEEPSEEK_API_KEY": "sk-test-deepseek-key",
        "DEEPSEEK_BASE_URL": TEST_BASE_URL,
        "LOG_LEVEL": "INFO",
    }
    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)
    return env_vars


@pytest.fixture
def settings() -> Settings:
    """Settings with fast retries for testing."""
    return Settings(
        deepseek_api_key="sk-test-deepseek-key",
        deepseek_base_url=TEST_BASE_URL,
        retry_base_delay=0.001,
        retry_max_delay=0.01,
        request_timeout=5.0,
    )


# ============================================================================
# Review Text Fixtures
# ============================================================================


@pytest.fixture
def sample_review_text() -> str:
    """A well-formed model response using Markdown headings."""
    return (
        "## Summary\nAll good\n"
        "## Issues\n### Critical\n1. SQL injection\n"
        "### High\n1. No input validation\n"
        "## Recommendations\nAdd tests\n"
        "## Strengths\nClear naming"
    )


@pytest.fixture
def make_completion() -> Callable[[str], Dict[str, Any]]:
    """Factory for chat-completion response bodies."""

    def _make(content: str) -> Dict[str, Any]:
        return {
            "id": "chatcmpl-test",
            "object": "chat.completion",
            "model": "deepseek-chat",
            "choices": [
                {
                    "index": 0,
                    "message": {"role": "assistant", "content": content},
                    "finish_reason": "stop",
                }
            ],
        }

    return _make


# ============================================================================
# Model Fixtures
# ============================================================================


@pytest.fixture
def make_chunk_result() -> Callable[..., ChunkResult]:
    """Factory for ChunkResult instances."""

    def _make(
        chunk_number: int = 1,
        total_chunks: int = 1,
        summary: str = "Looks fine",
        critical: Optional[List[str]] = None,
        high: Optional[List[str]] = None,
        medium: Optional[List[str]] = None,
        low: Optional[List[str]] = None,
        recommendations: str = "",
        strengths: str = "",
        **kwargs: Any,
    ) -> ChunkResult:
        return ChunkResult(
            model="deepseek-chat",
            focus_areas=[FocusArea.GENERAL],
            summary=summary,
            issues=IssuesBySeverity(
                critical=critical or [],
                high=high or [],
                medium=medium or [],
                low=low or [],
            ),
            recommendations=recommendations,
            strengths=strengths,
            raw_response=f"raw {chunk_number}",
            chunk_number=chunk_number,
            total_chunks=total_chunks,
            **kwargs,
        )

    return _make


# ============================================================================
# HTTP Fixtures
# ============================================================================


@pytest.fixture
def mock_transport_client() -> Callable[[Callable[[httpx.Request], Any]], httpx.AsyncClient]:
    """Build an AsyncClient whose requests are answered by ``handler``."""

    def _build(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=TEST_BASE_URL, transport=httpx.MockTransport(handler)
        )

    return _build


@pytest.fixture
def json_response() -> Callable[..., httpx.Response]:
    """Factory for JSON httpx responses."""

    def _make(body: Any, status_code: int = 200) -> httpx.Response:
        return httpx.Response(
            status_code,
            content=json.dumps(body).encode(),
            headers={"content-type": "application/json"},
        )

    return _make


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def mock_deepseek_service(settings: Settings) -> Mock:
    """Create a mock DeepSeek service."""
    mock_service = Mock(spec=DeepSeekService)
    mock_service.settings = settings
    mock_service.model = "deepseek-chat"
    mock_service.review_chunk = AsyncMock()
    return mock_service
