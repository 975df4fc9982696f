"""
DeepSeek chat-completion API integration service
"""

import asyncio
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ai_code_review.config.settings import Settings, get_settings
from ai_code_review.exceptions import (
    ConfigurationException,
    DeepSeekAPIException,
    MalformedResponseException,
    ReviewTimeoutException,
)
from ai_code_review.models.review_models import ChunkResult, FocusArea
from ai_code_review.services.section_extractor import (
    ReviewExtractor,
    default_extractor,
)

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert code reviewer. Be concise and focus on important issues."
)

PROMPT_TEMPLATE = """Review this code (chunk {chunk_number}/{total_chunks}) focusing on {focus}.
Provide a brief summary, list issues by severity (Critical/High/Medium/Low), and suggest improvements.

CODE:
```
{code}
```"""

# Prompt order of the specific review lenses; "general" adds nothing on its own
_FOCUS_LABELS = (
    (FocusArea.SECURITY, "security"),
    (FocusArea.PERFORMANCE, "performance"),
    (FocusArea.READABILITY, "readability"),
    (FocusArea.MAINTAINABILITY, "maintainability"),
)
DEFAULT_FOCUS_LABEL = "general code quality"


def describe_focus_areas(focus_areas: Iterable[FocusArea]) -> str:
    """Comma-join the requested review lenses in a stable order"""
    requested = set(focus_areas)
    labels = [label for area, label in _FOCUS_LABELS if area in requested]
    return ", ".join(labels) or DEFAULT_FOCUS_LABEL


def build_prompt(
    code: str, focus_areas: Iterable[FocusArea], chunk_number: int, total_chunks: int
) -> str:
    return PROMPT_TEMPLATE.format(
        chunk_number=chunk_number,
        total_chunks=total_chunks,
        focus=describe_focus_areas(focus_areas),
        code=code,
    )


def _error_detail(body: str) -> str:
    """Pull ``error.message`` (or ``error``) out of a JSON error body"""
    try:
        data = json.loads(body)
    except ValueError:
        return body
    if not isinstance(data, dict):
        return body
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error)
    return str(error or body)


class DeepSeekService:
    """Service for reviewing code chunks with the DeepSeek API"""

    def __init__(
        self,
        api_key: str,
        settings: Optional[Settings] = None,
        extractor: Optional[ReviewExtractor] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not api_key:
            raise ConfigurationException(
                message="DeepSeek API key not found. Set DEEPSEEK_API_KEY or "
                "NEXT_PUBLIC_DEEPSEEK_API_KEY in .env or .aicodereviewrc",
                config_key="deepseek_api_key",
            )

        self.settings = settings or get_settings()
        self.model = self.settings.deepseek_model
        self.extractor = extractor or default_extractor
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self.client = client or httpx.AsyncClient(
            base_url=self.settings.deepseek_base_url,
            # Per-request deadlines are enforced by review_chunk
            timeout=None,
            limits=httpx.Limits(
                max_keepalive_connections=self.settings.max_keepalive_connections,
                max_connections=self.settings.max_connections,
                keepalive_expiry=self.settings.keepalive_expiry,
            ),
        )

    def _build_payload(self, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            "temperature": self.settings.ai_temperature,
            "max_tokens": self.settings.ai_max_tokens,
        }

    async def _request_completion(self, prompt: str, chunk_number: int) -> str:
        """POST one chat completion and return the message content"""
        try:
            response = await self.client.post(
                "/chat/completions",
                headers=self.headers,
                json=self._build_payload(prompt),
            )
        except httpx.RequestError as e:
            logger.error(
                f"Network error reviewing chunk {chunk_number}: {e}",
                extra={
                    "operation": "chat_completion",
                    "chunk_number": chunk_number,
                    "error_type": "network_error",
                },
            )
            raise DeepSeekAPIException(
                message=f"DeepSeek API network error: {e}",
                details={"chunk_number": chunk_number},
                original_error=e,
            )

        if not response.is_success:
            body = response.text
            logger.error(
                f"DeepSeek API error {response.status_code} for chunk {chunk_number}: {body}",
                extra={
                    "operation": "chat_completion",
                    "chunk_number": chunk_number,
                    "error_type": "api_error",
                    "status_code": response.status_code,
                },
            )
            raise DeepSeekAPIException(
                message=f"DeepSeek API error: {response.status_code} - {_error_detail(body)}",
                status_code=response.status_code,
                response_body=body,
            )

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise MalformedResponseException(
                message="Invalid response from DeepSeek API",
                details={"chunk_number": chunk_number},
                original_error=e,
            )

        if not isinstance(content, str) or not content:
            raise MalformedResponseException(
                message="Invalid response from DeepSeek API",
                details={"chunk_number": chunk_number},
            )
        return content

    async def review_chunk(
        self,
        code: str,
        focus_areas: Iterable[FocusArea],
        timeout: float,
        chunk_number: int = 1,
        total_chunks: int = 1,
    ) -> ChunkResult:
        """
        Review one chunk of code.

        Args:
            code: Chunk text
            focus_areas: Requested review lenses
            timeout: Seconds to wait for the response
            chunk_number: 1-based chunk ordinal
            total_chunks: Number of chunks in the split

        Returns:
            ChunkResult extracted from the model response

        Raises:
            DeepSeekAPIException: Transport failure or non-success status
            ReviewTimeoutException: No response within ``timeout``
            MalformedResponseException: Response without completion content
        """
        focus_areas = list(focus_areas)
        prompt = build_prompt(code, focus_areas, chunk_number, total_chunks)

        try:
            review_text = await asyncio.wait_for(
                self._request_completion(prompt, chunk_number), timeout
            )
        except asyncio.TimeoutError:
            raise ReviewTimeoutException(
                message=f"DeepSeek API request timed out for chunk {chunk_number}",
                chunk_number=chunk_number,
            )

        sections = self.extractor.parse(review_text)
        logger.debug(
            f"Chunk {chunk_number}/{total_chunks} reviewed",
            extra={
                "operation": "review_chunk_success",
                "chunk_number": chunk_number,
                "total_chunks": total_chunks,
            },
        )
        return ChunkResult(
            model=self.model,
            focus_areas=focus_areas,
            summary=sections.summary,
            issues=sections.issues,
            recommendations=sections.recommendations,
            strengths=sections.strengths,
            raw_response=review_text,
            chunk_number=chunk_number,
            total_chunks=total_chunks,
        )

    async def list_models(self) -> List[str]:
        """Return the model ids available to the configured API key"""
        try:
            response = await self.client.get(
                "/models", headers=self.headers, timeout=self.settings.request_timeout
            )
        except httpx.RequestError as e:
            raise DeepSeekAPIException(
                message=f"DeepSeek API network error: {e}", original_error=e
            )

        if not response.is_success:
            raise DeepSeekAPIException(
                message=f"DeepSeek API error: {response.status_code} - "
                f"{_error_detail(response.text)}",
                status_code=response.status_code,
                response_body=response.text,
            )

        try:
            return [model["id"] for model in response.json()["data"]]
        except (ValueError, KeyError, TypeError) as e:
            raise MalformedResponseException(
                message="Invalid model list from DeepSeek API", original_error=e
            )

    async def __aenter__(self):
        """Async context manager entry"""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit with proper cleanup"""
        await self.close()

    async def close(self):
        """Close the HTTP client and cleanup resources"""
        if self.client and not self.client.is_closed:
            await self.client.aclose()
            logger.info("DeepSeek service HTTP client closed")
