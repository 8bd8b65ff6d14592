"""Content extractor turning freeform text into infographic elements via a chat completion."""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI, OpenAI
from pydantic import ValidationError

from .exceptions import ExtractionParseFailed, ExtractionRequestFailed, ExtractionUnavailable
from .models import ExtractorConfig, StructuredContent

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```json\n?|\n?```")

EXPECTED_STATISTICS = 3
EXPECTED_NODES = 5


def strip_code_fences(content: str) -> str:
    """Remove Markdown code-fence markers wrapped around a JSON payload."""
    return _FENCE_PATTERN.sub("", content.strip()).strip()


def parse_structured_content(content: Optional[str]) -> StructuredContent:
    """
    Parse completion text into StructuredContent.

    Args:
        content: Raw completion text, possibly fenced

    Returns:
        Validated StructuredContent

    Raises:
        ExtractionParseFailed: If the text is not a JSON object with a title and overview
    """
    if not content or not content.strip():
        raise ExtractionParseFailed("Empty response from completion endpoint", raw_content=content)

    cleaned = strip_code_fences(content)
    logger.debug(f"Cleaned content: {cleaned}")

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise ExtractionParseFailed(f"Failed to parse infographic data: {e}", raw_content=content) from e

    if not isinstance(data, dict):
        raise ExtractionParseFailed(
            f"Failed to parse infographic data: expected a JSON object, got {type(data).__name__}",
            raw_content=content
        )

    if not data.get("title") or not data.get("overview"):
        raise ExtractionParseFailed(
            "Failed to parse infographic data: Missing required fields in response",
            raw_content=content
        )

    try:
        structured = StructuredContent.model_validate(data)
    except ValidationError as e:
        raise ExtractionParseFailed(f"Failed to parse infographic data: {e}", raw_content=content) from e

    if structured.statistics is not None and len(structured.statistics) != EXPECTED_STATISTICS:
        logger.warning(f"Expected {EXPECTED_STATISTICS} statistics, received {len(structured.statistics)}")
    if structured.flowchart is not None:
        logger.debug(f"Flowchart data structure: {len(structured.flowchart)} nodes, "
                     f"first node: {structured.flowchart[0] if structured.flowchart else None}")
        if len(structured.flowchart) != EXPECTED_NODES:
            logger.warning(f"Expected {EXPECTED_NODES} flowchart nodes, received {len(structured.flowchart)}")

    return structured


class ContentExtractor:
    """Extracts infographic content from text using an OpenAI-compatible chat endpoint."""

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        client: Optional[OpenAI | AsyncOpenAI] = None,
        async_client: Optional[AsyncOpenAI] = None
    ):
        """
        Initialize the content extractor.

        Synchronous and asynchronous clients are kept apart, so ``extract`` and
        ``extract_async`` can both be used on one extractor.

        Args:
            config: Endpoint configuration
            client: Pre-built client; an ``AsyncOpenAI`` instance is used for ``extract_async``
            async_client: Pre-built client for ``extract_async``
        """
        self.config = config or ExtractorConfig()
        if isinstance(client, AsyncOpenAI) and async_client is None:
            client, async_client = None, client
        self.client = client
        self.async_client = async_client

    def _build_messages(self, text: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": self.config.system_prompt},
            {"role": "user", "content": text},
        ]

    def _request_kwargs(self, text: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self.config.model,
            "messages": self._build_messages(text),
        }
        if self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature
        return kwargs

    def _get_client(self) -> OpenAI:
        if self.client is None:
            if not self.config.api_key:
                raise ExtractionUnavailable("Deepseek API key not found")
            self.client = OpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0
            )
        return self.client

    def _get_async_client(self) -> AsyncOpenAI:
        if self.async_client is None:
            if not self.config.api_key:
                raise ExtractionUnavailable("Deepseek API key not found")
            self.async_client = AsyncOpenAI(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
                max_retries=0
            )
        return self.async_client

    def extract(self, text: str) -> StructuredContent:
        """
        Extract title, overview, statistics and flowchart from text.

        Args:
            text: Raw user text

        Returns:
            StructuredContent parsed from the completion

        Raises:
            ValueError: If the text is blank
            ExtractionUnavailable: If no credential or client is configured
            ExtractionRequestFailed: If the endpoint call fails
            ExtractionParseFailed: If the completion is not usable JSON
        """
        if not text or not text.strip():
            raise ValueError("Input text is empty")

        client = self._get_client()
        logger.info(f"Requesting infographic content for {len(text)} characters with {self.config.model}")

        try:
            response = client.chat.completions.create(**self._request_kwargs(text))
        except openai.APIStatusError as e:
            logger.error(f"Completion endpoint returned HTTP {e.status_code}: {e}")
            raise ExtractionRequestFailed("Failed to generate infographic data", e.status_code) from e
        except openai.APIError as e:
            logger.error(f"Completion request failed: {e}")
            raise ExtractionRequestFailed(f"Failed to generate infographic data: {e}") from e

        return self._parse_response(response)

    async def extract_async(self, text: str) -> StructuredContent:
        """Asynchronous version of ``extract`` using ``AsyncOpenAI``."""
        if not text or not text.strip():
            raise ValueError("Input text is empty")

        client = self._get_async_client()
        logger.info(f"Requesting infographic content for {len(text)} characters with {self.config.model} (async)")

        try:
            response = await client.chat.completions.create(**self._request_kwargs(text))
        except openai.APIStatusError as e:
            logger.error(f"Completion endpoint returned HTTP {e.status_code}: {e}")
            raise ExtractionRequestFailed("Failed to generate infographic data", e.status_code) from e
        except openai.APIError as e:
            logger.error(f"Completion request failed: {e}")
            raise ExtractionRequestFailed(f"Failed to generate infographic data: {e}") from e

        return self._parse_response(response)

    def _parse_response(self, response: Any) -> StructuredContent:
        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ExtractionParseFailed(f"Unexpected completion response shape: {e}") from e

        logger.debug(f"Raw API Response: {content}")
        try:
            structured = parse_structured_content(content)
        except ExtractionParseFailed as e:
            logger.error(f"Error parsing infographic data: {e}")
            raise

        logger.info(
            f"Extracted content: title={structured.title!r}, "
            f"statistics={len(structured.statistics or [])}, "
            f"flowchart nodes={len(structured.flowchart or [])}"
        )
        return structured
