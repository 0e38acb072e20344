"""
Listing generation client.

Sends one product (with its compatibility data) to an OpenAI-compatible
chat completions endpoint and parses the listing JSON it returns:
a translated title, five bullet points and the extracted part type,
vehicle brand and model.

Features:
- Sync httpx client, injectable for tests
- Bearer token authentication
- Exponential backoff on HTTP 429 (1s, 2s, 4s by default)
- Tolerant parsing of markdown code fences around the JSON
"""

import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
from django.conf import settings

from catalog.exceptions import ListingParseError
from catalog.services.listing_prompt import (
    SYSTEM_PROMPT,
    CompatibilityEntry,
    build_user_prompt,
)

logger = logging.getLogger(__name__)

BULLET_POINT_COUNT = 5

_CODE_FENCE = re.compile(r"```(?:json)?")


@dataclass
class ListingResult:
    """Result of one listing generation call."""

    success: bool
    translated_title: str = ""
    bullet_points: List[str] = field(default_factory=list)
    part_type: Optional[str] = None
    vehicle_brand: Optional[str] = None
    vehicle_model: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    rate_limit_retries: int = 0
    token_usage: Optional[Dict[str, int]] = None


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() == "null":
        return None
    return text


def parse_listing_content(content: str) -> Dict[str, Any]:
    """
    Parse the model output into listing fields.

    Raises:
        ListingParseError: content is not text or not a JSON object, or the
            title or bullet points are missing
    """
    if content is None:
        content = ""
    if not isinstance(content, str):
        raise ListingParseError("Listing content is not text")
    cleaned = _CODE_FENCE.sub("", content).strip()
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise ListingParseError(f"Invalid JSON in listing response: {e}") from e

    if not isinstance(data, dict):
        raise ListingParseError("Listing response is not a JSON object")

    title = _optional_text(data.get("translated_title"))
    if not title:
        raise ListingParseError("Listing response has no translated_title")

    bullets = data.get("bullet_points")
    if not isinstance(bullets, list):
        raise ListingParseError("Listing response has no bullet_points list")
    bullets = [str(b).strip() for b in bullets if str(b).strip()]
    if len(bullets) < BULLET_POINT_COUNT:
        raise ListingParseError(
            f"Expected {BULLET_POINT_COUNT} bullet points, got {len(bullets)}"
        )

    return {
        "translated_title": title,
        "bullet_points": bullets[:BULLET_POINT_COUNT],
        "part_type": _optional_text(data.get("articulo")),
        "vehicle_brand": _optional_text(data.get("marca")),
        "vehicle_model": _optional_text(data.get("modelo")),
    }


class ListingClient:
    """
    HTTP client for the text-generation service.

    One instance holds one httpx.Client; call close() when done unless the
    http_client was passed in by the caller.
    """

    DEFAULT_TIMEOUT = 60.0
    RATE_LIMIT_RETRIES = 3
    RETRY_BASE_DELAY = 1.0  # seconds
    TEMPERATURE = 0.7
    MAX_TOKENS = 2000

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_base_delay: Optional[float] = None,
        http_client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            base_url: API root (defaults to settings.LISTING_AI_URL)
            api_key: Bearer token (defaults to settings.LISTING_AI_API_KEY)
            model: Model name sent with every request
            timeout: Request timeout in seconds
            max_retries: Retries after an HTTP 429 before giving up
            retry_base_delay: First backoff delay, doubled on every retry
            http_client: Pre-built httpx.Client (tests pass a MockTransport)
            sleep: Sleep function used for backoff
        """
        self.base_url = (
            base_url or getattr(settings, "LISTING_AI_URL", "https://api.openai.com/v1")
        ).rstrip("/")
        self.api_key = api_key or getattr(settings, "LISTING_AI_API_KEY", "")
        self.model = model or getattr(settings, "LISTING_AI_MODEL", "gpt-4o-mini")
        self.timeout = timeout or getattr(settings, "LISTING_AI_TIMEOUT", self.DEFAULT_TIMEOUT)
        self.max_retries = (
            max_retries
            if max_retries is not None
            else getattr(settings, "LISTING_RATE_LIMIT_RETRIES", self.RATE_LIMIT_RETRIES)
        )
        self.retry_base_delay = (
            retry_base_delay
            if retry_base_delay is not None
            else getattr(settings, "LISTING_RETRY_BASE_DELAY", self.RETRY_BASE_DELAY)
        )
        self._sleep = sleep
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=self.timeout)

        self.completions_endpoint = f"{self.base_url}/chat/completions"

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def _get_headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_payload(
        self,
        sku: str,
        description: str,
        category: Optional[str] = None,
        price: Any = 0,
        stock: Any = 0,
        compatibility: Optional[List[CompatibilityEntry]] = None,
    ) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": build_user_prompt(
                        sku, description, category, price, stock, compatibility
                    ),
                },
            ],
            "temperature": self.TEMPERATURE,
            "max_tokens": self.MAX_TOKENS,
            "response_format": {"type": "json_object"},
        }

    def generate_listing(
        self,
        sku: str,
        description: str,
        category: Optional[str] = None,
        price: Any = 0,
        stock: Any = 0,
        compatibility: Optional[List[CompatibilityEntry]] = None,
        on_attempt: Optional[Callable[[], Any]] = None,
    ) -> ListingResult:
        """
        Generate the listing of one product.

        on_attempt is called before every request, retries included.

        Per-product problems (HTTP errors, bad JSON, missing fields) come back
        as an unsuccessful ListingResult; nothing is raised for them.
        """
        payload = self.build_payload(sku, description, category, price, stock, compatibility)

        logger.debug(f"Requesting listing for {sku} (description length: {len(description)} chars)")

        try:
            response, retries = self._send_request(payload, on_attempt)
        except httpx.TimeoutException as e:
            logger.error(f"Listing service timeout for {sku}: {e}")
            return ListingResult(success=False, error=f"Request timeout after {self.timeout}s")
        except httpx.HTTPError as e:
            logger.error(f"Listing service connection error for {sku}: {e}")
            return ListingResult(success=False, error=f"Connection error: {str(e)}")

        result = self._parse_response(response)
        result.status_code = response.status_code
        result.rate_limit_retries = retries
        if result.success:
            logger.info(f"Listing generated for {sku} after {retries} rate-limit retries")
        else:
            logger.warning(f"Listing generation failed for {sku}: {result.error}")
        return result

    def _send_request(
        self,
        payload: Dict[str, Any],
        on_attempt: Optional[Callable[[], Any]] = None,
    ) -> Tuple[httpx.Response, int]:
        """
        POST the payload, backing off on HTTP 429.

        Returns the last response and the number of retries taken. A 429
        that survives every retry is returned as is.
        """
        retries = 0
        while True:
            if on_attempt is not None:
                on_attempt()
            response = self._client.post(
                self.completions_endpoint,
                json=payload,
                headers=self._get_headers(),
            )
            if response.status_code != 429 or retries >= self.max_retries:
                return response, retries

            delay = self.retry_base_delay * (2 ** retries)
            retries += 1
            logger.warning(
                f"Rate limited by listing service, retry {retries}/{self.max_retries} in {delay:.1f}s"
            )
            self._sleep(delay)

    def _parse_response(self, response: httpx.Response) -> ListingResult:
        if response.status_code == 429:
            return ListingResult(
                success=False,
                error=f"Rate limited: still throttled after {self.max_retries} retries",
            )

        if response.status_code != 200:
            return ListingResult(
                success=False,
                error=f"API returned status {response.status_code}: {response.text[:200]}",
            )

        try:
            data = response.json()
        except ValueError as e:
            return ListingResult(success=False, error=f"Invalid JSON response: {str(e)}")

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return ListingResult(success=False, error="No content in listing response")

        try:
            fields = parse_listing_content(content)
        except ListingParseError as e:
            return ListingResult(success=False, error=str(e))

        return ListingResult(success=True, token_usage=data.get("usage"), **fields)


def get_listing_client(**kwargs) -> ListingClient:
    """
    Factory function to get a listing client configured from Django settings.
    """
    return ListingClient(**kwargs)
