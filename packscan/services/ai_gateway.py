"""
Client for the OpenAI-compatible AI gateway.

Two calls are used: a multimodal chat completion that returns the material
analysis as JSON, and an image-generation completion that returns a
chemical structure diagram. Upstream HTTP failures are translated into the
exception hierarchy below; nothing is retried.
"""

import logging
from typing import Any, Dict, Optional

import httpx


logger = logging.getLogger(__name__)


# Exception hierarchy

class GatewayError(Exception):
    """Base exception for AI gateway errors."""

    status_code = 500
    default_message = "AI gateway error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message


class GatewayConfigurationError(GatewayError):
    """Raised when the gateway credential is not configured."""

    default_message = "AI service is not configured"


class GatewayRateLimitError(GatewayError):
    """Raised when the gateway answers 429."""

    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."


class GatewayQuotaError(GatewayError):
    """Raised when the gateway answers 402."""

    status_code = 402
    default_message = "AI credits exhausted. Please add credits."


class GatewayUpstreamError(GatewayError):
    """Raised for any other non-success response or transport failure."""

    def __init__(self, message: Optional[str] = None, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class GatewayResponseError(GatewayError):
    """Raised when a successful response carries no usable content."""

    default_message = "No analysis returned from AI"


class AIGatewayClient:
    """
    Async client for the AI gateway.

    The underlying ``httpx.AsyncClient`` is created lazily and shared by all
    requests made through this object; call :meth:`close` on shutdown.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str,
        analysis_model: str,
        image_model: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.analysis_model = analysis_model
        self.image_model = image_model
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "AIGatewayClient":
        return cls(
            api_key=settings.ai_gateway_api_key,
            base_url=settings.ai_gateway_url,
            analysis_model=settings.analysis_model,
            image_model=settings.image_model,
            timeout=settings.http_timeout,
            transport=transport
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def ensure_configured(self) -> None:
        if not self.is_configured:
            logger.error("AI gateway API key is not configured (set AI_GATEWAY_API_KEY)")
            raise GatewayConfigurationError()

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _post_completion(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.ensure_configured()

        try:
            response = await self._get_client().post(
                "/chat/completions",
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                }
            )
        except httpx.HTTPError as e:
            logger.error(f"AI gateway request failed: {e}")
            raise GatewayUpstreamError(f"AI gateway unreachable: {e.__class__.__name__}")

        if response.status_code == 429:
            raise GatewayRateLimitError()
        if response.status_code == 402:
            raise GatewayQuotaError()
        if not response.is_success:
            logger.error(f"AI gateway error: {response.status_code} {response.text[:500]}")
            raise GatewayUpstreamError(
                f"AI gateway error: {response.status_code}",
                upstream_status=response.status_code
            )

        try:
            return response.json()
        except ValueError:
            raise GatewayResponseError("AI gateway returned a non-JSON response")

    @staticmethod
    def _first_message(data: Dict[str, Any]) -> Dict[str, Any]:
        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices or not isinstance(choices, list):
            return {}
        message = choices[0].get("message") if isinstance(choices[0], dict) else None
        return message if isinstance(message, dict) else {}

    async def analyze_image(self, prompt: str, image_data_url: str) -> str:
        """
        Ask the analysis model about an image and return the raw message content.

        Args:
            prompt: Instruction text describing the expected JSON shape
            image_data_url: Image as a data URL (or any URL the gateway accepts)

        Returns:
            The assistant message content, expected to be a JSON document
        """
        payload = {
            "model": self.analysis_model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {"type": "text", "text": prompt},
                        {"type": "image_url", "image_url": {"url": image_data_url}},
                    ],
                }
            ],
            "response_format": {"type": "json_object"},
        }
        data = await self._post_completion(payload)
        content = self._first_message(data).get("content")
        if not content or not isinstance(content, str):
            raise GatewayResponseError()
        return content

    async def generate_image(self, prompt: str) -> Optional[str]:
        """
        Generate an image from a text prompt.

        Returns:
            The image URL (usually a data URL), or None if the response had none
        """
        payload = {
            "model": self.image_model,
            "messages": [{"role": "user", "content": prompt}],
            "modalities": ["image", "text"],
        }
        data = await self._post_completion(payload)
        images = self._first_message(data).get("images") or []
        if not isinstance(images, list) or not images:
            return None
        first = images[0] if isinstance(images[0], dict) else {}
        image_url = first.get("image_url") or {}
        url = image_url.get("url") if isinstance(image_url, dict) else None
        return url or None
