"""Photo analysis through the Gemini ``generateContent`` REST endpoint."""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from civicconnect.core.exceptions import ServiceUnavailableException, ValidationException
from civicconnect.services.classifier import extract_field, valid_categories, valid_severities

logger = logging.getLogger(__name__)

SERVICE_NAME = "AI service"


@dataclass(frozen=True)
class ImageAnalysis:
    """Raw, untrusted fields proposed by the model."""

    description: str
    category_label: str
    severity_label: str
    action_required: str = ""


class ImageClassifier(ABC):
    @abstractmethod
    async def classify(self, image_url: str) -> ImageAnalysis:
        raise NotImplementedError

    async def close(self) -> None:
        pass


def build_prompt() -> str:
    categories = "\n".join(f"   - {name}" for name in valid_categories())
    severities = ", ".join(valid_severities())
    return (
        "Analyze this civic issue image and provide a structured response with EXACTLY these 4 fields:\n\n"
        "1. Description: A clear, concise description of the civic problem you observe "
        "(2-3 sentences max). Be specific about what you see.\n\n"
        "2. Category: Choose EXACTLY ONE category from this list that best matches the issue:\n"
        f"{categories}\n\n"
        f"3. Severity: Rate as exactly one of: {severities}\n\n"
        "4. ActionRequired: Brief suggested action (1 sentence)\n\n"
        "Focus on civic infrastructure issues. If you cannot clearly identify a civic issue, "
        'describe what you observe and categorize as "General Issues".\n\n'
        "Please format your response as:\n"
        "Description: [your description]\n"
        "Category: [exact category name]\n"
        "Severity: [Low/Medium/High]\n"
        "ActionRequired: [suggested action]\n"
    )


def guess_mime_type(image_url: str, header: Optional[str]) -> str:
    if header:
        return header.split(";")[0].strip()
    lowered = image_url.lower()
    if ".png" in lowered:
        return "image/png"
    if ".webp" in lowered:
        return "image/webp"
    if ".gif" in lowered:
        return "image/gif"
    return "image/jpeg"


def response_text(payload: Dict[str, Any]) -> str:
    """Concatenate the text parts of the first candidate."""
    candidates = payload.get("candidates") or []
    if not candidates:
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    return "".join(part.get("text", "") for part in parts)


class GeminiImageClassifier(ImageClassifier):
    """Fetches the photo, inlines it as base64 and asks Gemini for the structured fields."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        api_url: str,
        timeout: float = 30.0,
        max_image_bytes: int = 5 * 1024 * 1024,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.api_url = api_url.rstrip("/")
        self.max_image_bytes = max_image_bytes
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def _fetch_image(self, image_url: str) -> Dict[str, str]:
        chunks = []
        received = 0
        try:
            async with self._client.stream("GET", image_url, follow_redirects=True) as response:
                response.raise_for_status()
                declared = response.headers.get("content-length")
                if declared and declared.isdigit() and int(declared) > self.max_image_bytes:
                    raise self._too_large()
                async for chunk in response.aiter_bytes():
                    received += len(chunk)
                    if received > self.max_image_bytes:
                        raise self._too_large()
                    chunks.append(chunk)
                content_type = response.headers.get("content-type")
        except httpx.HTTPError as e:
            logger.warning(f"Could not fetch image for analysis: {e}")
            raise ServiceUnavailableException(
                "Image host",
                status_code=502,
                internal_message=f"Image fetch failed: {e}",
            )
        return {
            "mime_type": guess_mime_type(image_url, content_type),
            "data": base64.b64encode(b"".join(chunks)).decode("ascii"),
        }

    def _too_large(self) -> ValidationException:
        limit_mb = self.max_image_bytes // (1024 * 1024)
        return ValidationException(f"Image exceeds the {limit_mb} MB limit", field="imageUrl")

    async def classify(self, image_url: str) -> ImageAnalysis:
        if not self.api_key:
            logger.error("Gemini API key is missing")
            raise ServiceUnavailableException(SERVICE_NAME, internal_message="Gemini API key is missing")

        inline_data = await self._fetch_image(image_url)
        body = {
            "contents": [
                {
                    "role": "user",
                    "parts": [{"text": build_prompt()}, {"inline_data": inline_data}],
                }
            ],
            "generationConfig": {"thinkingConfig": {"thinkingBudget": 0}},
        }

        try:
            response = await self._client.post(
                f"{self.api_url}/{self.model}:generateContent",
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Gemini returned {e.response.status_code}")
            raise ServiceUnavailableException(
                SERVICE_NAME,
                status_code=502,
                internal_message=f"Gemini API error: {e.response.status_code}",
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Gemini request failed: {e}")
            raise ServiceUnavailableException(SERVICE_NAME, internal_message=str(e))

        text = response_text(payload)
        if not text:
            raise ServiceUnavailableException(
                SERVICE_NAME,
                status_code=502,
                internal_message="No response generated from AI",
            )

        logger.debug(f"Raw model output: {text!r}")
        return ImageAnalysis(
            description=extract_field(text, "Description"),
            category_label=extract_field(text, "Category"),
            severity_label=extract_field(text, "Severity"),
            action_required=extract_field(text, "ActionRequired"),
        )

    async def close(self) -> None:
        await self._client.aclose()
