import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from google import genai

from .base import BaseLLMProvider
from ..errors import ErrorKind
from ..types import CallKind, ContentPart, ImagePart, Message, Role, TextPart
from ..utils import decode_base64_to_bytes

ROLE_NAMES = {
    Role.HUMAN: "user",
    Role.AI: "model",
    # Sent inline; generateContent has no side channel here
    Role.SYSTEM: "system",
}

DEFAULT_IMAGE_MIME = "image/jpeg"
MODEL_PREFIX = "models/"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedImage:
    """
    Inline image returned by generateContent.
    """
    mime_type: str
    data: str

    def to_bytes(self) -> bytes:
        return decode_base64_to_bytes(self.data)


class GeminiProvider(BaseLLMProvider):
    """
    Adapter for the Gemini REST API (generateContent, embedContent and
    batchEmbedContents).
    """

    name = "Gemini"

    def _headers(self) -> Dict[str, str]:
        return {"x-goog-api-key": self.api_key}

    @property
    def path_model(self) -> str:
        """Model id as used in the URL path, without the ``models/`` prefix."""
        model = self.model
        if model.startswith(MODEL_PREFIX):
            model = model[len(MODEL_PREFIX):]
        return model

    @property
    def request_model(self) -> str:
        """Model id as used inside request bodies, with one ``models/`` prefix."""
        return MODEL_PREFIX + self.path_model

    # ==========================================================================
    # Generation
    # ==========================================================================

    async def chat(self, messages: List[Message]) -> Message:
        """
        Send a generateContent request and normalize the first candidate.

        Inline images of the first candidate come first, followed by one text
        part holding all of that candidate's text.

        Args:
            messages (List[Message]): Conversation history.

        Returns:
            Message: The reply with role AI.

        Raises:
            LLMError: SEMANTIC when the response has no candidates.
        """
        data = await self.generate(messages)
        parts = self._candidate_parts(data)

        content: List[ContentPart] = [
            ImagePart(image.data) for image in self._extract_images(parts)
        ]
        content.append(TextPart(self._extract_text(parts)))

        return Message.create(Role.AI, content, id=data.get("responseId"))

    async def generate(self, messages: List[Message]) -> Dict[str, Any]:
        """
        Post messages to generateContent and return the raw response JSON.
        """
        payload = {"contents": self._convert_messages(messages)}
        data = await self._post_json(
            self.url(f"{self.path_model}:generateContent"),
            payload,
            self._headers(),
            "generateContent",
        )
        if not isinstance(data, dict):
            raise self.error(ErrorKind.DECODE, "Unexpected generateContent response shape")
        return data

    async def generate_images(self, messages: List[Message]) -> List[GeneratedImage]:
        """
        Run an image generation request.

        Args:
            messages (List[Message]): Prompt and optional reference images.

        Returns:
            List[GeneratedImage]: Inline images of the first candidate.

        Raises:
            LLMError: SEMANTIC when no candidate or no image was returned.
        """
        data = await self.generate(messages)
        images = self._extract_images(self._candidate_parts(data))
        if not images:
            raise self.error(ErrorKind.SEMANTIC, "Gemini returned no image data")
        return images

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        return [
            {"role": ROLE_NAMES[msg.role], "parts": self._convert_parts(msg.content)}
            for msg in messages
        ]

    @staticmethod
    def _convert_parts(content) -> List[Dict[str, Any]]:
        parts = []
        for part in content:
            if isinstance(part, TextPart):
                parts.append({"text": part.text})
            else:
                parts.append({
                    "inlineData": {
                        "mimeType": part.mime_type(DEFAULT_IMAGE_MIME),
                        "data": part.data,
                    }
                })
        return parts or [{"text": ""}]

    def _candidate_parts(self, data: Dict[str, Any]) -> List[Dict[str, Any]]:
        candidates = data.get("candidates")
        if not candidates:
            raise self.error(ErrorKind.SEMANTIC, "No candidates found")

        try:
            # A candidate blocked by safety filters may have no content at all
            parts = (candidates[0].get("content") or {}).get("parts") or []
        except (AttributeError, TypeError) as e:
            raise self.error(
                ErrorKind.DECODE, "Unexpected generateContent response shape", cause=e
            ) from e
        if not isinstance(parts, list):
            raise self.error(ErrorKind.DECODE, "Unexpected generateContent response shape")
        return [part for part in parts if isinstance(part, dict)]

    @staticmethod
    def _extract_images(parts: List[Dict[str, Any]]) -> List[GeneratedImage]:
        images = []
        for part in parts:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                mime_type = inline.get("mimeType") or inline.get("mime_type") or DEFAULT_IMAGE_MIME
                images.append(GeneratedImage(mime_type=mime_type, data=inline["data"]))
        return images

    @staticmethod
    def _extract_text(parts: List[Dict[str, Any]]) -> str:
        return "".join(part["text"] for part in parts if part.get("text"))

    # ==========================================================================
    # Embeddings
    # ==========================================================================

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts, using embedContent for one input and batchEmbedContents
        for several.

        Raises:
            LLMError: PROTOCOL with the raw body on a non-2xx status,
                SEMANTIC when the response only carries usage metadata.
        """
        if not texts:
            return []

        if len(texts) == 1:
            data = await self._post_json(
                self.url(f"{self.path_model}:embedContent"),
                self._embed_request(texts[0]),
                self._headers(),
                "embedContent",
            )
            embedding = self._field(data, "embedding")
            if embedding is None:
                raise self.error(
                    ErrorKind.SEMANTIC,
                    "Gemini responded with usage metadata only, no embedding produced",
                )
            return [self._values(embedding)]

        data = await self._post_json(
            self.url(f"{self.path_model}:batchEmbedContents"),
            {"requests": [self._embed_request(text) for text in texts]},
            self._headers(),
            "batchEmbedContents",
        )
        embeddings = self._field(data, "embeddings")
        if embeddings is None:
            raise self.error(
                ErrorKind.SEMANTIC,
                "Gemini responded with usage metadata only, no embeddings produced",
            )
        if not isinstance(embeddings, list):
            raise self.error(ErrorKind.DECODE, "Unexpected batchEmbedContents response shape")

        vectors = [self._values(item) for item in embeddings]
        return self._check_vector_count(vectors, len(texts))

    def _embed_request(self, text: str) -> Dict[str, Any]:
        return {
            "model": self.request_model,
            "content": {"parts": [{"text": text}]},
        }

    def _field(self, data: Any, name: str) -> Optional[Any]:
        if not isinstance(data, dict):
            raise self.error(ErrorKind.DECODE, f"Unexpected response shape, expected '{name}'")
        return data.get(name)

    def _values(self, embedding: Any) -> List[float]:
        try:
            return list(embedding["values"])
        except (KeyError, TypeError) as e:
            raise self.error(ErrorKind.DECODE, "Embedding without values", cause=e) from e

    # ==========================================================================
    # Discovery
    # ==========================================================================

    def _discovery_http_options(self) -> Dict[str, str]:
        """
        Split the configured endpoint into the SDK's base_url and api_version.

        ``https://host/v1beta/models`` becomes base_url ``https://host/`` and
        api_version ``v1beta``.
        """
        base = self.config.endpoint.rstrip("/")
        if base.endswith("/models"):
            base = base[: -len("/models")]

        options = {}
        root, _, last = base.rpartition("/")
        if root and re.fullmatch(r"v\d+\w*", last):
            base = root
            options["api_version"] = last
        options["base_url"] = base + "/"
        return options

    async def get_models(self) -> List[str]:
        """
        Get list of available models from Gemini API.

        Only models supporting the configured call kind are returned
        (generateContent for chat, embedContent for embeddings).
        """
        action = "embedContent" if self.config.call_kind is CallKind.EMBEDDING else "generateContent"

        def _list() -> List[str]:
            client = genai.Client(api_key=self.api_key, http_options=self._discovery_http_options())
            names = []
            for m in client.models.list():
                actions = getattr(m, "supported_actions", None)
                if not actions or action in actions:
                    names.append(m.name)
            return names

        # models.list is synchronous in the SDK
        try:
            return await asyncio.to_thread(_list)
        except Exception as e:
            logger.warning("Gemini model listing failed: %s", e)
            return []
