import logging
from typing import Any, Dict, List

from openai import AsyncOpenAI

from .base import BaseLLMProvider
from ..config import MAX_TOKENS
from ..errors import ErrorKind
from ..types import ContentPart, ImagePart, Message, Role, TextPart
from ..utils import build_data_url, extract_data_url_base64

ROLE_NAMES = {
    Role.HUMAN: "user",
    Role.AI: "assistant",
    Role.SYSTEM: "system",
}

DEFAULT_IMAGE_MIME = "image/png"

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """
    Adapter for the OpenAI-style REST API (chat/completions and embeddings).
    """

    name = "OpenAI"

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def chat(self, messages: List[Message]) -> Message:
        """
        Send a chat completion request.

        Only the first choice of the response is used.

        Args:
            messages (List[Message]): Conversation history.

        Returns:
            Message: The first choice, normalized.

        Raises:
            LLMError: SEMANTIC when the response carries no choices.
        """
        payload = {
            "model": self.model,
            "messages": self._convert_messages(messages),
            "max_tokens": MAX_TOKENS,
        }
        data = await self._post_json(
            self.url("chat/completions"), payload, self._headers(), "chat/completions"
        )
        return self._parse_response(data)

    def _convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        return [self._convert_message(msg) for msg in messages]

    @staticmethod
    def _convert_message(message: Message) -> Dict[str, Any]:
        """
        Convert one message to OpenAI's format.

        All-text content is sent as a single newline-joined string; as soon
        as an image is present the content becomes a part array.
        """
        role = ROLE_NAMES[message.role]
        parts = message.content or (TextPart(""),)

        if all(isinstance(part, TextPart) for part in parts):
            return {"role": role, "content": "\n".join(part.text for part in parts)}

        content = []
        for part in parts:
            if isinstance(part, TextPart):
                content.append({"type": "text", "text": part.text})
            else:
                url = build_data_url(part.mime_type(DEFAULT_IMAGE_MIME), part.data)
                content.append({"type": "input_image", "image_url": {"url": url}})
        return {"role": role, "content": content}

    def _parse_response(self, data: Any) -> Message:
        if not isinstance(data, dict):
            raise self.error(ErrorKind.DECODE, "Unexpected chat/completions response shape")

        choices = data.get("choices")
        if not choices:
            raise self.error(ErrorKind.SEMANTIC, "No choices returned from OpenAI")

        try:
            message = choices[0]["message"]
            role = message.get("role") or "assistant"
            content = message.get("content")

            if isinstance(content, str):
                parts: List[ContentPart] = [TextPart(content)]
            elif content is None:
                parts = []
            else:
                parts = self._parse_parts(content)
        except (KeyError, TypeError, AttributeError) as e:
            raise self.error(
                ErrorKind.DECODE, "Unexpected chat/completions response shape", cause=e
            ) from e

        if not parts:
            parts = [TextPart("")]

        return Message.create(role, parts, id=data.get("id"))

    @staticmethod
    def _parse_parts(parts: List[Dict[str, Any]]) -> List[ContentPart]:
        """
        Parse an array of content parts by their ``type`` tag.

        Unknown tags are kept as text so nothing silently disappears.
        """
        results: List[ContentPart] = []

        for part in parts:
            kind = part.get("type", "")

            if kind in ("text", "output_text"):
                if part.get("text") is not None:
                    results.append(TextPart(part["text"]))

            elif kind in ("output_image", "input_image"):
                if part.get("image_base64"):
                    results.append(ImagePart(part["image_base64"]))
                elif part.get("image_url"):
                    url = part["image_url"].get("url", "")
                    data = extract_data_url_base64(url)
                    # Remote URLs are not fetched; surface them as text
                    results.append(ImagePart(data) if data is not None else TextPart(url))

            else:
                fallback = (
                    part.get("text")
                    or part.get("image_base64")
                    or f"Unsupported OpenAI content type: {kind}"
                )
                results.append(TextPart(fallback))

        return results

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed texts with a single call to the embeddings endpoint.

        Empty input returns an empty list without touching the network.
        """
        if not texts:
            return []

        payload = {"model": self.model, "input": list(texts)}
        data = await self._post_json(
            self.url("embeddings"), payload, self._headers(), "embeddings"
        )

        try:
            vectors = [item["embedding"] for item in data["data"]]
        except (KeyError, TypeError) as e:
            raise self.error(
                ErrorKind.DECODE, "Unexpected embeddings response shape", cause=e
            ) from e

        return self._check_vector_count(vectors, len(texts))

    async def get_models(self) -> List[str]:
        """
        Get list of available models from the provider API.

        Returns:
            List[str]: List of model ids. Empty if the API call fails.
        """
        try:
            async with AsyncOpenAI(api_key=self.api_key, base_url=self.config.endpoint) as client:
                models = await client.models.list()
            return [m.id for m in models.data]
        except Exception as e:
            logger.warning("OpenAI model listing failed: %s", e)
            return []
