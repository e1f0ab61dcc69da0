import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from anthropic import AsyncAnthropic

from .base import BaseLLMProvider
from ..config import ANTHROPIC_VERSION, MAX_TOKENS
from ..errors import ErrorKind
from ..types import ContentPart, ImagePart, Message, Role, TextPart
from ..utils import text_parts

ROLE_NAMES = {
    Role.HUMAN: "user",
    Role.AI: "assistant",
}

DEFAULT_IMAGE_MIME = "image/png"

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseLLMProvider):
    """
    Adapter for the Anthropic Messages API.

    Embeddings are not offered by this API.
    """

    name = "Anthropic"
    supports_embeddings = False

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "accept": "application/json",
        }

    async def chat(self, messages: List[Message]) -> Message:
        """
        Send a request to the messages endpoint.

        System messages are lifted out of the conversation and sent as the
        top-level ``system`` field.

        Args:
            messages (List[Message]): Conversation history.

        Returns:
            Message: The reply, normalized.
        """
        system_text, converted = self._convert_messages(messages)

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": converted,
            "max_tokens": MAX_TOKENS,
        }
        if system_text is not None:
            payload["system"] = system_text

        data = await self._post_json(self.url("messages"), payload, self._headers(), "messages")
        return self._parse_response(data)

    def _convert_messages(
        self,
        messages: List[Message],
    ) -> Tuple[Optional[str], List[Dict[str, Any]]]:
        """
        Convert messages to Claude format.

        Returns:
            Tuple containing:
            - system_text: System prompt joined with newlines, or None
            - converted: List of message dicts suitable for the API
        """
        system_segments = []
        converted = []

        for msg in messages:
            if msg.role is Role.SYSTEM:
                text = "\n".join(text_parts(msg))
                if text:
                    system_segments.append(text)
                continue

            converted.append({
                "role": ROLE_NAMES[msg.role],
                "content": self._convert_content(msg.content),
            })

        system_text = "\n".join(system_segments) if system_segments else None
        return system_text, converted

    @staticmethod
    def _convert_content(content: Tuple[ContentPart, ...]) -> List[Dict[str, Any]]:
        # Always a part array; the API rejects empty content
        parts = []
        for part in content:
            if isinstance(part, TextPart):
                parts.append({"type": "text", "text": part.text})
            else:
                parts.append({
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": part.mime_type(DEFAULT_IMAGE_MIME),
                        "data": part.data,
                    },
                })

        if not parts:
            parts.append({"type": "text", "text": ""})
        return parts

    def _parse_response(self, data: Any) -> Message:
        if not isinstance(data, dict) or not isinstance(data.get("content"), list):
            raise self.error(ErrorKind.DECODE, "Unexpected messages response shape")

        try:
            parts = self._parse_parts(data["content"])
        except (KeyError, TypeError, AttributeError) as e:
            raise self.error(ErrorKind.DECODE, "Unexpected messages response shape", cause=e) from e

        if not parts:
            parts = [TextPart("")]

        return Message.create(data.get("role") or "assistant", parts, id=data.get("id"))

    @staticmethod
    def _parse_parts(blocks: List[Dict[str, Any]]) -> List[ContentPart]:
        """
        Parse response content blocks by their ``type`` tag.

        Tool use and other unknown blocks are kept as text: the raw block JSON
        when it has a payload, otherwise a short diagnostic.
        """
        results: List[ContentPart] = []

        for block in blocks:
            kind = block.get("type", "")

            if kind == "text":
                if block.get("text") is not None:
                    results.append(TextPart(block["text"]))

            elif kind == "image":
                data = (block.get("source") or {}).get("data")
                if data:
                    results.append(ImagePart(data))

            else:
                extra = {k: v for k, v in block.items() if k != "type"}
                if extra:
                    results.append(TextPart(json.dumps(block)))
                else:
                    results.append(TextPart(f"Unsupported Anthropic content type: {kind}"))

        return results

    async def get_models(self) -> List[str]:
        """
        Get list of available models from Anthropic API.

        The SDK appends its own ``/v1`` prefix, so it is stripped from the
        configured endpoint.

        Returns:
            List[str]: List of model identifiers.
        """
        base_url = self.config.endpoint.rstrip("/")
        if base_url.endswith("/v1"):
            base_url = base_url[: -len("/v1")]

        try:
            async with AsyncAnthropic(api_key=self.api_key, base_url=base_url) as client:
                models = await client.models.list()
            return [m.id for m in models.data]
        except Exception as e:
            logger.warning("Anthropic model listing failed: %s", e)
            return []
