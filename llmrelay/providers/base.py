import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from ..errors import ErrorKind, LLMError
from ..types import ClientConfig, Message

logger = logging.getLogger(__name__)


class BaseLLMProvider(ABC):
    """
    Abstract base class for provider adapters.

    An adapter owns one wire protocol: it turns canonical messages into the
    provider's JSON, performs a single HTTP call and parses the reply back.
    Adapters raise LLMError; converting failures into messages or empty
    results is the job of the wrappers in ``llmrelay.client``.
    """

    name: str = "provider"
    supports_embeddings: bool = True

    def __init__(
        self,
        config: ClientConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.transport = transport

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @property
    def model(self) -> str:
        return self.config.default_model

    @abstractmethod
    async def chat(self, messages: List[Message]) -> Message:
        """
        Send a chat request to the provider.

        Args:
            messages (List[Message]): Conversation history.

        Returns:
            Message: The reply, normalized to the canonical model.

        Raises:
            LLMError: On any transport, protocol, decode or semantic failure.
        """
        pass

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """
        Embed each input string.

        Args:
            texts (List[str]): Inputs; output vectors follow the same order.

        Returns:
            List[List[float]]: One vector per input.

        Raises:
            LLMError: On failure, or UNSUPPORTED if the provider has no
                embedding endpoint.
        """
        raise self.error(ErrorKind.UNSUPPORTED, "Embeddings are not supported")

    @abstractmethod
    async def get_models(self) -> List[str]:
        """
        Get list of available models from the provider.

        Returns:
            List[str]: List of model identifiers.
        """
        pass

    # ==========================================================================
    # Shared HTTP plumbing
    # ==========================================================================

    def url(self, path: str) -> str:
        return f"{self.config.endpoint.rstrip('/')}/{path.lstrip('/')}"

    def error(self, kind: ErrorKind, message: str, **kwargs: Any) -> LLMError:
        return LLMError(kind, self.name, message, **kwargs)

    def _http_client(self) -> httpx.AsyncClient:
        # A fresh client per call; nothing is pooled between calls.
        return httpx.AsyncClient(timeout=self.config.timeout, transport=self.transport)

    async def _post_json(
        self,
        url: str,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        operation: str,
    ) -> Any:
        """
        POST a JSON payload and return the decoded JSON body.

        Args:
            url: Absolute request URL.
            payload: JSON body.
            headers: Provider auth and version headers.
            operation: Short label used in error messages, e.g. "embedContent".

        Returns:
            Any: The decoded JSON document.

        Raises:
            LLMError: TRANSPORT when no response arrived, PROTOCOL for a
                non-2xx status (raw body attached), DECODE for invalid JSON.
        """
        request_headers = {"Content-Type": "application/json", **headers}
        logger.debug("%s %s request to %s", self.name, operation, url)

        try:
            async with self._http_client() as http_client:
                response = await http_client.post(url, json=payload, headers=request_headers)
        except httpx.RequestError as e:
            raise self.error(ErrorKind.TRANSPORT, f"{operation} request failed", cause=e) from e

        body = response.text
        if not response.is_success:
            raise self.error(
                ErrorKind.PROTOCOL,
                f"{operation} returned non-success status",
                status_code=response.status_code,
                body=body,
            )

        try:
            return json.loads(body)
        except ValueError as e:
            raise self.error(
                ErrorKind.DECODE,
                f"Failed to decode {operation} response JSON",
                body=body,
                cause=e,
            ) from e

    def _check_vector_count(self, vectors: List[List[float]], expected: int) -> List[List[float]]:
        if len(vectors) != expected:
            raise self.error(
                ErrorKind.SEMANTIC,
                f"Expected {expected} embeddings, got {len(vectors)}",
            )
        return vectors
