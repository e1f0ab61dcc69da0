import asyncio
import logging
import threading
from typing import Awaitable, Callable, Dict, List, Optional, Union

import httpx

from .errors import ErrorKind, LLMError
from .providers.base import BaseLLMProvider
from .providers.openai import OpenAIProvider
from .providers.anthropic import AnthropicProvider
from .providers.gemini import GeminiProvider
from .types import (
    CallKind, ChatResult, ClientConfig, EmbeddingResult, Message, Provider, Role, TextPart
)

logger = logging.getLogger(__name__)

ChatFunction = Callable[[List[Message]], Awaitable[Message]]
ChatResultFunction = Callable[[List[Message]], Awaitable[ChatResult]]
EmbeddingFunction = Callable[[List[str]], Awaitable[List[List[float]]]]
EmbeddingResultFunction = Callable[[List[str]], Awaitable[EmbeddingResult]]
SyncEmbeddingFunction = Callable[[List[str]], List[List[float]]]


# =============================================================================
# Adapter selection
# =============================================================================

def get_provider(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> BaseLLMProvider:
    """
    Return the adapter matching ``config.provider``.

    Args:
        config (ClientConfig): Provider, credentials, endpoint and model.
        transport (httpx.AsyncBaseTransport, optional): Custom transport for
            the adapter's HTTP clients, e.g. ``httpx.MockTransport`` in tests.

    Returns:
        BaseLLMProvider: The adapter.
    """
    match config.provider:
        case Provider.OPENAI:
            return OpenAIProvider(config, transport=transport)
        case Provider.ANTHROPIC:
            return AnthropicProvider(config, transport=transport)
        case Provider.GEMINI:
            return GeminiProvider(config, transport=transport)
        case _:
            raise ValueError(f"Unknown provider: {config.provider}")


def _as_llm_error(provider: BaseLLMProvider, exc: Exception) -> LLMError:
    if isinstance(exc, LLMError):
        return exc
    # Adapters only raise LLMError on purpose; anything else is a bug or an
    # unexpected payload, so keep the traceback.
    logger.exception("Unexpected %s adapter failure", provider.name)
    return provider.error(ErrorKind.DECODE, "Unexpected adapter failure", cause=exc)


def error_message(provider: str, error: LLMError) -> Message:
    """
    Build the System message that stands in for a failed chat reply.
    """
    return Message.create(Role.SYSTEM, [TextPart(f"{provider} error: {error}")])


# =============================================================================
# Chat
# =============================================================================

def get_chat_result_function(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChatResultFunction:
    """
    Return an async chat function with a typed success/failure outcome.

    The function never raises; failures come back as ``ChatResult.error``.
    """
    provider = get_provider(config, transport)

    async def chat(messages: List[Message]) -> ChatResult:
        try:
            return ChatResult.success(await provider.chat(list(messages)))
        except Exception as e:
            error = _as_llm_error(provider, e)
            logger.warning("%s chat error: %s", provider.name, error)
            return ChatResult.failure(error)

    return chat


def get_chat_function(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ChatFunction:
    """
    Return ``async (messages) -> Message`` for the configured provider.

    The returned coroutine always resolves. Any failure (transport, non-2xx
    status, undecodable body, missing choices or candidates) is turned into
    a System message whose text describes the error.

    Args:
        config (ClientConfig): Client configuration.
        transport (httpx.AsyncBaseTransport, optional): Custom HTTP transport.

    Returns:
        ChatFunction: The chat callable.
    """
    chat_result = get_chat_result_function(config, transport)
    label = config.provider.label

    async def chat(messages: List[Message]) -> Message:
        result = await chat_result(messages)
        if result.ok:
            return result.message
        return error_message(label, result.error)

    return chat


# =============================================================================
# Embeddings
# =============================================================================

def get_embedding_result_function(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> EmbeddingResultFunction:
    """
    Return an async embedding function with a typed success/failure outcome.

    Unlike ``get_embedding_function`` this lets callers tell an empty input
    apart from a failed call. Providers without embeddings report an
    UNSUPPORTED error.
    """
    provider = get_provider(config, transport)

    async def embed(texts: List[str]) -> EmbeddingResult:
        try:
            return EmbeddingResult.success(await provider.embed(list(texts)))
        except Exception as e:
            error = _as_llm_error(provider, e)
            logger.warning("%s embedding error: %s", provider.name, error)
            return EmbeddingResult.failure(error)

    return embed


async def _no_embeddings(texts: List[str]) -> List[List[float]]:
    return []


def get_embedding_function(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> EmbeddingFunction:
    """
    Return ``async (texts) -> vectors`` for the configured provider.

    Output vectors follow input order. Failures are logged and resolve to an
    empty list. Providers without an embedding endpoint (Anthropic) get a
    no-op function that always returns an empty list.

    Args:
        config (ClientConfig): Client configuration.
        transport (httpx.AsyncBaseTransport, optional): Custom HTTP transport.

    Returns:
        EmbeddingFunction: The embedding callable.
    """
    if not get_provider(config).supports_embeddings:
        return _no_embeddings

    embed_result = get_embedding_result_function(config, transport)

    async def embed(texts: List[str]) -> List[List[float]]:
        result = await embed_result(texts)
        return result.vectors if result.ok else []

    return embed


def get_embedding_function_sync(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> SyncEmbeddingFunction:
    """
    Return a blocking ``(texts) -> vectors`` function.

    Each call runs the async embedding on its own worker thread with a
    private event loop and joins it, so it is safe to call from code that
    already runs inside an event loop. A crashed worker yields an empty list.
    """
    embed = get_embedding_function(config, transport)

    def embed_sync(texts: List[str]) -> List[List[float]]:
        if not texts:
            return []

        result: Dict[str, List[List[float]]] = {}

        def worker() -> None:
            result["vectors"] = asyncio.run(embed(list(texts)))

        thread = threading.Thread(
            target=worker, name=f"llmrelay-embed-{config.provider.value}", daemon=True
        )
        thread.start()
        thread.join()

        if "vectors" not in result:
            logger.error("%s embedding worker crashed", config.provider.label)
            return []
        return result["vectors"]

    return embed_sync


# =============================================================================
# Helpers
# =============================================================================

def get_function(
    config: ClientConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Union[ChatFunction, EmbeddingFunction]:
    """
    Return the chat or embedding function, depending on ``config.call_kind``.
    """
    if config.call_kind is CallKind.EMBEDDING:
        return get_embedding_function(config, transport)
    return get_chat_function(config, transport)


async def list_models(config: ClientConfig) -> List[str]:
    """
    Get the list of available models for the configured provider.

    Returns:
        List[str]: Model identifiers; empty when discovery fails.
    """
    return await get_provider(config).get_models()
