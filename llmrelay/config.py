import os
from typing import Dict, Optional, Tuple, Union

import dotenv

from .types import CallKind, ClientConfig, Provider

# =============================================================================
# Defaults
# =============================================================================

MAX_TOKENS = 1024
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_TIMEOUT = 120.0

DEFAULT_ENDPOINTS: Dict[Provider, str] = {
    Provider.OPENAI: "https://api.openai.com/v1",
    Provider.ANTHROPIC: "https://api.anthropic.com/v1",
    Provider.GEMINI: "https://generativelanguage.googleapis.com/v1beta/models",
}

DEFAULT_MODELS: Dict[Tuple[Provider, CallKind], str] = {
    (Provider.OPENAI, CallKind.CHAT): "gpt-4o-mini",
    (Provider.OPENAI, CallKind.EMBEDDING): "text-embedding-3-small",
    (Provider.ANTHROPIC, CallKind.CHAT): "claude-3-5-haiku-latest",
    (Provider.GEMINI, CallKind.CHAT): "gemini-2.5-flash",
    (Provider.GEMINI, CallKind.EMBEDDING): "gemini-embedding-001",
}

API_KEY_ENV: Dict[Provider, str] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GOOGLE_API_KEY",
}

ENDPOINT_ENV: Dict[Provider, str] = {
    Provider.OPENAI: "OPENAI_BASE_URL",
    Provider.ANTHROPIC: "ANTHROPIC_BASE_URL",
    Provider.GEMINI: "GEMINI_BASE_URL",
}


def get_setting(name: str, env_file: Optional[str] = ".env") -> Optional[str]:
    """
    Read a setting from the ``.env`` file first, then the process environment.

    Args:
        name: Variable name, e.g. "OPENAI_API_KEY".
        env_file: Path of the dotenv file, or None to skip it.

    Returns:
        Optional[str]: The value, or None when unset or blank.
    """
    value = None
    if env_file and os.path.exists(env_file):
        value = dotenv.get_key(env_file, name)
    if not value:
        value = os.environ.get(name)
    return value or None


def load_config(
    provider: Union[str, Provider],
    call_kind: Union[str, CallKind] = CallKind.CHAT,
    *,
    api_key: Optional[str] = None,
    endpoint: Optional[str] = None,
    model: Optional[str] = None,
    timeout: float = DEFAULT_TIMEOUT,
    env_file: Optional[str] = ".env",
) -> ClientConfig:
    """
    Build a ClientConfig, filling gaps from the environment and defaults.

    Explicit arguments win over the ``.env`` file, which wins over the
    process environment, which wins over the built-in defaults.

    Args:
        provider: 'openai', 'anthropic' (or 'claude'), 'gemini' (or 'google').
        call_kind: 'chat' or 'embedding'.
        api_key: API key. Looked up under the provider's env var when omitted.
        endpoint: Base URL override.
        model: Model override.
        timeout: HTTP timeout in seconds.
        env_file: dotenv file to consult.

    Returns:
        ClientConfig: Immutable configuration.

    Raises:
        ValueError: If no API key can be found, or the provider has no
            default model for the requested call kind and none was given.
    """
    provider = Provider.parse(provider)
    call_kind = CallKind(call_kind)

    api_key = api_key or get_setting(API_KEY_ENV[provider], env_file)
    if not api_key:
        raise ValueError(
            f"No API key for {provider.label}. Pass api_key or set {API_KEY_ENV[provider]}."
        )

    endpoint = endpoint or get_setting(ENDPOINT_ENV[provider], env_file) or DEFAULT_ENDPOINTS[provider]

    model = model or DEFAULT_MODELS.get((provider, call_kind))
    if not model:
        raise ValueError(f"{provider.label} has no default {call_kind.value} model; pass model=")

    return ClientConfig(
        provider=provider,
        api_key=api_key,
        endpoint=endpoint,
        default_model=model,
        call_kind=call_kind,
        timeout=timeout,
    )
