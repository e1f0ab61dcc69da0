from .client import (
    get_chat_function,
    get_chat_result_function,
    get_embedding_function,
    get_embedding_function_sync,
    get_embedding_result_function,
    get_function,
    get_provider,
    list_models,
)
from .config import load_config
from .errors import ErrorKind, LLMError, UnrecognizedRoleError
from .log_config import configure_logging
from .rich_printer import RichPrinter
from .types import (
    CallKind,
    ChatResult,
    ClientConfig,
    ContentPart,
    EmbeddingResult,
    ImagePart,
    Message,
    Provider,
    Role,
    TextPart,
)
from .utils import create_message, create_text_content, image_from_file, image_from_source

__all__ = [
    "get_chat_function",
    "get_chat_result_function",
    "get_embedding_function",
    "get_embedding_function_sync",
    "get_embedding_result_function",
    "get_function",
    "get_provider",
    "list_models",
    "load_config",
    "ErrorKind",
    "LLMError",
    "UnrecognizedRoleError",
    "configure_logging",
    "RichPrinter",
    "CallKind",
    "ChatResult",
    "ClientConfig",
    "ContentPart",
    "EmbeddingResult",
    "ImagePart",
    "Message",
    "Provider",
    "Role",
    "TextPart",
    "create_message",
    "create_text_content",
    "image_from_file",
    "image_from_source",
]
