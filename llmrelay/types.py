import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from .errors import LLMError, UnrecognizedRoleError

logger = logging.getLogger(__name__)

# =============================================================================
# Roles
# =============================================================================

class Role(str, Enum):
    """
    Canonical sender category of a message.
    """
    HUMAN = "human"
    AI = "ai"
    SYSTEM = "system"

    @classmethod
    def from_str(cls, value: Union[str, "Role"], strict: bool = False) -> "Role":
        """
        Map a free-text role onto a canonical role.

        Matching is case-insensitive and ignores surrounding whitespace.
        Unknown strings resolve to HUMAN unless ``strict`` is set.

        Args:
            value: Role name such as "user", "Assistant" or "model".
            strict: Raise UnrecognizedRoleError instead of defaulting.

        Returns:
            Role: The canonical role.
        """
        if isinstance(value, Role):
            return value

        role = ROLE_SYNONYMS.get(str(value).strip().lower())
        if role is not None:
            return role

        if strict:
            raise UnrecognizedRoleError(value)
        logger.warning("Unrecognized role %r, treating it as human", value)
        return cls.HUMAN


ROLE_SYNONYMS: Dict[str, Role] = {
    "user": Role.HUMAN,
    "human": Role.HUMAN,
    "model": Role.AI,
    "ai": Role.AI,
    "assistant": Role.AI,
    "system": Role.SYSTEM,
}


# =============================================================================
# Content parts
# =============================================================================

@dataclass(frozen=True)
class TextPart:
    """
    Plain text content part.
    """
    text: str


@dataclass(frozen=True)
class ImagePart:
    """
    Inline image content part.

    ``data`` is base64 without a data-URL prefix. ``media_type`` is the MIME
    type when it is known (data URI header, HTTP Content-Type). Otherwise
    ``source_path`` is used to guess it from the extension; the file is never
    opened again.
    """
    data: str
    source_path: Optional[str] = None
    media_type: Optional[str] = None

    def mime_type(self, default: str) -> str:
        # Local import: utils depends on this module.
        from .utils import detect_mime_type

        if self.media_type:
            return self.media_type
        if not self.source_path:
            return default
        return detect_mime_type(self.source_path, default=default)


ContentPart = Union[TextPart, ImagePart]
ContentInput = Union[str, ContentPart, Sequence[Union[str, ContentPart]]]


def normalize_content(content: ContentInput) -> Tuple[ContentPart, ...]:
    if isinstance(content, (str, TextPart, ImagePart)):
        content = [content]

    parts: List[ContentPart] = []
    for item in content:
        if isinstance(item, str):
            parts.append(TextPart(item))
        elif isinstance(item, (TextPart, ImagePart)):
            parts.append(item)
        else:
            raise TypeError(f"Unsupported content part: {item!r}")
    return tuple(parts)


# =============================================================================
# Messages
# =============================================================================

@dataclass(frozen=True)
class Message:
    """
    One conversational turn.

    Attributes:
        id: Provider-issued id, or a local epoch-millisecond timestamp.
        role: Canonical role of the sender.
        content: Ordered content parts. Order is preserved end to end.
        created_at: Creation time in epoch milliseconds.
    """
    id: str
    role: Role
    content: Tuple[ContentPart, ...]
    created_at: int

    @classmethod
    def create(
        cls,
        role: Union[str, Role],
        content: ContentInput,
        id: Optional[Union[str, int]] = None,
        strict: bool = False,
    ) -> "Message":
        """
        Build a message, generating id and timestamp when absent.

        Args:
            role: Free-text or canonical role.
            content: A string, a content part, or a list mixing both.
            id: Optional provider-issued identifier, stored as a string.
            strict: Reject unknown role names instead of defaulting to human.

        Returns:
            Message: The canonical message.
        """
        from .utils import current_timestamp_millis

        created_at = current_timestamp_millis()
        return cls(
            id=str(id) if id not in (None, "") else str(created_at),
            role=Role.from_str(role, strict=strict),
            content=normalize_content(content),
            created_at=created_at,
        )

    @property
    def text(self) -> str:
        """Newline-joined text of all text parts."""
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    @property
    def images(self) -> List[ImagePart]:
        return [p for p in self.content if isinstance(p, ImagePart)]

    def to_dict(self) -> Dict[str, Any]:
        content: List[Dict[str, Any]] = []
        for part in self.content:
            if isinstance(part, TextPart):
                content.append({"type": "text", "text": part.text})
            else:
                content.append({
                    "type": "image",
                    "data": part.data,
                    "source_path": part.source_path,
                    "media_type": part.media_type,
                })
        return {
            "id": self.id,
            "role": self.role.value,
            "content": content,
            "created_at": self.created_at,
        }


# =============================================================================
# Client configuration
# =============================================================================

class Provider(str, Enum):
    """
    Supported wire protocols.
    """
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"

    @classmethod
    def parse(cls, name: Union[str, "Provider"]) -> "Provider":
        if isinstance(name, Provider):
            return name
        key = name.strip().lower()
        # Aliases used by callers and vendor docs
        key = {"claude": "anthropic", "google": "gemini"}.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(
                f"Unknown provider: {name}. Use 'openai', 'anthropic' or 'gemini'"
            ) from None

    @property
    def label(self) -> str:
        return {"openai": "OpenAI", "anthropic": "Anthropic", "gemini": "Gemini"}[self.value]


class CallKind(str, Enum):
    CHAT = "chat"
    EMBEDDING = "embedding"


@dataclass(frozen=True)
class ClientConfig:
    """
    Immutable description of which provider to call and how.

    Shared by value between concurrent calls; use ``replace`` to derive a
    variant instead of mutating.
    """
    provider: Provider
    api_key: str = field(repr=False)
    endpoint: str
    default_model: str
    call_kind: CallKind = CallKind.CHAT
    timeout: float = 120.0

    def __post_init__(self):
        # Accept plain strings for the enum fields
        object.__setattr__(self, "provider", Provider.parse(self.provider))
        object.__setattr__(self, "call_kind", CallKind(self.call_kind))

    def replace(self, **changes: Any) -> "ClientConfig":
        return dataclasses.replace(self, **changes)


# =============================================================================
# Typed outcomes
# =============================================================================

@dataclass(frozen=True)
class ChatResult:
    """
    Outcome of a chat call that keeps failures distinguishable from replies.
    """
    message: Optional[Message] = None
    error: Optional[LLMError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, message: Message) -> "ChatResult":
        return cls(message=message)

    @classmethod
    def failure(cls, error: LLMError) -> "ChatResult":
        return cls(error=error)

    def unwrap(self) -> Message:
        if self.error is not None:
            raise self.error
        return self.message


@dataclass(frozen=True)
class EmbeddingResult:
    """
    Outcome of an embedding call.

    An empty ``vectors`` list with ``ok`` set means the input was empty, not
    that the provider failed.
    """
    vectors: List[List[float]] = field(default_factory=list)
    error: Optional[LLMError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, vectors: List[List[float]]) -> "EmbeddingResult":
        return cls(vectors=vectors)

    @classmethod
    def failure(cls, error: LLMError) -> "EmbeddingResult":
        return cls(error=error)

    def unwrap(self) -> List[List[float]]:
        if self.error is not None:
            raise self.error
        return self.vectors
