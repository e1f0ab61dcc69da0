from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """
    Failure taxonomy shared by every adapter.

    - TRANSPORT: connection, DNS or timeout failure before a response arrived.
    - PROTOCOL: the provider answered with a non-2xx status.
    - DECODE: the body was not JSON or did not have the expected shape.
    - SEMANTIC: a well-formed but unusable answer (no choices or candidates,
      usage-only embedding, wrong number of vectors).
    - UNSUPPORTED: the provider does not offer the requested capability.
    """
    TRANSPORT = "transport"
    PROTOCOL = "protocol"
    DECODE = "decode"
    SEMANTIC = "semantic"
    UNSUPPORTED = "unsupported"


class LLMError(Exception):
    """
    Structured adapter failure.

    Carries the kind tag and the original cause so callers can branch on
    ``kind`` instead of parsing text. Rendering to a string only happens at
    the wrapper boundary.
    """

    def __init__(
        self,
        kind: ErrorKind,
        provider: str,
        message: str,
        *,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.message = message
        self.status_code = status_code
        self.body = body
        self.cause = cause

    def __str__(self) -> str:
        text = f"{self.kind.value} error: {self.message}"
        if self.status_code is not None:
            text += f" (status {self.status_code})"
        if self.body:
            text += f" body {self.body}"
        if self.cause is not None and str(self.cause):
            text += f": {self.cause}"
        return text

    def __repr__(self) -> str:
        return (
            f"LLMError(kind={self.kind.value!r}, provider={self.provider!r}, "
            f"message={self.message!r}, status_code={self.status_code!r})"
        )


class UnrecognizedRoleError(ValueError):
    """
    Raised by strict role parsing when a role name is not in the synonym table.
    """

    def __init__(self, role: object):
        super().__init__(f"Unrecognized role: {role!r}")
        self.role = role
