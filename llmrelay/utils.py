import base64
import time
from pathlib import Path
from typing import List, NamedTuple, Optional, Tuple, Union

import httpx

from .types import ContentInput, ImagePart, Message, Role, TextPart

# =============================================================================
# MIME / base64 Helpers
# =============================================================================

# Map file extensions to MIME types
MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".heic": "image/heic",
    ".heif": "image/heif",
    ".svg": "image/svg+xml",
}


def detect_mime_type(path: Union[str, Path], default: str = "image/jpeg") -> str:
    """
    Guess the MIME type of an image from its file extension.

    Args:
        path: File name, path or URL. Only the suffix is inspected.
        default: Returned when the suffix is unknown or missing.

    Returns:
        str: The MIME type, e.g. 'image/png'.
    """
    # Drop query strings so URLs like ".../cat.png?size=2" still resolve
    suffix = Path(str(path).split("?", 1)[0]).suffix.lower()
    return MIME_TYPES.get(suffix, default)


def encode_bytes_to_base64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def decode_base64_to_bytes(data: str) -> bytes:
    """
    Decode standard base64, tolerating a missing trailing padding.

    Raises:
        binascii.Error: If the input is not valid base64.
    """
    data = data.strip()
    data += "=" * (-len(data) % 4)
    return base64.b64decode(data, validate=True)


def is_http_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


def build_data_url(mime_type: str, b64_data: str) -> str:
    return f"data:{mime_type};base64,{b64_data}"


def extract_data_url_base64(url: str) -> Optional[str]:
    """
    Return the payload of a data URL (everything after the first comma).

    Returns None when the string is not a data URL.
    """
    if not url.startswith("data:") or "," not in url:
        return None
    return url.split(",", 1)[1]


def parse_data_url(url: str) -> Tuple[str, str]:
    """
    Split a data URI into (base64_data, mime_type).

    Args:
        url (str): Data URI of the form data:[<mediatype>][;base64],<data>.

    Raises:
        ValueError: If ``url`` is not a data URI.
    """
    if not url.startswith("data:") or "," not in url:
        raise ValueError(f"Not a data URL: {url[:50]}")
    header, data = url.split(",", 1)
    mime_type = header.split(":", 1)[1].split(";")[0]
    return data, mime_type


def current_timestamp_millis() -> int:
    return time.time_ns() // 1_000_000


# =============================================================================
# Image Loading
# =============================================================================

def encode_image_file(image_path: Union[str, Path]) -> Tuple[str, str]:
    """
    Encode a local image file to base64 for LLM usage.

    Args:
        image_path (Union[str, Path]): Path to the image file.

    Returns:
        Tuple[str, str]: (base64 data, MIME type guessed from the extension).

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    with open(path, "rb") as f:
        b64_data = encode_bytes_to_base64(f.read())

    return b64_data, detect_mime_type(path)


async def encode_image_url(url: str) -> Tuple[str, str]:
    """
    Fetch an image from a URL and encode it to base64.

    Args:
        url (str): The publicly accessible URL of the image.

    Returns:
        Tuple[str, str]: (base64 data, MIME type from the Content-Type header).

    Raises:
        httpx.HTTPError: If the download fails (timeout, 404, etc.).
    """
    loaded = await load_image_bytes(url)
    return encode_bytes_to_base64(loaded.content), loaded.mime_type


class LoadedImage(NamedTuple):
    content: bytes
    mime_type: str


async def _download(url: str) -> LoadedImage:
    # Use a browser-like User-Agent to avoid being blocked
    headers = {
        "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    }

    async with httpx.AsyncClient(timeout=30.0, headers=headers, follow_redirects=True) as http_client:
        response = await http_client.get(url)
        response.raise_for_status()

        content_type = response.headers.get("content-type", "")
        mime_type = content_type.split(";")[0].strip() or detect_mime_type(url)
        return LoadedImage(response.content, mime_type)


async def load_image_bytes(source: Union[str, Path]) -> LoadedImage:
    """
    Load raw image bytes from a local path or an HTTP(S) URL.

    Returns:
        LoadedImage: (content bytes, MIME type).
    """
    source = str(source)
    if is_http_url(source):
        return await _download(source)

    path = Path(source)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {source}")
    return LoadedImage(path.read_bytes(), detect_mime_type(path))


def image_from_file(image_path: Union[str, Path]) -> ImagePart:
    """
    Build an image part from a local file, remembering the path for MIME guessing.
    """
    b64_data, _ = encode_image_file(image_path)
    return ImagePart(data=b64_data, source_path=str(image_path))


async def image_from_source(source: Union[str, Path]) -> ImagePart:
    """
    Build an image part from a local path, an HTTP(S) URL or a data URI.
    """
    source = str(source)
    if source.startswith("data:"):
        b64_data, mime_type = parse_data_url(source)
        return ImagePart(data=b64_data, media_type=mime_type or None)

    loaded = await load_image_bytes(source)
    return ImagePart(
        data=encode_bytes_to_base64(loaded.content),
        source_path=source,
        # Local files keep the extension guess so each provider default applies
        media_type=loaded.mime_type if is_http_url(source) else None,
    )


# =============================================================================
# Message Helpers
# =============================================================================

def create_text_content(text: str) -> TextPart:
    return TextPart(text)


def create_message(
    role: Union[str, Role],
    content: ContentInput,
    id: Optional[str] = None,
) -> Message:
    """
    Create a canonical Message.

    Handles both simple string content and lists mixing strings and parts;
    strings inside a list become text parts.

    Args:
        role: 'user', 'assistant', 'system' or any synonym.
        content: The content of the message.
        id: Optional identifier; a timestamp is used when absent.

    Returns:
        Message: The canonical message.
    """
    return Message.create(role, content, id=id)


def text_parts(message: Message) -> List[str]:
    return [p.text for p in message.content if isinstance(p, TextPart)]
