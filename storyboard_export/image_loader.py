"""
Storyboard Export — Image loader.

Resolves scene image references to decoded Pillow images:
- data: URLs (base64 or percent-encoded)
- http(s):// URLs via httpx
- file:// URLs and plain filesystem paths

All decodes for one export are issued together and joined with a single
asyncio.gather. A failed load never raises: it yields an empty LoadedImage.
"""

import asyncio
import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from urllib.parse import unquote_to_bytes, urlparse

import httpx
from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


@dataclass
class LoadedImage:
    """Result of one decode. image is None when loading failed."""
    reference: Optional[str]
    image: Optional[Image.Image] = None
    raw: bytes = b""

    @property
    def ok(self) -> bool:
        return self.image is not None

    @property
    def width(self) -> int:
        return self.image.width if self.image else 0

    @property
    def height(self) -> int:
        return self.image.height if self.image else 0

    @property
    def ratio(self) -> Optional[float]:
        """Native width/height, or None when unknown."""
        if self.width > 0 and self.height > 0:
            return self.width / self.height
        return None


def decode_data_url(url: str) -> bytes:
    """Payload bytes of a data: URL."""
    header, _, payload = url.partition(",")
    if not header.startswith("data:"):
        raise ValueError("Not a data URL")
    if header.endswith(";base64"):
        return base64.b64decode(payload)
    return unquote_to_bytes(payload)


def decode_image(data: bytes) -> Image.Image:
    """Decode bytes to a fully loaded RGB image."""
    img = Image.open(io.BytesIO(data))
    img.load()
    return img.convert("RGB")


def _scheme(reference: str) -> str:
    """Lower-cased URL scheme, or "" when the reference does not parse as a URL."""
    try:
        return urlparse(reference).scheme.lower()
    except ValueError:
        return ""


async def _fetch_bytes(reference: str, client: Optional[httpx.AsyncClient]) -> bytes:
    if reference.startswith("data:"):
        return decode_data_url(reference)

    scheme = _scheme(reference)
    if scheme in ("http", "https"):
        if client is None:
            raise ValueError("Remote image reference without an HTTP client")
        response = await client.get(reference)
        response.raise_for_status()
        return response.content

    if scheme == "file":
        path = Path(unquote_to_bytes(urlparse(reference).path).decode("utf-8"))
    else:
        path = Path(reference)
    return await asyncio.to_thread(path.read_bytes)


async def load_image(reference: Optional[str], client: Optional[httpx.AsyncClient] = None) -> LoadedImage:
    """Load one reference. Never raises."""
    result = LoadedImage(reference=reference)
    if not reference:
        return result

    try:
        result.raw = await _fetch_bytes(reference, client)
    except (OSError, ValueError, httpx.HTTPError, httpx.InvalidURL) as e:
        logger.warning(f"Image fetch failed for {_short(reference)}: {e}")
        return result

    try:
        result.image = decode_image(result.raw)
    except (OSError, ValueError, UnidentifiedImageError, Image.DecompressionBombError) as e:
        logger.warning(f"Image decode failed for {_short(reference)}: {e}")
    return result


async def load_images(references: list, timeout: float = DEFAULT_TIMEOUT) -> list[LoadedImage]:
    """
    Decode every reference concurrently.

    Returns:
        LoadedImage per reference, in input order (completion order is irrelevant)
    """
    needs_http = any(
        ref and _scheme(ref) in ("http", "https") for ref in references
    )
    if not needs_http:
        return list(await asyncio.gather(*(load_image(ref) for ref in references)))

    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=min(timeout, 10.0)),
        follow_redirects=True,
    ) as client:
        return list(await asyncio.gather(*(load_image(ref, client) for ref in references)))


def _short(reference: str) -> str:
    return reference if len(reference) <= 60 else reference[:57] + "..."


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def to_data_url(image: Image.Image) -> str:
    """PNG data: URL for an image (handy for fixtures and editor round-trips)."""
    return "data:image/png;base64," + base64.b64encode(encode_png(image)).decode("ascii")
