"""Photo normalisation, similarity scoring and rendition storage.

The similarity score used by the check-out gate is intentionally crude: both
photos are cropped to fill a 100x100 grid, converted to grayscale and compared
pixel by pixel on brightness alone. It is not a face recogniser. It is
sensitive to framing and lighting and is only meant to catch an obviously
different photo.
"""

from __future__ import annotations

import base64
import binascii
import datetime as dt
import io
import logging
import re
import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, ImageOps

logger = logging.getLogger(__name__)

NORMALIZED_SIZE: tuple[int, int] = (100, 100)
RENDITION_BOUNDS: tuple[int, int] = (800, 600)
RENDITION_QUALITY = 85
DEFAULT_THRESHOLD = 0.7

JPEG_DATA_URL_PREFIX = "data:image/jpeg;base64,"
_DATA_URL_PREFIX = re.compile(r"^data:image/[a-z]+;base64,")
_TIMESTAMP_SEPARATORS = re.compile(r"[:.]")
_PATH_SEPARATORS = re.compile(r"[\\/]")

# Errors Pillow and the base64 codec raise for payloads they cannot handle.
# Truncated or malformed chunks surface as SyntaxError, EOFError or struct.error.
_DECODE_ERRORS = (
    OSError,
    ValueError,
    TypeError,
    binascii.Error,
    Image.DecompressionBombError,
    SyntaxError,
    EOFError,
    struct.error,
)


class ImageProcessingError(Exception):
    """Raised when a captured photo cannot be decoded, resized, encoded or written."""


@dataclass(frozen=True, slots=True)
class Verification:
    """Outcome of comparing a candidate photo with a reference photo."""

    verified: bool
    similarity: float

    def as_dict(self) -> dict[str, object]:
        return {"verified": self.verified, "similarity": self.similarity}


@dataclass(frozen=True, slots=True)
class Rendition:
    """A stored, recompressed copy of a captured photo."""

    storage_ref: str
    encoded_image: str


def decode_payload(image: bytes | str) -> bytes:
    """Return raw image bytes from bytes or a (data-URL prefixed) base64 string."""

    if isinstance(image, (bytes, bytearray, memoryview)):
        return bytes(image)
    if not isinstance(image, str):
        raise TypeError(f"Unsupported image payload type: {type(image).__name__}")
    return base64.b64decode(_DATA_URL_PREFIX.sub("", image, count=1))


def _open_image(image: bytes | str) -> Image.Image:
    decoded = Image.open(io.BytesIO(decode_payload(image)))
    decoded.load()
    return decoded


def normalize(image: bytes | str, target_width: int, target_height: int) -> bytes:
    """Return the raw 8-bit grayscale buffer of ``image`` cover-fitted to the target size.

    The photo is scaled to fill ``target_width x target_height`` and the
    overflow is cropped around the centre, so the aspect ratio is preserved
    without letterboxing. The result holds exactly one byte per pixel.

    Raises:
        ImageProcessingError: If the payload cannot be decoded as an image.
    """

    try:
        source = _open_image(image)
        fitted = ImageOps.fit(
            source,
            (target_width, target_height),
            method=Image.Resampling.LANCZOS,
            centering=(0.5, 0.5),
        )
        return fitted.convert("L").tobytes()
    except _DECODE_ERRORS as exc:
        raise ImageProcessingError("Failed to normalize image") from exc


def similarity(image_a: bytes | str, image_b: bytes | str) -> float:
    """Return the brightness similarity of two photos in ``[0.0, 1.0]``.

    ``1.0`` means pixel-identical after normalisation. Undecodable input yields
    ``0.0`` instead of an exception so the verification gate fails closed.
    """

    try:
        buffer_a = normalize(image_a, *NORMALIZED_SIZE)
        buffer_b = normalize(image_b, *NORMALIZED_SIZE)
    except ImageProcessingError as exc:
        logger.warning("Error comparing images: %s", exc.__cause__ or exc)
        return 0.0

    pixels_a = np.frombuffer(buffer_a, dtype=np.uint8).astype(np.int16)
    pixels_b = np.frombuffer(buffer_b, dtype=np.uint8).astype(np.int16)
    difference = np.abs(pixels_a - pixels_b)
    return float(np.mean((255 - difference) / 255.0))


def verify(
    reference_image: bytes | str | None,
    candidate_image: bytes | str,
    threshold: float = DEFAULT_THRESHOLD,
) -> Verification:
    """Check whether ``candidate_image`` is similar enough to ``reference_image``.

    The score must be strictly greater than ``threshold``. Without a reference
    photo the result is unverified with a similarity of zero and no comparison
    is attempted.
    """

    if not reference_image:
        return Verification(verified=False, similarity=0.0)

    score = similarity(reference_image, candidate_image)
    return Verification(verified=score > threshold, similarity=score)


def _timestamp_token(occurred_at: dt.datetime) -> tuple[str, str]:
    """Return filesystem-safe ``(date, time)`` tokens for an event timestamp."""

    if occurred_at.tzinfo is not None:
        occurred_at = occurred_at.astimezone(dt.timezone.utc)
    iso = occurred_at.strftime("%Y-%m-%dT%H:%M:%S") + f".{occurred_at.microsecond // 1000:03d}Z"
    return occurred_at.date().isoformat(), _TIMESTAMP_SEPARATORS.sub("-", iso)


def rendition_filename(subject_email: str, kind: str, occurred_at: dt.datetime) -> str:
    """Build the storage filename ``{email}_{kind}_{date}_{time}.jpg``.

    Path separators in the email are replaced by ``-`` so the name always
    stays inside the upload directory.
    """

    date_token, time_token = _timestamp_token(occurred_at)
    subject_token = _PATH_SEPARATORS.sub("-", subject_email)
    return f"{subject_token}_{kind}_{date_token}_{time_token}.jpg"


class ImageStore:
    """Persist compressed renditions of captured photos on the local filesystem."""

    def __init__(self, upload_dir: Path | str) -> None:
        self.upload_dir = Path(upload_dir)

    def ensure_upload_dir(self) -> None:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def store_rendition(
        self,
        image: bytes | str,
        subject_email: str,
        kind: str,
        occurred_at: dt.datetime,
    ) -> Rendition:
        """Recompress ``image`` and write it under a name derived from the event.

        The photo is shrunk to fit inside 800x600 (never enlarged), encoded as
        a quality 85 JPEG and written to the upload directory.

        Returns:
            The stored filename and a JPEG data URL of the written bytes.

        Raises:
            ImageProcessingError: For any decode, resize, encode or write failure.
        """

        filename = rendition_filename(subject_email, kind, occurred_at)
        try:
            rendition = _open_image(image)
            rendition.thumbnail(RENDITION_BOUNDS, Image.Resampling.LANCZOS)
            if rendition.mode not in ("RGB", "L"):
                rendition = rendition.convert("RGB")

            buffer = io.BytesIO()
            rendition.save(buffer, format="JPEG", quality=RENDITION_QUALITY)
            encoded = buffer.getvalue()

            self.ensure_upload_dir()
            (self.upload_dir / filename).write_bytes(encoded)
        except _DECODE_ERRORS as exc:
            logger.error("Error processing image for %s: %s", subject_email, exc)
            raise ImageProcessingError("Failed to process image") from exc

        logger.info("Stored %s rendition %s (%d bytes)", kind, filename, len(encoded))
        return Rendition(
            storage_ref=filename,
            encoded_image=JPEG_DATA_URL_PREFIX + base64.b64encode(encoded).decode("ascii"),
        )

    def get_image_path(self, filename: str) -> Path:
        """Return the on-disk path for a stored rendition.

        Raises:
            ValueError: If ``filename`` would resolve outside the upload directory.
        """

        if not filename or Path(filename).name != filename or filename in {".", ".."}:
            raise ValueError(f"Invalid rendition filename: {filename!r}")
        return self.upload_dir / filename

    def delete_image(self, filename: str) -> bool:
        """Remove a stored rendition, returning whether a file was deleted."""

        try:
            path = self.get_image_path(filename)
            path.unlink()
        except FileNotFoundError:
            return False
        except (ValueError, OSError) as exc:
            logger.error("Error deleting image %s: %s", filename, exc)
            return False
        return True
