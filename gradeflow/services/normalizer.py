"""
Content normalization
=====================

Turns an uploaded artifact into what the evaluator can consume: a text
representation and, for small enough images, an inline base64 payload.

Only plain text is read verbatim. Documents and archives are described by a
placeholder (name, type, size) so evaluation can still run on metadata plus
the assignment instructions. Nothing in here raises for an accepted type;
failures degrade to a placeholder and record why in ``degraded_reason``.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Callable

from gradeflow.core.config import MAX_INLINE_IMAGE_BYTES

logger = logging.getLogger(__name__)

DOCUMENT_MEDIA_TYPES = (
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
)
ARCHIVE_MEDIA_TYPES = ("application/zip",)


@dataclass
class Artifact:
    """An uploaded file as declared by the client."""

    name: str
    media_type: str
    size_bytes: int
    read_bytes: Callable[[], bytes]

    @classmethod
    def from_bytes(cls, name: str, media_type: str, data: bytes) -> "Artifact":
        return cls(name=name, media_type=media_type, size_bytes=len(data), read_bytes=lambda: data)

    @property
    def is_image(self) -> bool:
        return (self.media_type or "").lower().startswith("image/")


@dataclass
class InlineImage:
    base64: str
    mime_type: str
    name: str


@dataclass
class NormalizedContent:
    text_representation: str
    inline_image: InlineImage | None = None
    degraded_reason: str | None = None

    @property
    def degraded(self) -> bool:
        return self.degraded_reason is not None


# Media categories, dispatched with ``match`` in normalize()

@dataclass
class TextArtifact:
    artifact: Artifact


@dataclass
class ImageArtifact:
    artifact: Artifact


@dataclass
class DocumentArtifact:
    artifact: Artifact


@dataclass
class ArchiveArtifact:
    artifact: Artifact


@dataclass
class OtherArtifact:
    artifact: Artifact


def classify(artifact: Artifact):
    media_type = (artifact.media_type or "").lower()
    if media_type.startswith("text/"):
        return TextArtifact(artifact)
    if media_type.startswith("image/"):
        return ImageArtifact(artifact)
    if media_type.startswith(DOCUMENT_MEDIA_TYPES):
        return DocumentArtifact(artifact)
    if media_type in ARCHIVE_MEDIA_TYPES:
        return ArchiveArtifact(artifact)
    return OtherArtifact(artifact)


def normalize(artifact: Artifact) -> NormalizedContent:
    match classify(artifact):
        case TextArtifact(artifact=a):
            return _normalize_text(a)
        case ImageArtifact(artifact=a):
            return _normalize_image(a)
        case DocumentArtifact(artifact=a):
            return NormalizedContent(
                text_representation=(
                    f"[Document file: {a.name} - Type: {a.media_type} - Size: {a.size_bytes} bytes. "
                    "Content is not extracted. Evaluation will be based on metadata and instructions.]"
                ),
                degraded_reason=(
                    "Document content is not extracted, so this evaluation is based on the file "
                    "details and the assignment instructions only."
                ),
            )
        case ArchiveArtifact(artifact=a):
            return NormalizedContent(
                text_representation=(
                    f"[Archive file: {a.name} - Type: ZIP - Size: {a.size_bytes} bytes. "
                    "The archive is not expanded; its files are not available for evaluation.]"
                ),
                degraded_reason=(
                    "Archive contents are not expanded, so this evaluation is based on the file "
                    "details and the assignment instructions only."
                ),
            )
        case OtherArtifact(artifact=a):
            return NormalizedContent(
                text_representation=f"[File: {a.name} - Type: {a.media_type} - Size: {a.size_bytes} bytes]",
                degraded_reason="This file type cannot be read by the evaluator; only its details were assessed.",
            )


def _normalize_text(artifact: Artifact) -> NormalizedContent:
    try:
        text = artifact.read_bytes().decode("utf-8", errors="replace")
    except Exception as e:
        logger.warning("Could not read text artifact %s: %s", artifact.name, e)
        return NormalizedContent(
            text_representation=f"[Text file: {artifact.name} - Error reading content for AI analysis]",
            degraded_reason="The text file could not be read, so only its details were assessed.",
        )
    return NormalizedContent(text_representation=text)


def _normalize_image(artifact: Artifact) -> NormalizedContent:
    if artifact.size_bytes > MAX_INLINE_IMAGE_BYTES:
        logger.info(
            "Image %s is %d bytes, above the %d byte inline limit; evaluating text-only",
            artifact.name,
            artifact.size_bytes,
            MAX_INLINE_IMAGE_BYTES,
        )
        return NormalizedContent(
            text_representation=(
                f"[Image file: {artifact.name} - Size: {artifact.size_bytes} bytes - "
                "Too large for AI analysis]"
            ),
            degraded_reason=(
                "The image was too large for AI analysis, so it was evaluated from its file "
                "description only. Expect a less detailed assessment."
            ),
        )

    try:
        encoded = base64.b64encode(artifact.read_bytes()).decode("ascii")
    except Exception as e:
        logger.error("Error processing image %s for AI analysis: %s", artifact.name, e)
        return NormalizedContent(
            text_representation=f"[Image file: {artifact.name} - Error processing image content for AI analysis]",
            degraded_reason="The image could not be processed for AI analysis, so only its details were assessed.",
        )

    return NormalizedContent(
        text_representation=f"[Image file: {artifact.name} - Size: {artifact.size_bytes} bytes]",
        inline_image=InlineImage(base64=encoded, mime_type=artifact.media_type, name=artifact.name),
    )
