"""
Binary artifacts and the ephemeral references that back them.

Rendered images are never embedded as inline base64. The decoded bytes are
written to a private temporary file and referenced by ``file://`` URI. Every
reference is owned by one ``ArtifactStore`` and must be released, either
explicitly when superseded or by ``sweep()`` once its grace period expires.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import shutil
import tempfile
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..core.exceptions import RenderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class BinaryArtifact:
    """Decoded bytes with their declared media type."""

    data: bytes
    media_type: str

    @classmethod
    def from_base64(cls, payload: str, media_type: str) -> "BinaryArtifact":
        try:
            data = base64.b64decode(payload.strip(), validate=True)
        except (binascii.Error, ValueError) as e:
            raise RenderError(f"Invalid base64 image payload: {e}") from e
        return cls(data=data, media_type=media_type)

    @property
    def extension(self) -> str:
        return mimetypes.guess_extension(self.media_type) or ".bin"


@dataclass(slots=True)
class ArtifactReference:
    """Ephemeral handle onto a published artifact."""

    uri: str
    path: Path
    media_type: str
    expires_at: float | None = None
    released: bool = False


class ArtifactStore:
    """Publishes artifacts as temporary files and revokes them."""

    def __init__(
        self,
        directory: str | Path | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._directory = Path(directory) if directory else None
        self._owns_directory = directory is None
        self._clock = clock
        self._references: dict[str, ArtifactReference] = {}

    @property
    def directory(self) -> Path:
        if self._directory is None:
            self._directory = Path(tempfile.mkdtemp(prefix="codecanvas_artifacts_"))
        self._directory.mkdir(parents=True, exist_ok=True)
        return self._directory

    @property
    def active(self) -> list[ArtifactReference]:
        return list(self._references.values())

    def publish(self, artifact: BinaryArtifact, ttl: float | None = None) -> ArtifactReference:
        """
        Write *artifact* and return a reference to it.

        Args:
            artifact: Bytes to publish
            ttl: Grace period in seconds after which ``sweep()`` releases
                the reference; ``None`` keeps it until released explicitly
        """
        path = self.directory / f"{uuid.uuid4().hex}{artifact.extension}"
        path.write_bytes(artifact.data)
        expires_at = None if ttl is None else self._clock() + ttl
        reference = ArtifactReference(
            uri=path.resolve().as_uri(),
            path=path,
            media_type=artifact.media_type,
            expires_at=expires_at,
        )
        self._references[reference.uri] = reference
        logger.debug(f"Published {len(artifact.data)} bytes as {reference.uri}")
        return reference

    def release(self, reference: ArtifactReference | None) -> None:
        """Revoke *reference* and delete its backing file."""
        if reference is None or reference.released:
            return
        self._references.pop(reference.uri, None)
        reference.path.unlink(missing_ok=True)
        reference.released = True

    def sweep(self) -> int:
        """Release every reference whose grace period has passed."""
        now = self._clock()
        expired = [
            ref
            for ref in self._references.values()
            if ref.expires_at is not None and ref.expires_at <= now
        ]
        for ref in expired:
            self.release(ref)
        return len(expired)

    def cleanup(self) -> None:
        """Release all references and remove a store-created directory."""
        for ref in list(self._references.values()):
            self.release(ref)
        if self._owns_directory and self._directory is not None:
            shutil.rmtree(self._directory, ignore_errors=True)
            self._directory = None
