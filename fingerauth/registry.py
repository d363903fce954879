"""
Enrollment Registry

Owns the enrolled reference fingerprints:
- Identifier assignment and enrollment timestamps
- Storing reference images on disk
- Listing, deletion and clearing
- Consistent snapshots for the matcher

The matcher never touches this state directly; it receives the image bytes
returned by ``list_references()``, read under the registry lock.
"""
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging
import threading

from fingerauth.config import UPLOAD_DIR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnrolledReference:
    id: str
    filename: str
    path: Path
    enrolled_at: datetime


class EnrollmentRegistry:
    """
    In-memory registry of enrolled fingerprints backed by image files.

    Thread-safe; enrollment order is preserved and is the order in which
    references are handed to the matcher.
    """

    def __init__(self, upload_dir: Optional[Path] = None):
        self._lock = threading.RLock()
        self._references: Dict[str, EnrolledReference] = {}
        self.upload_dir = Path(upload_dir) if upload_dir is not None else UPLOAD_DIR

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._references)

    def enroll(self, data: bytes, filename: str) -> EnrolledReference:
        """
        Store a reference image and register it.

        Args:
            data: Encoded image bytes
            filename: Original upload filename (only its base name is kept)

        Returns:
            The new EnrolledReference
        """
        reference_id = uuid.uuid4().hex
        safe_name = Path(filename or "fingerprint").name or "fingerprint"

        with self._lock:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
            path = self.upload_dir / f"{reference_id}-{safe_name}"
            path.write_bytes(data)

            reference = EnrolledReference(
                id=reference_id,
                filename=safe_name,
                path=path,
                enrolled_at=datetime.now(timezone.utc)
            )
            self._references[reference_id] = reference

        logger.info(f"Enrolled fingerprint {reference_id} ({safe_name})")
        return reference

    def get(self, reference_id: str) -> Optional[EnrolledReference]:
        with self._lock:
            return self._references.get(reference_id)

    def list_records(self) -> List[EnrolledReference]:
        """All enrolled references in enrollment order."""
        with self._lock:
            return list(self._references.values())

    def list_references(self) -> List[Tuple[str, Union[bytes, Path]]]:
        """
        Snapshot of ``(id, image)`` pairs for the matcher.

        Image bytes are read under the lock, so a later delete or clear
        cannot pull them out from under an identification in progress.
        A reference whose file cannot be read is handed over as its path
        and gets reported by the matcher as unreadable.
        """
        with self._lock:
            snapshot = []
            for ref in self._references.values():
                try:
                    snapshot.append((ref.id, ref.path.read_bytes()))
                except OSError as e:
                    logger.warning(f"Stored image for {ref.id} is unreadable: {e}")
                    snapshot.append((ref.id, ref.path))
            return snapshot

    def delete(self, reference_id: str) -> bool:
        """
        Remove one reference and its stored image.

        Returns:
            True if deleted, False if not found
        """
        with self._lock:
            reference = self._references.pop(reference_id, None)
            if reference is None:
                return False
            reference.path.unlink(missing_ok=True)

        logger.info(f"Deleted fingerprint {reference_id}")
        return True

    def clear(self) -> int:
        """
        Remove every reference and its stored image.

        Returns:
            Number of references removed
        """
        with self._lock:
            references = list(self._references.values())
            self._references = {}
            for reference in references:
                reference.path.unlink(missing_ok=True)

        logger.info(f"Cleared {len(references)} enrolled fingerprints")
        return len(references)
