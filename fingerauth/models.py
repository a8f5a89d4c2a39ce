"""Data structures for fingerauth

This module defines the core data classes used throughout the verification system.
These classes are shared across all modules (template_codec, matching, decision, response).
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Mapping, Tuple, Union
import numpy as np


@dataclass(frozen=True)
class ReferenceImage:
    """One enrolled reference image.

    Attributes:
        label: Name of the reference inside the enrollment record
        encoded_image: Base64 transport-encoded image bytes
    """
    label: str
    encoded_image: bytes


@dataclass(frozen=True)
class EnrollmentRecord:
    """Enrolled references for one subject, ordered by label.

    Attributes:
        subject_id: Subject (student) identifier
        references: Reference images sorted by label
    """
    subject_id: str
    references: Tuple[ReferenceImage, ...]

    @classmethod
    def from_mapping(
        cls,
        subject_id: str,
        images: Mapping[str, Union[str, bytes]]
    ) -> EnrollmentRecord:
        """Build a record from a store's ``label -> encoded image`` mapping.

        References are sorted by label so that score order is the same on
        every call, whatever order the store yields.
        """
        references = tuple(
            ReferenceImage(label=label, encoded_image=_as_bytes(images[label]))
            for label in sorted(images)
        )
        return cls(subject_id=subject_id, references=references)

    def __len__(self) -> int:
        return len(self.references)


@dataclass(frozen=True)
class ProbeRequest:
    """Fingerprint submitted for verification.

    Attributes:
        subject_id: Claimed subject (student) identifier
        encoded_image: Base64 transport-encoded probe image
    """
    subject_id: str
    encoded_image: bytes

    @classmethod
    def create(cls, subject_id: str, encoded_image: Union[str, bytes]) -> ProbeRequest:
        return cls(subject_id=subject_id, encoded_image=_as_bytes(encoded_image))


@dataclass
class FingerprintTemplate:
    """Feature template produced by the ORB matching engine.

    The decision engine treats templates as opaque; only the matching engine
    reads these fields.

    Attributes:
        descriptors: ORB descriptors, one uint8 row per keypoint
        points: Keypoint coordinates (N x 2, float32) in the normalised image
        dpi: Resolution the template was built at
        shape: (height, width) of the normalised image
    """
    descriptors: np.ndarray
    points: np.ndarray
    dpi: float
    shape: Tuple[int, int]

    def __post_init__(self) -> None:
        """Validate template after initialization."""
        if self.descriptors.ndim != 2:
            raise ValueError(f"Descriptors must be 2D, got shape {self.descriptors.shape}")

        if self.points.shape != (self.descriptors.shape[0], 2):
            raise ValueError(
                f"Points shape {self.points.shape} does not match "
                f"{self.descriptors.shape[0]} descriptors"
            )

        if self.dpi <= 0:
            raise ValueError(f"DPI must be positive, got {self.dpi}")

    @property
    def keypoint_count(self) -> int:
        return int(self.descriptors.shape[0])


@dataclass(frozen=True)
class VerificationResult:
    """Accepted verification.

    Attributes:
        verified: Always True for a returned result
        scores: One score per reference, in record order
        average_score: Arithmetic mean of ``scores``
        message: Human-readable summary
    """
    verified: bool
    scores: Tuple[float, ...]
    average_score: float
    message: str


def _as_bytes(value: Union[str, bytes]) -> bytes:
    if isinstance(value, bytes):
        return value
    return value.encode("utf-8")
