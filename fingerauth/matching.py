"""Matching module for fingerauth

This module contains:
- MatchingEngine: the capability the decision engine depends on
- OrbMatchingEngine: default engine built on OpenCV ORB features

A score is computed FROM a reference template AGAINST a probe template.
The argument order matters: the ratio test runs over the reference's
descriptors, so swapping the templates gives a different number.
"""

from __future__ import annotations
import logging
from typing import Protocol

import cv2
import numpy as np

from fingerauth.config import (
    TEMPLATE_DPI, MIN_KEYPOINTS, RATIO_TEST,
    ORB_FEATURES, ORB_SCALE_FACTOR, ORB_LEVELS,
    ORB_EDGE_THRESHOLD, ORB_PATCH_SIZE, ORB_FAST_THRESHOLD
)
from fingerauth.errors import ComparisonError, TemplateBuildError
from fingerauth.models import FingerprintTemplate
from fingerauth.preprocessing import prepare_image, block_variance_segmentation

logger = logging.getLogger(__name__)


class MatchingEngine(Protocol):
    """Builds templates and scores (reference, probe) pairs."""

    def create_template(self, raw_image: bytes, dpi: float) -> object:
        """Build a template; raise TemplateBuildError if the image is unusable."""
        ...

    def score(self, reference: object, probe: object) -> float:
        """Similarity of ``probe`` to ``reference``; raise ComparisonError on failure."""
        ...


# ---------------------------------------------------------------------------
# OrbMatchingEngine


class OrbMatchingEngine:
    """Keypoint matcher: ORB descriptors + Lowe's ratio test.

    Pipeline per image:
    1. Decode → rescale to template DPI → local normalisation
    2. Block-variance segmentation (keypoints only inside the fingerprint)
    3. ORB keypoints + binary descriptors

    The score is the number of reference descriptors whose nearest probe
    descriptor passes the ratio test. It has no fixed upper bound
    (at most the reference keypoint count).

    Attributes:
        ratio: Ratio-test threshold
        min_keypoints: Minimum keypoints for a usable template
    """

    def __init__(self, ratio: float = None, min_keypoints: int = None) -> None:
        self.ratio = RATIO_TEST if ratio is None else ratio
        self.min_keypoints = MIN_KEYPOINTS if min_keypoints is None else min_keypoints

    @staticmethod
    def _create_orb():
        # OpenCV detectors are not shared between threads
        return cv2.ORB_create(
            nfeatures=ORB_FEATURES,
            scaleFactor=ORB_SCALE_FACTOR,
            nlevels=ORB_LEVELS,
            edgeThreshold=ORB_EDGE_THRESHOLD,
            patchSize=ORB_PATCH_SIZE,
            fastThreshold=ORB_FAST_THRESHOLD,
        )

    def create_template(self, raw_image: bytes, dpi: float = TEMPLATE_DPI) -> FingerprintTemplate:
        """Build an ORB template from raw image bytes.

        Args:
            raw_image: Encoded image file contents
            dpi: Resolution the image was scanned at

        Returns:
            FingerprintTemplate at TEMPLATE_DPI

        Raises:
            TemplateBuildError: Unreadable image or too few keypoints
        """
        try:
            image = prepare_image(raw_image, dpi)
        except ValueError as e:
            raise TemplateBuildError(f"Unreadable fingerprint image: {e}") from e

        mask = block_variance_segmentation(image)
        try:
            keypoints, descriptors = self._create_orb().detectAndCompute(image, mask)
        except cv2.error as e:
            raise TemplateBuildError(f"Feature extraction failed: {e}") from e

        count = 0 if descriptors is None else len(descriptors)
        if count < self.min_keypoints:
            raise TemplateBuildError(
                f"Insufficient fingerprint features: {count} keypoints "
                f"(minimum {self.min_keypoints})"
            )

        points = np.array([kp.pt for kp in keypoints], dtype=np.float32)
        logger.debug(f"template: {count} keypoints, shape={image.shape}")

        return FingerprintTemplate(
            descriptors=descriptors,
            points=points,
            dpi=TEMPLATE_DPI,
            shape=(int(image.shape[0]), int(image.shape[1])),
        )

    def score(self, reference: FingerprintTemplate, probe: FingerprintTemplate) -> float:
        """Count reference descriptors matched in the probe.

        Args:
            reference: Enrolled template (query side of the matcher)
            probe: Probe template (train side of the matcher)

        Returns:
            Number of ratio-test matches as float

        Raises:
            ComparisonError: If OpenCV rejects the descriptors
        """
        if reference.keypoint_count == 0 or probe.keypoint_count < 2:
            return 0.0

        try:
            matcher = cv2.BFMatcher(cv2.NORM_HAMMING, crossCheck=False)
            pairs = matcher.knnMatch(reference.descriptors, probe.descriptors, k=2)
        except cv2.error as e:
            raise ComparisonError(f"Descriptor matching failed: {e}") from e

        good = 0
        for pair in pairs:
            if len(pair) == 2 and pair[0].distance < self.ratio * pair[1].distance:
                good += 1

        return float(good)
