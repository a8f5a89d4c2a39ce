"""Preprocessing module for fingerauth

This module contains the image preprocessing used by the ORB matching engine:
- Decoding raw image bytes to grayscale
- Rescaling to the template resolution
- Normalization (local block statistics)
- Segmentation (foreground/background separation)

"""

from __future__ import annotations
import cv2
import numpy as np

from fingerauth.config import (
    NORMALISE_MEAN, NORMALISE_STD, NORMALISE_BLOCK_SIZE,
    SEGMENTATION_BLOCK_SIZE, SEGMENTATION_VARIANCE_THRESHOLD,
    MIN_IMAGE_SIDE, TEMPLATE_DPI
)


def decode_grayscale_image(raw_image: bytes) -> np.ndarray:
    """Decode fingerprint image bytes as grayscale float32.

    Args:
        raw_image: Encoded image file contents (PNG, BMP, TIFF, JPEG, ...)

    Returns:
        Grayscale image as float32 (0-255 range)

    Raises:
        ValueError: If the bytes are not a readable image
    """
    if not raw_image:
        raise ValueError("Empty image data")

    buffer = np.frombuffer(raw_image, dtype=np.uint8)
    image = cv2.imdecode(buffer, cv2.IMREAD_GRAYSCALE)
    if image is None:
        raise ValueError("Unable to decode fingerprint image")

    return image.astype(np.float32)


def rescale_to_dpi(image: np.ndarray, dpi: float, target_dpi: float = None) -> np.ndarray:
    """Resize an image scanned at ``dpi`` to ``target_dpi``.

    Args:
        image: Grayscale image
        dpi: Resolution the image was scanned at
        target_dpi: Resolution templates are built at (uses config default if None)

    Returns:
        Resized image (same array if no scaling is needed)

    Raises:
        ValueError: If dpi is not positive or the result is too small
    """
    if target_dpi is None:
        target_dpi = TEMPLATE_DPI

    if dpi <= 0:
        raise ValueError(f"DPI must be positive, got {dpi}")

    if abs(dpi - target_dpi) > 1e-6:
        factor = target_dpi / dpi
        h, w = image.shape
        size = (max(1, int(round(w * factor))), max(1, int(round(h * factor))))
        interpolation = cv2.INTER_AREA if factor < 1.0 else cv2.INTER_CUBIC
        image = cv2.resize(image, size, interpolation=interpolation)

    if min(image.shape) < MIN_IMAGE_SIDE:
        raise ValueError(
            f"Image too small after scaling: {image.shape[1]}x{image.shape[0]} "
            f"(minimum side {MIN_IMAGE_SIDE}px)"
        )

    return image


def normalise_image(image: np.ndarray,
                    block_size: int = None,
                    mean0: float = None,
                    var0: float = None) -> np.ndarray:
    """Normalize image intensity using local block statistics.

    Applies local normalization to compensate for uneven illumination and contrast.
    Each pixel is normalized based on the mean and variance of its local neighborhood.

    Args:
        image: Input grayscale image (any numeric type)
        block_size: Size of local neighborhood block (uses config default if None)
        mean0: Target mean intensity (uses config default if None)
        var0: Target variance (uses config default if None)

    Returns:
        Normalized image (float32, 0-255 range)

    Note:
        Formula: normalized = mean0 + (image - local_mean) * sqrt(var0 / local_var)
    """
    if block_size is None:
        block_size = NORMALISE_BLOCK_SIZE
    if mean0 is None:
        mean0 = NORMALISE_MEAN
    if var0 is None:
        var0 = NORMALISE_STD ** 2  # Convert std to variance

    if image.dtype != np.float32:
        image = image.astype(np.float32)

    kernel = (block_size, block_size)
    local_mean = cv2.boxFilter(image, -1, kernel, normalize=True)
    local_sq_mean = cv2.boxFilter(image * image, -1, kernel, normalize=True)
    local_var = np.maximum(local_sq_mean - local_mean ** 2, 1e-6)

    # Flat regions stay flat instead of amplifying rounding noise
    scale = np.where(local_var > 1.0, np.sqrt(var0 / local_var), 0.0)
    normalised = mean0 + (image - local_mean) * scale
    return np.clip(normalised, 0.0, 255.0).astype(np.float32)


def block_variance_segmentation(image: np.ndarray,
                                block_size: int = None,
                                threshold: float = None) -> np.ndarray:
    """Segment fingerprint foreground from background using block variance.

    Divides the image into blocks and computes variance for each block.
    High-variance blocks indicate ridge structures (foreground), while
    low-variance blocks indicate background or noise.

    Args:
        image: Input grayscale image (float32, 0-255)
        block_size: Size of square blocks (uses config default if None)
        threshold: Variance threshold (uses config default if None)

    Returns:
        uint8 mask: 255 for foreground, 0 for background (cv2 mask format)
    """
    if block_size is None:
        block_size = SEGMENTATION_BLOCK_SIZE
    if threshold is None:
        threshold = SEGMENTATION_VARIANCE_THRESHOLD

    h, w = image.shape
    mask = np.zeros((h, w), dtype=np.uint8)

    for y in range(0, h, block_size):
        for x in range(0, w, block_size):
            block = image[y:y + block_size, x:x + block_size]
            if block.size < block_size * block_size:
                continue
            if block.var() >= threshold:
                mask[y:y + block_size, x:x + block_size] = 1

    # Morphological operations to clean up mask
    kernel = np.ones((3, 3), np.uint8)
    mask = cv2.morphologyEx(mask, cv2.MORPH_CLOSE, kernel, iterations=1)
    mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel, iterations=1)

    return mask * 255


def prepare_image(raw_image: bytes, dpi: float) -> np.ndarray:
    """Decode, rescale to template DPI and normalise.

    Returns:
        Normalised uint8 image ready for keypoint detection
    """
    image = decode_grayscale_image(raw_image)
    image = rescale_to_dpi(image, dpi)
    return normalise_image(image).astype(np.uint8)
