"""Configuration file for fingerauth

This module contains the verification policy constants and the tuning
parameters of the bundled matching engine.

Modify these values to tune the system behavior without changing the core code.
"""

# ============================================================================
# VERIFICATION POLICY
# ============================================================================

# Number of enrolled reference images every subject must have.
# Verification is rejected before scoring if the record holds any other count.
REQUIRED_MATCHES: int = 3

# Inclusive lower bound on the average score for acceptance
SIMILARITY_THRESHOLD: float = 40.0

# Scan resolution all templates are built at (dots per inch)
TEMPLATE_DPI: float = 500.0

# Score the references through an executor instead of a plain loop.
# Score order always follows the enrollment record order.
PARALLEL_SCORING: bool = False
SCORING_WORKERS: int = 3

# ============================================================================
# IMAGE PREPROCESSING
# ============================================================================

# Normalization parameters
NORMALISE_MEAN: float = 100.0  # Target mean value
NORMALISE_STD: float = 20.0  # Target standard deviation
NORMALISE_BLOCK_SIZE: int = 16  # Local statistics neighbourhood

# Segmentation parameters
SEGMENTATION_BLOCK_SIZE: int = 16  # Block size for variance-based segmentation
SEGMENTATION_VARIANCE_THRESHOLD: float = 70.0  # Variance threshold for foreground detection

# Images are upscaled/downscaled to TEMPLATE_DPI, then rejected if too small
MIN_IMAGE_SIDE: int = 32

# ============================================================================
# ORB MATCHING ENGINE
# ============================================================================

ORB_FEATURES: int = 500  # Max keypoints kept per template
ORB_SCALE_FACTOR: float = 1.2
ORB_LEVELS: int = 8
ORB_EDGE_THRESHOLD: int = 15
ORB_PATCH_SIZE: int = 15
ORB_FAST_THRESHOLD: int = 10

# Templates with fewer keypoints are rejected as "insufficient features"
MIN_KEYPOINTS: int = 10

# Lowe's ratio test for reference -> probe descriptor matches
RATIO_TEST: float = 0.75

# ============================================================================
# VALIDATION
# ============================================================================

def validate_config():
    """Validate configuration consistency."""
    errors = []

    if REQUIRED_MATCHES <= 0:
        errors.append(f"REQUIRED_MATCHES must be positive (got {REQUIRED_MATCHES})")

    if SIMILARITY_THRESHOLD < 0.0:
        errors.append(f"SIMILARITY_THRESHOLD must be non-negative (got {SIMILARITY_THRESHOLD})")

    if TEMPLATE_DPI <= 0.0:
        errors.append(f"TEMPLATE_DPI must be positive (got {TEMPLATE_DPI})")

    if not (0.0 < RATIO_TEST < 1.0):
        errors.append(f"RATIO_TEST must be in (0.0, 1.0) (got {RATIO_TEST})")

    if MIN_KEYPOINTS < 2:
        errors.append(f"MIN_KEYPOINTS must be at least 2 (got {MIN_KEYPOINTS})")

    if ORB_FEATURES < MIN_KEYPOINTS:
        errors.append(f"ORB_FEATURES must be >= MIN_KEYPOINTS (got {ORB_FEATURES} < {MIN_KEYPOINTS})")

    if SCORING_WORKERS <= 0:
        errors.append(f"SCORING_WORKERS must be positive (got {SCORING_WORKERS})")

    if errors:
        raise ValueError("Configuration validation failed:\n" + "\n".join(errors))

# Run validation on import
validate_config()
