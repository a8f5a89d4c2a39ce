"""Error taxonomy for fingerprint verification

Every way a verification can end without acceptance has its own kind.
Each kind exists in two forms:

- an exception class (``DecodeError``, ``NotFoundError``, ...) raised by the
  codec, the matching engine and the record stores;
- a ``VerificationFailure`` value returned by the decision engine, so callers
  branch on the outcome instead of catching exceptions.

All kinds are terminal: nothing is retried and no partial result survives.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Type


class ErrorKind(str, Enum):
    """Failure kinds reported to callers."""
    DECODE = "DecodeError"
    TEMPLATE_BUILD = "TemplateBuildError"
    NOT_FOUND = "NotFoundError"
    ENROLLMENT_COUNT = "EnrollmentCountError"
    COMPARISON = "ComparisonError"
    BELOW_THRESHOLD = "BelowThresholdError"
    INVALID_RECORD = "InvalidRecordError"
    INVALID_REQUEST = "InvalidRequestError"
    UNKNOWN = "UnknownError"


class VerificationError(Exception):
    """Base class for all verification errors.

    Attributes:
        kind: ErrorKind of this error
        message: Human-readable message (goes into the response body)
    """
    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DecodeError(VerificationError):
    """Transport-encoded image is not valid base64."""
    kind = ErrorKind.DECODE


class TemplateBuildError(VerificationError):
    """Matching engine could not build a template from the image."""
    kind = ErrorKind.TEMPLATE_BUILD


class NotFoundError(VerificationError):
    """No enrollment record for the subject."""
    kind = ErrorKind.NOT_FOUND


class EnrollmentCountError(VerificationError):
    """Enrollment record does not hold the required number of references."""
    kind = ErrorKind.ENROLLMENT_COUNT

    def __init__(self, message: str, count: Optional[int] = None) -> None:
        super().__init__(message)
        self.count = count


class ComparisonError(VerificationError):
    """A reference could not be built or scored against the probe."""
    kind = ErrorKind.COMPARISON


class BelowThresholdError(VerificationError):
    """All comparisons succeeded but the average is under the threshold."""
    kind = ErrorKind.BELOW_THRESHOLD

    def __init__(self, message: str, average_score: Optional[float] = None) -> None:
        super().__init__(message)
        self.average_score = average_score


class InvalidRecordError(VerificationError):
    """Stored enrollment record is malformed."""
    kind = ErrorKind.INVALID_RECORD


class InvalidRequestError(VerificationError):
    """Transport request body is malformed."""
    kind = ErrorKind.INVALID_REQUEST


class UnknownError(VerificationError):
    """Anything else."""
    kind = ErrorKind.UNKNOWN


ERROR_CLASSES: Dict[ErrorKind, Type[VerificationError]] = {
    cls.kind: cls
    for cls in (
        DecodeError, TemplateBuildError, NotFoundError, EnrollmentCountError,
        ComparisonError, BelowThresholdError, InvalidRecordError,
        InvalidRequestError, UnknownError,
    )
}


@dataclass(frozen=True)
class VerificationFailure:
    """Value form of a verification error.

    Attributes:
        kind: Failure kind
        message: Human-readable message
        average_score: Average score, only for BELOW_THRESHOLD
    """
    kind: ErrorKind
    message: str
    average_score: Optional[float] = None

    @property
    def verified(self) -> bool:
        return False

    @classmethod
    def from_error(cls, error: VerificationError) -> "VerificationFailure":
        return cls(
            kind=error.kind,
            message=error.message,
            average_score=getattr(error, "average_score", None),
        )

    def to_error(self) -> VerificationError:
        error_cls = ERROR_CLASSES[self.kind]
        if error_cls is BelowThresholdError:
            return BelowThresholdError(self.message, average_score=self.average_score)
        return error_cls(self.message)

    def raise_for_failure(self) -> None:
        """Raise the exception matching this failure."""
        raise self.to_error()
