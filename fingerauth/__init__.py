"""
fingerauth - multi-sample fingerprint verification

A probe fingerprint is compared with the three reference fingerprints
enrolled for the claimed student; the average score decides.
"""

from .decision import VerificationDecisionEngine
from .errors import ErrorKind, VerificationError, VerificationFailure
from .models import EnrollmentRecord, ProbeRequest, VerificationResult
from .response import build_response

__version__ = "1.0.0"
__all__ = [
    'VerificationDecisionEngine', 'ErrorKind', 'VerificationError', 'VerificationFailure',
    'EnrollmentRecord', 'ProbeRequest', 'VerificationResult', 'build_response'
]
