"""Verification decision engine

Decides whether a probe fingerprint belongs to a claimed subject:

1. Decode the probe and build its template
2. Check the enrollment holds exactly REQUIRED_MATCHES references
3. Score every reference against the probe (reference first, probe second)
4. Average the scores
5. Accept if the average reaches the threshold (inclusive)

The public operations return either a VerificationResult or a
VerificationFailure; verification errors are never raised to the caller.
The first failing step ends the verification and no later step runs.
verify_subject raises RuntimeError if the engine has no record store.
"""

from __future__ import annotations
import logging
from concurrent.futures import Executor
from typing import List, Optional, Union

from fingerauth.config import REQUIRED_MATCHES, SIMILARITY_THRESHOLD
from fingerauth.errors import (
    ComparisonError, EnrollmentCountError, BelowThresholdError, NotFoundError,
    UnknownError, VerificationError, VerificationFailure
)
from fingerauth.models import EnrollmentRecord, ProbeRequest, ReferenceImage, VerificationResult
from fingerauth.record_store import RecordStore
from fingerauth.template_codec import TemplateCodec

logger = logging.getLogger(__name__)

Outcome = Union[VerificationResult, VerificationFailure]

PROBE_INVALID_MESSAGE = "Invalid fingerprint data"
NOT_FOUND_MESSAGE = "Student fingerprint data not found"
COUNT_MESSAGE = "Invalid number of stored fingerprints"


class VerificationDecisionEngine:
    """Multi-sample 1:1 verification policy.

    Attributes:
        codec: TemplateCodec used for the probe and every reference
        record_store: Enrollment lookup (only needed by verify_subject)
        threshold: Inclusive minimum average score
        required_matches: Exact number of references an enrollment must hold
        executor: Optional executor for scoring references concurrently
    """

    def __init__(
        self,
        codec: TemplateCodec,
        record_store: Optional[RecordStore] = None,
        threshold: float = SIMILARITY_THRESHOLD,
        required_matches: int = REQUIRED_MATCHES,
        executor: Optional[Executor] = None
    ) -> None:
        self.codec = codec
        self.record_store = record_store
        self.threshold = threshold
        self.required_matches = required_matches
        self.executor = executor

    # ------------------------------------------------------------------
    # Public operations

    def verify(self, probe: ProbeRequest, record: EnrollmentRecord) -> Outcome:
        """Verify a probe against an already resolved enrollment record."""
        def run() -> VerificationResult:
            return self._decide(self._decode_probe(probe), record)

        return self._guarded(probe.subject_id, run)

    def verify_subject(self, probe: ProbeRequest) -> Outcome:
        """Resolve the subject's enrollment and verify the probe against it.

        The probe is decoded before the store is consulted, so malformed
        input never reaches the store or the matching engine.
        """
        if self.record_store is None:
            raise RuntimeError("verify_subject requires a record store")

        def run() -> VerificationResult:
            raw_probe = self._decode_probe(probe)
            record = self.record_store.lookup(probe.subject_id)
            if record is None:
                raise NotFoundError(NOT_FOUND_MESSAGE)
            return self._decide(raw_probe, record)

        return self._guarded(probe.subject_id, run)

    # ------------------------------------------------------------------
    # Pipeline steps

    def _decode_probe(self, probe: ProbeRequest) -> bytes:
        try:
            return self.codec.decode(probe.encoded_image)
        except VerificationError as e:
            logger.info(f"probe decode failed for {probe.subject_id}: {e.message}")
            raise type(e)(PROBE_INVALID_MESSAGE) from e

    def _decide(self, raw_probe: bytes, record: EnrollmentRecord) -> VerificationResult:
        try:
            probe_template = self.codec.build_template(raw_probe)
        except VerificationError as e:
            logger.info(f"probe template rejected for {record.subject_id}: {e.message}")
            raise type(e)(PROBE_INVALID_MESSAGE) from e

        count = len(record.references)
        if count != self.required_matches:
            raise EnrollmentCountError(COUNT_MESSAGE, count=count)

        scores = self._score_references(record.references, probe_template)
        average_score = sum(scores) / self.required_matches

        # NaN compares False and must not pass
        if not average_score >= self.threshold:
            raise BelowThresholdError(
                f"Fingerprint verification failed: Average score ({average_score}) below threshold",
                average_score=average_score,
            )

        return VerificationResult(
            verified=True,
            scores=tuple(scores),
            average_score=average_score,
            message=f"Fingerprint verification successful with average score: {average_score}",
        )

    def _score_references(self, references, probe_template) -> List[float]:
        def score_one(reference: ReferenceImage) -> float:
            try:
                reference_template = self.codec.template_from_encoded(reference.encoded_image)
                return float(self.codec.engine.score(reference_template, probe_template))
            except Exception as e:
                detail = e.message if isinstance(e, VerificationError) else str(e)
                raise ComparisonError(f"Error comparing fingerprint: {detail}") from e

        if self.executor is not None:
            # map() yields in submission order
            return list(self.executor.map(score_one, references))

        return [score_one(reference) for reference in references]

    def _guarded(self, subject_id: str, run) -> Outcome:
        try:
            result = run()
        except VerificationError as e:
            logger.info(f"verification of {subject_id} failed: {e.kind.value}: {e.message}")
            return VerificationFailure.from_error(e)
        except Exception as e:
            logger.error(f"unexpected error verifying {subject_id}: {e}", exc_info=True)
            return VerificationFailure.from_error(UnknownError(str(e) or "Unknown error"))

        logger.info(
            f"verification of {subject_id} accepted: "
            f"scores={list(result.scores)} avg={result.average_score}"
        )
        return result
