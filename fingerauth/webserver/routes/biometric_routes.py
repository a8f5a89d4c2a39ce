"""
Biometric Operations Routes
Multi-sample 1:1 verification.
"""

import asyncio
from typing import Any, Dict, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import Response

from fingerauth.decision import VerificationDecisionEngine
from fingerauth.errors import ErrorKind, VerificationError
from fingerauth.response import build_response, error_response
from fingerauth.transport import parse_request_body

from ..config import MAX_REQUEST_SIZE, VERIFY_TIMEOUT
from ..logger import log_biometric, log_error


router = APIRouter(tags=["Biometric Operations"])


# Global references to the executor and engine (set by server.py)
executor = None
engine: Optional[VerificationDecisionEngine] = None


def set_globals(pool, decision_engine: VerificationDecisionEngine):
    """Set global executor and decision engine references."""
    global executor, engine
    executor = pool
    engine = decision_engine


def envelope_to_response(envelope: Dict[str, Any]) -> Response:
    """Copy a transport envelope onto an HTTP response."""
    return Response(
        content=envelope["body"],
        status_code=envelope["statusCode"],
        headers=envelope["headers"],
    )


def too_large_response(size: int) -> Response:
    log_biometric("VERIFY", None, ErrorKind.INVALID_REQUEST.value, details={'size': size})
    return envelope_to_response(error_response("Request body too large"))


@router.post("/verify")
async def verify(request: Request):
    """
    Verify a fingerprint against the claimed student's three enrolled references.

    JSON Body:
        - studentId: Claimed student id
        - fingerprint: Base64 encoded probe image

    Returns:
        200 {verified, scores, averageScore, message} on acceptance,
        400 {error} on any failure
    """
    if engine is None:
        raise HTTPException(status_code=503, detail="Verification engine not initialised")

    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > MAX_REQUEST_SIZE:
        return too_large_response(int(declared))

    body = await request.body()
    if len(body) > MAX_REQUEST_SIZE:
        return too_large_response(len(body))

    try:
        probe = parse_request_body(body)
    except VerificationError as e:
        log_biometric("VERIFY", None, e.kind.value)
        return envelope_to_response(error_response(e.message))

    loop = asyncio.get_running_loop()
    try:
        outcome = await asyncio.wait_for(
            loop.run_in_executor(executor, engine.verify_subject, probe),
            timeout=VERIFY_TIMEOUT
        )
    except asyncio.TimeoutError as e:
        log_error(e, context=f"/api/verify subject_id={probe.subject_id}")
        log_biometric("VERIFY", probe.subject_id, ErrorKind.UNKNOWN.value, details={'timeout': VERIFY_TIMEOUT})
        return envelope_to_response(error_response("Verification timed out"))

    if outcome.verified:
        log_biometric(
            "VERIFY",
            probe.subject_id,
            "ACCEPTED",
            details={
                'scores': list(outcome.scores),
                'average': outcome.average_score
            }
        )
    else:
        details = {'average': outcome.average_score} if outcome.average_score is not None else None
        log_biometric("VERIFY", probe.subject_id, outcome.kind.value, details=details)

    return envelope_to_response(build_response(outcome))
