"""Response builder: verification outcome -> transport envelope

Envelope format (API-Gateway style)::

    {
        "statusCode": 200 | 400,
        "headers": {"Content-Type": "application/json",
                    "Access-Control-Allow-Origin": "*"},
        "body": "<JSON string>"
    }
"""

from __future__ import annotations
import json
from typing import Any, Dict, Union

from fingerauth.errors import VerificationFailure
from fingerauth.models import VerificationResult

STATUS_OK = 200
STATUS_FAILED = 400

RESPONSE_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
}


def result_to_body(result: VerificationResult) -> Dict[str, Any]:
    """Serialize an accepted result to the response body dict."""
    return {
        "verified": result.verified,
        "scores": [float(score) for score in result.scores],
        "averageScore": float(result.average_score),
        "message": result.message,
    }


def create_response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    """Wrap a body dict into the transport envelope."""
    return {
        "statusCode": status_code,
        "headers": dict(RESPONSE_HEADERS),
        "body": json.dumps(body),
    }


def error_response(message: str) -> Dict[str, Any]:
    return create_response(STATUS_FAILED, {"error": message or "Unknown error"})


def build_response(outcome: Union[VerificationResult, VerificationFailure]) -> Dict[str, Any]:
    """Map a verification outcome to its envelope (200 accept, 400 any failure)."""
    if isinstance(outcome, VerificationFailure):
        return error_response(outcome.message)

    return create_response(STATUS_OK, result_to_body(outcome))
