"""AWS Lambda entry point

Receives API-Gateway proxy events, verifies ``{"studentId", "fingerprint"}``
against the DynamoDB enrollment table and returns the envelope built by
fingerauth.response.
"""

from __future__ import annotations
import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional

from fingerauth.decision import VerificationDecisionEngine
from fingerauth.errors import VerificationError
from fingerauth.matching import OrbMatchingEngine
from fingerauth.record_store import DEFAULT_TABLE_NAME, DynamoDBRecordStore
from fingerauth.response import build_response, error_response
from fingerauth.template_codec import TemplateCodec
from fingerauth.transport import parse_request_body

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def default_engine() -> VerificationDecisionEngine:
    """Engine over DynamoDB + ORB, built once per Lambda container."""
    store = DynamoDBRecordStore(
        table_name=os.environ.get("FINGERAUTH_DYNAMODB_TABLE", DEFAULT_TABLE_NAME),
        region_name=os.environ.get("AWS_REGION"),
    )
    return VerificationDecisionEngine(TemplateCodec(OrbMatchingEngine()), record_store=store)


def handle_event(
    event: Dict[str, Any],
    engine: VerificationDecisionEngine,
    context: Any = None
) -> Dict[str, Any]:
    """Verify the request carried by ``event`` with ``engine``."""
    try:
        probe = parse_request_body(event.get("body"))
    except VerificationError as e:
        _log_error(context, e.message)
        return error_response(e.message)

    outcome = engine.verify_subject(probe)
    if not outcome.verified:
        _log_error(context, outcome.message)

    return build_response(outcome)


def lambda_handler(event: Dict[str, Any], context: Any = None) -> Dict[str, Any]:
    return handle_event(event, default_engine(), context)


def _log_error(context: Optional[Any], message: str) -> None:
    lambda_logger = getattr(context, "logger", None)
    if lambda_logger is not None:
        lambda_logger.log(f"Error: {message}")
    else:
        logger.warning(f"Error: {message}")
