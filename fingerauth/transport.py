"""Request parsing shared by the HTTP route and the Lambda handler."""

from __future__ import annotations
from typing import Optional, Union

from pydantic import BaseModel, Field, ValidationError

from fingerauth.errors import InvalidRequestError
from fingerauth.models import ProbeRequest


class FingerprintRequest(BaseModel):
    """Verification request body."""
    studentId: str = Field(..., min_length=1)
    fingerprint: str  # base64 encoded fingerprint image

    def to_probe(self) -> ProbeRequest:
        return ProbeRequest.create(self.studentId, self.fingerprint)


def parse_request_body(body: Optional[Union[str, bytes]]) -> ProbeRequest:
    """Parse a JSON request body into a ProbeRequest.

    Raises:
        InvalidRequestError: Missing body, invalid JSON or missing/mistyped fields
    """
    if body is None or body in ("", b""):
        raise InvalidRequestError("Missing request body")

    try:
        request = FingerprintRequest.model_validate_json(body)
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "body" for err in e.errors()})
        raise InvalidRequestError(f"Invalid request body: {', '.join(fields)}") from e

    return request.to_probe()
