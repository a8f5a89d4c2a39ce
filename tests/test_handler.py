"""
Tests for request parsing and the Lambda entry point
"""
import json

import pytest

from conftest import PROBE, b64
from fingerauth import handler
from fingerauth.errors import InvalidRequestError
from fingerauth.transport import parse_request_body


class FakeLambdaLogger:
    def __init__(self):
        self.lines = []

    def log(self, message):
        self.lines.append(message)


class FakeContext:
    def __init__(self):
        self.logger = FakeLambdaLogger()


def request_body(student_id="s1", fingerprint=None):
    return json.dumps({"studentId": student_id, "fingerprint": b64(PROBE) if fingerprint is None else fingerprint})


class TestParseRequestBody:
    def test_valid_body(self):
        probe = parse_request_body(request_body())
        assert probe.subject_id == "s1"
        assert probe.encoded_image == b64(PROBE).encode()

    @pytest.mark.parametrize("body", [None, "", b""])
    def test_missing_body(self, body):
        with pytest.raises(InvalidRequestError, match="Missing request body"):
            parse_request_body(body)

    def test_invalid_json(self):
        with pytest.raises(InvalidRequestError, match="Invalid request body"):
            parse_request_body("{not json")

    def test_missing_field_is_named(self):
        with pytest.raises(InvalidRequestError, match="fingerprint"):
            parse_request_body(json.dumps({"studentId": "s1"}))

    def test_empty_student_id(self):
        with pytest.raises(InvalidRequestError, match="studentId"):
            parse_request_body(request_body(student_id=""))


class TestHandleEvent:
    def test_accepted(self, make_engine):
        engine, _, _ = make_engine()
        context = FakeContext()

        envelope = handler.handle_event({"body": request_body()}, engine, context)

        assert envelope["statusCode"] == 200
        assert json.loads(envelope["body"])["verified"] is True
        assert context.logger.lines == []

    def test_failure_is_logged_through_context(self, make_engine):
        engine, _, _ = make_engine()
        context = FakeContext()

        envelope = handler.handle_event({"body": request_body(student_id="ghost")}, engine, context)

        assert envelope["statusCode"] == 400
        assert json.loads(envelope["body"]) == {"error": "Student fingerprint data not found"}
        assert context.logger.lines == ["Error: Student fingerprint data not found"]

    def test_missing_body(self, make_engine):
        engine, matcher, store = make_engine()

        envelope = handler.handle_event({}, engine)

        assert envelope["statusCode"] == 400
        assert json.loads(envelope["body"]) == {"error": "Missing request body"}
        assert store.lookups == []

    def test_bad_fingerprint(self, make_engine):
        engine, _, _ = make_engine()
        envelope = handler.handle_event({"body": request_body(fingerprint="***")}, engine)
        assert json.loads(envelope["body"]) == {"error": "Invalid fingerprint data"}

    def test_lambda_handler_uses_default_engine(self, make_engine, monkeypatch):
        engine, _, _ = make_engine({"a": 10.0, "b": 10.0, "c": 10.0})
        monkeypatch.setattr(handler, "default_engine", lambda: engine)

        envelope = handler.lambda_handler({"body": request_body()}, FakeContext())

        assert envelope["statusCode"] == 400
        assert "below threshold" in json.loads(envelope["body"])["error"]
