"""
Pytest configuration and fixtures
"""
import base64
import os
import tempfile

import cv2
import numpy as np
import pytest

# Webserver config creates its data/log directories on import
os.environ.setdefault("FINGERAUTH_DATA_DIR", tempfile.mkdtemp(prefix="fingerauth-test-"))
os.environ.setdefault("FINGERAUTH_RECORD_STORE", "sqlite")
os.environ.setdefault("FINGERAUTH_VERBOSE", "0")

from fingerauth.decision import VerificationDecisionEngine
from fingerauth.errors import ComparisonError, TemplateBuildError
from fingerauth.models import EnrollmentRecord, ProbeRequest
from fingerauth.record_store import InMemoryRecordStore
from fingerauth.template_codec import TemplateCodec


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


class FakeTemplate:
    def __init__(self, raw: bytes, dpi: float):
        self.raw = raw
        self.dpi = dpi


class FakeMatchingEngine:
    """Matching engine double.

    Templates wrap the raw bytes; score(reference, probe) returns the score
    scripted for the reference's raw bytes. Every call is recorded.
    """

    def __init__(self, scores=None, reject=(), fail_on=()):
        self.scores = dict(scores or {})
        self.reject = set(reject)
        self.fail_on = set(fail_on)
        self.created = []
        self.calls = []

    def create_template(self, raw_image, dpi):
        self.created.append(raw_image)
        if raw_image in self.reject:
            raise TemplateBuildError("Insufficient fingerprint features")
        return FakeTemplate(raw_image, dpi)

    def score(self, reference, probe):
        self.calls.append((reference.raw, probe.raw))
        if reference.raw in self.fail_on:
            raise ComparisonError("matcher crashed")
        return self.scores.get(reference.raw, 0.0)


class SpyRecordStore(InMemoryRecordStore):
    def __init__(self, records=None):
        super().__init__(records)
        self.lookups = []

    def lookup(self, subject_id):
        self.lookups.append(subject_id)
        return super().lookup(subject_id)


PROBE = b"probe-image"


def reference_images(scores):
    """{label: score} -> ({label: base64}, {raw: score})"""
    images = {}
    by_raw = {}
    for label, score in scores.items():
        raw = f"ref-{label}".encode()
        images[label] = b64(raw)
        by_raw[raw] = score
    return images, by_raw


@pytest.fixture
def probe():
    return ProbeRequest.create("s1", b64(PROBE))


@pytest.fixture
def make_engine():
    """Build (decision_engine, matching_engine, store) for {label: score} references of s1."""
    def _make(scores=None, reject=(), fail_on=(), records=None, executor=None):
        scores = {"a": 50.0, "b": 50.0, "c": 50.0} if scores is None else scores
        images, by_raw = reference_images(scores)
        matcher = FakeMatchingEngine(by_raw, reject=reject, fail_on=fail_on)
        store = SpyRecordStore({"s1": images} if records is None else records)
        engine = VerificationDecisionEngine(TemplateCodec(matcher), record_store=store, executor=executor)
        return engine, matcher, store
    return _make


@pytest.fixture
def make_record():
    def _make(scores, subject_id="s1"):
        images, _ = reference_images(scores)
        return EnrollmentRecord.from_mapping(subject_id, images)
    return _make


def synthetic_fingerprint(seed: int = 7, size: int = 300) -> bytes:
    """PNG of blurred noise: enough texture for ORB keypoints."""
    rng = np.random.default_rng(seed)
    noise = rng.integers(0, 256, size=(size, size)).astype(np.uint8)
    blurred = cv2.GaussianBlur(noise, (0, 0), 2.0)
    stretched = cv2.normalize(blurred, None, 0, 255, cv2.NORM_MINMAX)
    ok, buffer = cv2.imencode(".png", stretched)
    assert ok
    return buffer.tobytes()


def blank_image(size: int = 300) -> bytes:
    ok, buffer = cv2.imencode(".png", np.full((size, size), 200, dtype=np.uint8))
    assert ok
    return buffer.tobytes()


@pytest.fixture
def fingerprint_png():
    return synthetic_fingerprint()
