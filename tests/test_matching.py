"""
Tests for the ORB matching engine and its preprocessing
"""
import numpy as np
import pytest

from conftest import b64, blank_image, synthetic_fingerprint
from fingerauth.config import SIMILARITY_THRESHOLD
from fingerauth.decision import VerificationDecisionEngine
from fingerauth.errors import TemplateBuildError
from fingerauth.matching import OrbMatchingEngine
from fingerauth.models import FingerprintTemplate, ProbeRequest
from fingerauth.preprocessing import block_variance_segmentation, normalise_image, rescale_to_dpi
from fingerauth.record_store import InMemoryRecordStore
from fingerauth.template_codec import TemplateCodec


@pytest.fixture(scope="module")
def orb():
    return OrbMatchingEngine()


class TestPreprocessing:
    def test_rescale_doubles_low_dpi_scan(self):
        image = np.zeros((100, 80), dtype=np.float32)
        assert rescale_to_dpi(image, 250, 500).shape == (200, 160)

    def test_rescale_rejects_tiny_images(self):
        with pytest.raises(ValueError):
            rescale_to_dpi(np.zeros((10, 10), dtype=np.float32), 500, 500)

    def test_normalise_keeps_flat_image_flat(self):
        out = normalise_image(np.full((64, 64), 180, dtype=np.float32))
        assert np.allclose(out, 100.0)

    def test_segmentation_mask_is_binary(self):
        rng = np.random.default_rng(0)
        image = np.full((64, 64), 100, dtype=np.float32)
        image[:32, :32] = rng.integers(0, 256, size=(32, 32))
        mask = block_variance_segmentation(image)
        assert set(np.unique(mask)) <= {0, 255}
        assert mask[:16, :16].all()
        assert not mask[48:, 48:].any()


class TestOrbMatchingEngine:
    def test_template_from_textured_image(self, orb, fingerprint_png):
        template = orb.create_template(fingerprint_png, 500)
        assert isinstance(template, FingerprintTemplate)
        assert template.keypoint_count >= orb.min_keypoints
        assert template.shape == (300, 300)

    def test_template_rescaled_to_500_dpi(self, orb, fingerprint_png):
        assert orb.create_template(fingerprint_png, 250).shape == (600, 600)

    def test_blank_image_is_rejected(self, orb):
        with pytest.raises(TemplateBuildError, match="Insufficient"):
            orb.create_template(blank_image(), 500)

    def test_non_image_is_rejected(self, orb):
        with pytest.raises(TemplateBuildError, match="Unreadable"):
            orb.create_template(b"definitely not an image", 500)

    def test_same_image_scores_above_other_image(self, orb, fingerprint_png):
        reference = orb.create_template(fingerprint_png, 500)
        same = orb.create_template(fingerprint_png, 500)
        other = orb.create_template(synthetic_fingerprint(seed=99), 500)

        genuine = orb.score(reference, same)
        impostor = orb.score(reference, other)

        assert genuine >= SIMILARITY_THRESHOLD
        assert impostor < genuine

    def test_end_to_end_with_real_engine(self, orb, fingerprint_png):
        encoded = b64(fingerprint_png)
        store = InMemoryRecordStore({"s1": {"f1": encoded, "f2": encoded, "f3": encoded}})
        engine = VerificationDecisionEngine(TemplateCodec(orb), record_store=store)

        outcome = engine.verify_subject(ProbeRequest.create("s1", encoded))

        assert outcome.verified is True
        assert len(outcome.scores) == 3
        assert outcome.scores[0] == outcome.scores[1] == outcome.scores[2]
