"""Template codec: transport-encoded image -> raw bytes -> template

Images travel as base64 text (JSON request bodies, DynamoDB string
attributes, SQLite text columns). The codec strips that encoding and hands
the raw image bytes to the matching engine at the template resolution.
"""

from __future__ import annotations
import base64
import binascii
from typing import Union

from fingerauth.config import TEMPLATE_DPI
from fingerauth.errors import DecodeError, TemplateBuildError
from fingerauth.matching import MatchingEngine


class TemplateCodec:
    """Decodes base64 images and builds templates through a matching engine.

    Attributes:
        engine: MatchingEngine that owns template creation
        dpi: Scan resolution passed to the engine
    """

    def __init__(self, engine: MatchingEngine, dpi: float = TEMPLATE_DPI) -> None:
        self.engine = engine
        self.dpi = dpi

    @staticmethod
    def decode(encoded: Union[str, bytes]) -> bytes:
        """Decode strict base64 into raw image bytes.

        Raises:
            DecodeError: Empty input, characters outside the base64
                alphabet or bad padding
        """
        try:
            raw = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise DecodeError(f"Invalid base64 image data: {e}") from e

        if not raw:
            raise DecodeError("Empty image data")

        return raw

    def build_template(self, raw_image: bytes, dpi: float = None) -> object:
        """Ask the engine for a template.

        Raises:
            TemplateBuildError: The engine rejected the image
        """
        try:
            return self.engine.create_template(raw_image, self.dpi if dpi is None else dpi)
        except TemplateBuildError:
            raise
        except Exception as e:
            raise TemplateBuildError(f"Template creation failed: {e}") from e

    def template_from_encoded(self, encoded: Union[str, bytes], dpi: float = None) -> object:
        """Decode then build."""
        return self.build_template(self.decode(encoded), dpi)
