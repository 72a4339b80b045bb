from __future__ import annotations


class DocqaError(Exception):
    """Base class for failures raised while answering questions about uploads."""


class MalformedInput(DocqaError):
    """The bytes are empty or do not match the declared format."""


class ExtractionFailed(DocqaError):
    """A decoder rejected the content of a file."""


class OcrUnavailable(DocqaError):
    """An OCR strategy could not produce text. Never leaves the OCR chain."""


class SynthesisFailed(DocqaError):
    """The answering service call failed; aborts the whole request."""
