from __future__ import annotations


class BlurMeterError(ValueError):
    """Base class for rejected sharpness-evaluation inputs."""


class InvalidDimensions(BlurMeterError):
    """Width/height non-positive, non-integer, or below 3 (empty interior)."""


class InvalidBufferLength(BlurMeterError):
    """Pixel buffer length differs from width * height * 4."""


class InvalidCalibration(BlurMeterError):
    """Thresholds are equal, non-finite, or the options record is malformed."""
