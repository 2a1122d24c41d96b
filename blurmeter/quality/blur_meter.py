from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, fields
from typing import Any, Mapping, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from blurmeter.quality.blur_score import (
    DEFAULT_THRESHOLD_MAX,
    DEFAULT_THRESHOLD_MIN,
    laplacian_response,
    laplacian_statistics,
    rgba_to_luminance,
    score_from_variance,
)
from blurmeter.quality.errors import InvalidBufferLength, InvalidCalibration, InvalidDimensions

logger = logging.getLogger(__name__)

# Smallest side that leaves a non-empty interior for the 3x3 stencil.
MIN_SIDE = 3

PixelBuffer = Union[bytes, bytearray, memoryview, Sequence[int], NDArray[np.generic]]

_OPTION_ALIASES = {
    "threshold_min": "threshold_min",
    "threshold_max": "threshold_max",
    "thresholdMin": "threshold_min",
    "thresholdMax": "threshold_max",
}


@dataclass(frozen=True)
class BlurMeterConfig:
    """Calibration for mapping Laplacian variance to a 1..10 score.

    `threshold_min` is the variance that maps to score 1 ("very blurry"),
    `threshold_max` the variance that maps to score 10 ("very sharp").
    Values outside the range saturate.
    """

    threshold_min: float = DEFAULT_THRESHOLD_MIN
    threshold_max: float = DEFAULT_THRESHOLD_MAX

    def validate(self) -> "BlurMeterConfig":
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
                raise InvalidCalibration(f"{f.name} must be a number, got {value!r}")
            if not math.isfinite(float(value)):
                raise InvalidCalibration(f"{f.name} must be finite, got {value!r}")
        if float(self.threshold_max) == float(self.threshold_min):
            raise InvalidCalibration(
                f"threshold_max must differ from threshold_min (both are {self.threshold_min})"
            )
        return self

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "BlurMeterConfig":
        kwargs: dict[str, Any] = {}
        for key, value in options.items():
            name = _OPTION_ALIASES.get(key)
            if name is None:
                raise InvalidCalibration(
                    f"Unknown option {key!r}; expected one of {sorted(_OPTION_ALIASES)}"
                )
            if name in kwargs:
                raise InvalidCalibration(f"Option {name!r} given more than once")
            if value is not None:
                kwargs[name] = value
        return cls(**kwargs)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SharpnessResult:
    score: int
    variance: float

    def as_dict(self) -> dict[str, Any]:
        return {"score": self.score, "variance": self.variance}


ConfigLike = Union[BlurMeterConfig, Mapping[str, Any], None]


def resolve_config(options: ConfigLike = None) -> BlurMeterConfig:
    if options is None:
        cfg = BlurMeterConfig()
    elif isinstance(options, BlurMeterConfig):
        cfg = options
    elif isinstance(options, Mapping):
        cfg = BlurMeterConfig.from_mapping(options)
    else:
        raise InvalidCalibration(
            f"options must be a BlurMeterConfig or a mapping, got {type(options).__name__}"
        )
    return cfg.validate()


def _check_side(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidDimensions(f"{name} must be an integer, got {value!r}")
    value = int(value)
    if value <= 0:
        raise InvalidDimensions(f"{name} must be positive, got {value}")
    if value < MIN_SIDE:
        raise InvalidDimensions(
            f"{name} must be >= {MIN_SIDE} to leave interior pixels for the Laplacian, got {value}"
        )
    return value


def _as_flat_pixels(pixels: PixelBuffer) -> NDArray[np.generic]:
    if isinstance(pixels, memoryview) and pixels.itemsize != 1:
        # wider formats (e.g. array("i")) hold one value per item, not per byte
        return np.asarray(pixels).reshape(-1)
    if isinstance(pixels, (bytes, bytearray, memoryview)):
        return np.frombuffer(pixels, dtype=np.uint8)
    return np.asarray(pixels).reshape(-1)


def evaluate_sharpness(
    pixels: PixelBuffer,
    width: int,
    height: int,
    options: ConfigLike = None,
) -> SharpnessResult:
    """Score the sharpness of an RGBA frame from the variance of its Laplacian.

    Args:
      pixels: row-major RGBA bytes, exactly width * height * 4 values.
      width, height: grid size, each at least 3.
      options: BlurMeterConfig, or a mapping with threshold_min/threshold_max.

    Returns:
      SharpnessResult with an integer score in [1, 10] and the raw variance.

    Raises:
      InvalidDimensions, InvalidBufferLength, InvalidCalibration, checked in
      that order before any pixel is read.
    """
    width = _check_side("width", width)
    height = _check_side("height", height)

    flat = _as_flat_pixels(pixels)
    expected = width * height * 4
    if flat.size != expected:
        raise InvalidBufferLength(
            f"Expected {expected} values for a {width}x{height} RGBA frame, got {flat.size}"
        )

    cfg = resolve_config(options)

    gray = rgba_to_luminance(flat, width, height)
    mean, variance = laplacian_statistics(laplacian_response(gray))
    score = score_from_variance(variance, float(cfg.threshold_min), float(cfg.threshold_max))

    logger.debug(
        "sharpness %dx%d: laplacian mean=%.4f variance=%.4f score=%d",
        width,
        height,
        mean,
        variance,
        score,
    )
    return SharpnessResult(score=score, variance=float(variance))
