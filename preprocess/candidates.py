"""Candidate generation: enhanced variants of the prepared capture.

The generator returns an ordered list of candidates; earlier ones are tried
first.  Dark captures (light text on a dark background) get their inverted
renderings first.  The unmodified prepared image is always the last candidate,
so the list is never empty.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np
from PIL import Image, ImageFilter

from engines.protocols import AccuracyMode

from .flows import CLAMP_MAX, CLAMP_MIN, VARIANT_PARAMS, Variant, VariantParams

logger = logging.getLogger(__name__)

DARK_LUMINANCE_THRESHOLD = 0.45
UPSCALE_LIMIT = 1400
ORIGINAL_LABEL = "original"

# Rec. 709 luma weights
_LUMA = np.array([0.2126, 0.7152, 0.0722], dtype=np.float32)


@dataclass(frozen=True)
class Candidate:
    """One rendering of the capture offered to the recognizer."""

    image: Image.Image
    label: str


def label_for(variant: Variant, invert: bool) -> str:
    return f"{variant.value}_inv" if invert else variant.value


def average_luminance(image: Image.Image) -> Optional[float]:
    """Mean Rec. 709 luminance in [0, 1], or ``None`` if it cannot be computed."""
    try:
        rgb = np.asarray(image.convert("RGB"), dtype=np.float32) / 255.0
    except (OSError, ValueError) as exc:
        logger.warning("Could not compute luminance: %s", exc)
        return None
    if rgb.size == 0:
        return None
    return float((rgb.reshape(-1, 3) @ _LUMA).mean())


def _to_image(arr: np.ndarray) -> Image.Image:
    return Image.fromarray((np.clip(arr, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8))


def _from_image(img: Image.Image) -> np.ndarray:
    return np.asarray(img, dtype=np.float32) / 255.0


def _apply_filter(arr: np.ndarray, flt: ImageFilter.Filter) -> np.ndarray:
    return _from_image(_to_image(arr).filter(flt))


# Stages operate on a 2-D float array in [0, 1] (values may leave the range
# until the final clamp).

def _color_controls(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return (arr - 0.5) * p.contrast + 0.5 + p.brightness


def _exposure(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return arr * (2.0 ** p.exposure_ev)


def _gamma(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return np.power(np.clip(arr, 0.0, None), p.gamma)


def _noise_reduction(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    # Only small deviations from the local median count as noise; edges stay.
    median = _apply_filter(arr, ImageFilter.MedianFilter(size=3))
    smoothed = np.where(np.abs(arr - median) <= p.noise_level, median, arr)
    if p.noise_sharpness > 0:
        smoothed = _apply_filter(
            smoothed, ImageFilter.UnsharpMask(radius=1, percent=int(p.noise_sharpness * 100), threshold=0)
        )
    return smoothed


def _morphology(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    size = 2 * int(np.ceil(p.morphology_radius)) + 1
    return _apply_filter(arr, ImageFilter.MaxFilter(size=size))


def _unsharp(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return _apply_filter(
        arr,
        ImageFilter.UnsharpMask(radius=p.unsharp_radius, percent=int(p.unsharp_intensity * 100), threshold=0),
    )


def _highlight_shadow(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    shadows = np.clip(1.0 - arr / 0.5, 0.0, 1.0)
    highlights = np.clip((arr - 0.5) / 0.5, 0.0, 1.0)
    lifted = arr + 0.25 * p.shadow_amount * shadows * (0.5 - arr)
    return lifted - 0.25 * (1.0 - p.highlight_amount) * highlights * (arr - 0.5)


def _luminance_sharpen(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return _apply_filter(
        arr, ImageFilter.UnsharpMask(radius=1.69, percent=int(p.luminance_sharpness * 100), threshold=0)
    )


def _clamp(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return np.clip(arr, CLAMP_MIN, CLAMP_MAX)


def _invert(arr: np.ndarray, p: VariantParams) -> np.ndarray:
    return 1.0 - arr


_Stage = Tuple[str, Callable[[np.ndarray, VariantParams], np.ndarray]]


def _stages(variant: Variant, invert: bool) -> List[_Stage]:
    enhanced = variant is not Variant.STANDARD
    stages: List[_Stage] = [
        ("color_controls", _color_controls),
        ("exposure", _exposure),
        ("gamma", _gamma),
    ]
    if enhanced:
        stages.append(("noise_reduction", _noise_reduction))
        stages.append(("morphology", _morphology))
    stages.append(("unsharp", _unsharp))
    if enhanced:
        stages.append(("highlight_shadow", _highlight_shadow))
    if variant is Variant.MICRO:
        stages.append(("luminance_sharpen", _luminance_sharpen))
    stages.append(("clamp", _clamp))
    if invert:
        stages.append(("invert", _invert))
    return stages


def _upscale(image: Image.Image, p: VariantParams, limit: int) -> Image.Image:
    scale = p.upscale_factor(max(image.size), limit)
    if scale <= 1.0:
        return image
    new_size = (max(1, round(image.width * scale)), max(1, round(image.height * scale)))
    return image.resize(new_size, Image.Resampling.LANCZOS)


def render_variant(
    image: Image.Image,
    variant: Variant,
    invert: bool,
    upscale_limit: int = UPSCALE_LIMIT,
) -> Optional[Image.Image]:
    """Render one enhanced grayscale variant of ``image``.

    Stages that fail are skipped.  Returns ``None`` only when the image cannot
    be turned into pixels at all.
    """
    params = VARIANT_PARAMS[variant]
    name = label_for(variant, invert)

    source = image
    if variant is not Variant.STANDARD:
        try:
            source = _upscale(image, params, upscale_limit)
        except (OSError, ValueError, MemoryError) as exc:
            logger.warning("Stage upscale failed for %s: %s", name, exc)

    # Desaturation: everything after works on luminance only.
    try:
        rgb = np.asarray(source.convert("RGB"), dtype=np.float32) / 255.0
        arr = rgb @ _LUMA
    except (OSError, ValueError, MemoryError) as exc:
        logger.warning("Rendering %s failed: %s", name, exc)
        return None

    for stage_name, stage in _stages(variant, invert):
        try:
            arr = stage(arr, params)
        except Exception as exc:
            logger.warning("Stage %s failed for %s: %s", stage_name, name, exc)

    try:
        return _to_image(arr)
    except (OSError, ValueError, MemoryError) as exc:
        logger.warning("Rendering %s failed: %s", name, exc)
        return None


def _append(candidates: List[Candidate], image: Optional[Image.Image], label: str) -> None:
    if image is not None:
        candidates.append(Candidate(image=image, label=label))


def generate(
    prepared: Image.Image,
    accuracy_mode: AccuracyMode,
    *,
    dark_threshold: float = DARK_LUMINANCE_THRESHOLD,
    upscale_limit: int = UPSCALE_LIMIT,
) -> Tuple[List[Candidate], Image.Image]:
    """Build the ordered candidate list and the image used for region detection.

    Args:
        prepared: Output of :func:`preprocess.prepare`
        accuracy_mode: ``HIGH`` adds Micro and High variants in both polarities
        dark_threshold: Average luminance below which inverted renderings go first

    Returns:
        Tuple of (candidates, detection_image)
    """
    luminance = average_luminance(prepared)
    prefer_inverted = luminance is not None and luminance < dark_threshold
    polarities = (True, False) if prefer_inverted else (False, True)

    def render(variant: Variant, invert: bool) -> Optional[Image.Image]:
        return render_variant(prepared, variant, invert, upscale_limit)

    candidates: List[Candidate] = []
    if accuracy_mode is AccuracyMode.HIGH:
        for invert in polarities:
            for variant in (Variant.MICRO, Variant.HIGH):
                _append(candidates, render(variant, invert), label_for(variant, invert))

    # The preferred-polarity standard rendering doubles as the detection image.
    detection_image: Optional[Image.Image] = None
    for invert in polarities:
        rendered = render(Variant.STANDARD, invert)
        if invert == prefer_inverted:
            detection_image = rendered
        _append(candidates, rendered, label_for(Variant.STANDARD, invert))

    candidates.append(Candidate(image=prepared, label=ORIGINAL_LABEL))

    logger.debug(
        "Generated candidates luminance=%s prefer_inverted=%s labels=%s",
        f"{luminance:.3f}" if luminance is not None else "n/a",
        prefer_inverted,
        ", ".join(c.label for c in candidates),
    )
    return candidates, detection_image if detection_image is not None else prepared


__all__ = [
    "Candidate",
    "DARK_LUMINANCE_THRESHOLD",
    "ORIGINAL_LABEL",
    "UPSCALE_LIMIT",
    "average_luminance",
    "generate",
    "label_for",
    "render_variant",
]
