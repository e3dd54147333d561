"""Enhancement variants used to build recognition candidates.

Each variant is a fixed recipe; parameters grow more aggressive from
``STANDARD`` through ``HIGH`` to ``MICRO`` (tuned for very small text).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class Variant(str, Enum):
    STANDARD = "standard"
    HIGH = "high"
    MICRO = "micro"


@dataclass(frozen=True)
class VariantParams:
    """Rendering parameters for one variant.

    ``upscale_steps`` maps an exclusive upper bound on the longest side to the
    scale factor applied below it; the first matching step wins.
    """

    upscale_steps: Tuple[Tuple[int, float], ...]
    contrast: float
    brightness: float
    exposure_ev: float
    gamma: float
    noise_level: float
    noise_sharpness: float
    morphology_radius: float
    unsharp_radius: float
    unsharp_intensity: float
    highlight_amount: float
    shadow_amount: float
    luminance_sharpness: float

    def upscale_factor(self, max_dim: int, limit: int) -> float:
        """Return the upscale factor for an image whose longest side is ``max_dim``."""
        if max_dim >= limit:
            return 1.0
        for bound, scale in self.upscale_steps:
            if max_dim < bound:
                return scale
        return 1.0


VARIANT_PARAMS: Dict[Variant, VariantParams] = {
    Variant.STANDARD: VariantParams(
        upscale_steps=(),
        contrast=1.2,
        brightness=0.0,
        exposure_ev=0.1,
        gamma=0.95,
        noise_level=0.0,
        noise_sharpness=0.0,
        morphology_radius=0.0,
        unsharp_radius=1.5,
        unsharp_intensity=0.4,
        highlight_amount=0.0,
        shadow_amount=0.0,
        luminance_sharpness=0.0,
    ),
    Variant.HIGH: VariantParams(
        upscale_steps=((700, 2.5), (1000, 2.0), (1400, 1.5)),
        contrast=1.5,
        brightness=0.05,
        exposure_ev=0.2,
        gamma=0.88,
        noise_level=0.02,
        noise_sharpness=0.6,
        morphology_radius=1.0,
        unsharp_radius=2.5,
        unsharp_intensity=0.6,
        highlight_amount=0.2,
        shadow_amount=0.6,
        luminance_sharpness=0.0,
    ),
    Variant.MICRO: VariantParams(
        upscale_steps=((600, 3.2), (900, 2.6), (1400, 2.0)),
        contrast=2.0,
        brightness=0.06,
        exposure_ev=0.25,
        gamma=0.85,
        noise_level=0.02,
        noise_sharpness=0.7,
        morphology_radius=0.8,
        unsharp_radius=2.0,
        unsharp_intensity=0.75,
        highlight_amount=0.15,
        shadow_amount=0.55,
        luminance_sharpness=0.7,
    ),
}

# Output channels are kept away from pure black/white.
CLAMP_MIN = 0.05
CLAMP_MAX = 0.95

__all__ = ["CLAMP_MAX", "CLAMP_MIN", "VARIANT_PARAMS", "Variant", "VariantParams"]
