from mandelscape.raymarch.config import Hit, ImageMarchResult, MarchResult, Miss, Ray, TraceParams
from mandelscape.raymarch.marcher import ImageMarcher, SphereTracer, is_shadowed, shadow_mask

__all__ = [
    "Hit",
    "ImageMarchResult",
    "ImageMarcher",
    "MarchResult",
    "Miss",
    "Ray",
    "SphereTracer",
    "TraceParams",
    "is_shadowed",
    "shadow_mask",
]
