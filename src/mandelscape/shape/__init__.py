from mandelscape.shape.base import DEBatch, DEResult, ShapeParams
from mandelscape.shape.mandelbulb import Mandelbulb
from mandelscape.shape.sphere import Sphere

__all__ = [
    "DEBatch",
    "DEResult",
    "Mandelbulb",
    "ShapeParams",
    "Sphere",
]
