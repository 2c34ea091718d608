from mandelscape.api import estimate_normal, evaluate_distance, extract_surface, shade, trace_ray
from mandelscape.errors import ExtractionCancelled, InvalidConfigError, MandelscapeError
from mandelscape.mesh import BoundingCube, ExtractParams, Mesh
from mandelscape.raymarch import Hit, Miss, Ray, TraceParams
from mandelscape.shading import Color, Light, Material
from mandelscape.shape import DEResult, Mandelbulb, ShapeParams, Sphere

__all__ = [
    "BoundingCube",
    "Color",
    "DEResult",
    "ExtractParams",
    "ExtractionCancelled",
    "Hit",
    "InvalidConfigError",
    "Light",
    "MandelscapeError",
    "Mandelbulb",
    "Material",
    "Mesh",
    "Miss",
    "Ray",
    "ShapeParams",
    "Sphere",
    "TraceParams",
    "estimate_normal",
    "evaluate_distance",
    "extract_surface",
    "shade",
    "trace_ray",
]
