from mandelscape.mesh.config import BoundingCube, ExtractParams
from mandelscape.mesh.extract import SurfaceExtractor, extract_mesh
from mandelscape.mesh.model import Cell, CellKind, ExtractStats, Mesh
from mandelscape.mesh.octree import classify_cell

__all__ = [
    "BoundingCube",
    "Cell",
    "CellKind",
    "ExtractParams",
    "ExtractStats",
    "Mesh",
    "SurfaceExtractor",
    "classify_cell",
    "extract_mesh",
]
