from mandelscape.render.raster import rasterize_mesh
from mandelscape.render.raymarch import render_raymarch
from mandelscape.render.result import RenderResult

__all__ = ["RenderResult", "rasterize_mesh", "render_raymarch"]
