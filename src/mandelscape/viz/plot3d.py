from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import matplotlib as mpl
import numpy as np
from matplotlib.animation import FuncAnimation

# IMPORTANT: set backend before importing pyplot
_BACKEND = os.environ.get("MANDELSCAPE_MPL_BACKEND", "").strip()
if _BACKEND:
    mpl.use(_BACKEND, force=True)

import matplotlib.pyplot as plt  # noqa: E402

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mandelscape.mesh.model import Mesh


@dataclass(frozen=True, slots=True)
class RenderFrame:
    """Single frame of the side-by-side comparison.

    Attributes
    ----------
    raymarch:
        Raymarched RGB image (H, W, 3) in [0, 1].
    raster:
        Rasterized RGB image of the extracted mesh, same size.
    cam_pos:
        Camera position in world coordinates (3,).
    label:
        Free text shown above the images.

    """

    raymarch: np.ndarray
    raster: np.ndarray
    cam_pos: np.ndarray
    label: str = ""


class RenderSplitPlotter:
    """Plot the raymarched view next to the rasterized mesh view."""

    def __init__(self, *, show_diff: bool = False) -> None:
        """Initialize the plot."""
        self.show_diff = show_diff
        n = 3 if show_diff else 2
        self.fig, axes = plt.subplots(1, n, figsize=(5 * n, 5))
        self.ax_march, self.ax_raster = axes[0], axes[1]
        self.ax_diff = axes[2] if show_diff else None

        for ax, title in zip(axes, ("Raymarched", "Rasterized mesh", "|difference|"), strict=False):
            ax.axis("off")
            ax.set_title(title)

        self.im_march: Any = None
        self.im_raster: Any = None
        self.im_diff: Any = None

    def draw(self, frame: RenderFrame) -> None:
        self.im_march = self.ax_march.imshow(frame.raymarch)
        self.im_raster = self.ax_raster.imshow(frame.raster)
        if self.ax_diff is not None:
            diff = np.abs(frame.raymarch.astype(np.float64) - frame.raster.astype(np.float64)).mean(axis=-1)
            self.im_diff = self.ax_diff.imshow(diff, cmap="magma", vmin=0.0, vmax=1.0)
        if frame.label:
            self.fig.suptitle(frame.label)

    def animate(self, frames: Sequence[RenderFrame], interval_ms: int = 120) -> FuncAnimation:
        if not frames:
            msg = "frames is empty"
            raise ValueError(msg)

        self.draw(frames[0])

        def _update(i: int) -> list[Any]:
            f = frames[i]
            self.im_march.set_data(f.raymarch)
            self.im_raster.set_data(f.raster)
            artists = [self.im_march, self.im_raster]
            if self.im_diff is not None:
                diff = np.abs(f.raymarch.astype(np.float64) - f.raster.astype(np.float64)).mean(axis=-1)
                self.im_diff.set_data(diff)
                artists.append(self.im_diff)
            if f.label:
                self.fig.suptitle(f.label)
            return artists

        return FuncAnimation(
            self.fig,
            _update,
            frames=len(frames),
            interval=interval_ms,
            repeat=True,
            blit=False,
        )

    @staticmethod
    def show() -> None:
        plt.tight_layout()
        plt.show()


def plot_distance_histogram(mesh: Mesh, bins: int = 50) -> Any:
    """Histogram of per-vertex distance estimates, a quick look at mesh quality."""
    fig, ax = plt.subplots(1, 1, figsize=(6, 4))
    ax.hist(mesh.distances, bins=bins)
    ax.set_xlabel("distance estimate at vertex")
    ax.set_ylabel("vertices")
    ax.set_title(f"{mesh.n_vertices} vertices, {mesh.n_triangles} triangles")
    return fig
