"""
Blob clustering and shape filtering.

Matching pixels form an undirected graph in which two pixels are adjacent
when their Euclidean distance is at most the cluster radius. Connected
components are found by queue flood fill over a uniform grid whose cell
diagonal is at most the radius: a cell is claimed whole, and two cells join
when any pair of their pixels is within the radius. Membership is identical
to the all-pairs scan.
"""

from __future__ import annotations

import math
from collections import defaultdict, deque
from typing import Dict, Iterable, List, Sequence, Set, Tuple

import cv2
import numpy as np

from models.blob import BlobCandidate, PixelCoord
from models.config import CIRCULARITY_CONTOUR, CIRCULARITY_EDGE, CIRCULARITY_METHODS


Cell = Tuple[int, int]


def _unique_pixels(pixels: Iterable[Sequence[int]]) -> List[PixelCoord]:
    """Deduplicate while keeping first-seen order."""
    seen: Dict[PixelCoord, None] = {}
    for p in pixels:
        seen.setdefault(PixelCoord(int(p[0]), int(p[1])), None)
    return list(seen)


def _cell_size(radius: float, radius_sq: float) -> float:
    """Side of a grid cell whose diagonal does not exceed the radius."""
    size = math.sqrt(radius_sq / 2.0)
    while 2.0 * size * size > radius_sq:
        size = math.nextafter(size, 0.0)
    return size


def _cells_touch(a: np.ndarray, b: np.ndarray, radius_sq: float) -> bool:
    """True when some pixel of ``a`` lies within the radius of some pixel of ``b``."""
    diff = a[:, None, :] - b[None, :, :]
    return bool(((diff * diff).sum(axis=2) <= radius_sq).any())


def find_components(pixels: Iterable[Sequence[int]], radius: float) -> List[List[PixelCoord]]:
    """
    Group pixels into connected components under the radius adjacency.

    Args:
        pixels: (x, y) integer coordinates; an (N, 2) array is accepted.
        radius: Maximum distance between neighbouring pixels.

    Returns:
        List of components, each a list of member pixels, ordered by the
        first-seen pixel of each component.
    """
    points = _unique_pixels(pixels)
    if not points:
        return []

    radius_sq = float(radius) * float(radius)
    if radius_sq <= 0:
        return [[p] for p in points]

    cell_size = _cell_size(radius, radius_sq)
    reach = int(math.ceil(radius / cell_size))

    cells: Dict[Cell, List[PixelCoord]] = defaultdict(list)
    for p in points:
        cells[(int(p.x // cell_size), int(p.y // cell_size))].append(p)
    arrays: Dict[Cell, np.ndarray] = {}

    def coords(cell: Cell) -> np.ndarray:
        if cell not in arrays:
            arrays[cell] = np.asarray(cells[cell], dtype=np.int64)
        return arrays[cell]

    # Every pixel of a cell is within the radius of every other, so cells
    # are claimed whole and the flood fill runs over cells.
    claimed: Set[Cell] = set()
    components: List[List[PixelCoord]] = []

    for start in points:
        start_cell = (int(start.x // cell_size), int(start.y // cell_size))
        if start_cell in claimed:
            continue
        claimed.add(start_cell)
        component: List[PixelCoord] = []
        queue = deque([start_cell])

        while queue:
            current = queue.popleft()
            component.extend(cells[current])
            cx, cy = current
            for gx in range(cx - reach, cx + reach + 1):
                for gy in range(cy - reach, cy + reach + 1):
                    other = (gx, gy)
                    if other in claimed or other not in cells:
                        continue
                    if _cells_touch(coords(current), coords(other), radius_sq):
                        claimed.add(other)
                        queue.append(other)

        components.append(component)

    return components


def boundary_edge_count(cluster: Sequence[PixelCoord], step: int = 1) -> int:
    """
    Sum over member pixels of 4-connected neighbours (at ``step`` spacing)
    that are not members.
    """
    members = {(p[0], p[1]) for p in cluster}
    edges = 0
    for x, y in members:
        for nx, ny in ((x + step, y), (x - step, y), (x, y + step), (x, y - step)):
            if (nx, ny) not in members:
                edges += 1
    return edges


def _contour_measurements(cluster: Sequence[PixelCoord], step: int) -> Tuple[float, float]:
    """Area and perimeter of the cluster rasterised on its sampling lattice."""
    pts = np.asarray([(p[0], p[1]) for p in cluster], dtype=np.int64)
    lattice = (pts - pts.min(axis=0)) // step
    width = int(lattice[:, 0].max()) + 3
    height = int(lattice[:, 1].max()) + 3

    mask = np.zeros((height, width), dtype=np.uint8)
    mask[lattice[:, 1] + 1, lattice[:, 0] + 1] = 255

    contours, hierarchy = cv2.findContours(mask, cv2.RETR_CCOMP, cv2.CHAIN_APPROX_NONE)
    if hierarchy is None:
        return 0.0, 0.0

    area = 0.0
    perimeter = 0.0
    for contour, (_, _, _, parent) in zip(contours, hierarchy[0]):
        contour_area = cv2.contourArea(contour)
        # Top-level contours are outer borders, their children are holes
        area += contour_area if parent < 0 else -contour_area
        perimeter += cv2.arcLength(contour, True)
    return max(area, 0.0), perimeter


def estimate_circularity(
    cluster: Sequence[PixelCoord],
    step: int = 1,
    method: str = CIRCULARITY_CONTOUR,
) -> float:
    """
    Circularity ``4*pi*area / perimeter^2``; about 1.0 for a filled disk.

    Args:
        cluster: Member pixels.
        step: Sampling stride the pixels were collected at.
        method: "contour" measures the rasterised outline with OpenCV;
                "edge" counts 4-connected boundary edges against pixel count.

    Returns:
        0.0 for clusters under 3 pixels or with zero perimeter.
    """
    if method not in CIRCULARITY_METHODS:
        raise ValueError(f"Unknown circularity method: {method}")
    if len(cluster) < 3:
        return 0.0

    if method == CIRCULARITY_EDGE:
        area = float(len(cluster))
        perimeter = float(boundary_edge_count(cluster, step))
    else:
        area, perimeter = _contour_measurements(cluster, step)

    if perimeter == 0:
        return 0.0
    return (4.0 * math.pi * area) / (perimeter * perimeter)


def cluster_pixels(
    pixels: Iterable[Sequence[int]],
    cluster_radius: float = 25.0,
    min_size: int = 10,
    circularity_threshold: float = 0.6,
    step: int = 1,
    method: str = CIRCULARITY_CONTOUR,
) -> List[BlobCandidate]:
    """
    Cluster matching pixels and keep the round, large-enough components.

    The order of the returned blobs carries no meaning.
    """
    blobs: List[BlobCandidate] = []
    for component in find_components(pixels, cluster_radius):
        if len(component) < min_size:
            continue
        circularity = estimate_circularity(component, step=step, method=method)
        if circularity <= circularity_threshold:
            continue
        coords = np.asarray(component, dtype=np.float64)
        cx, cy = coords.mean(axis=0)
        blobs.append(BlobCandidate(x=float(cx), y=float(cy), size=len(component), circularity=circularity))
    return blobs


class BlobClusterer:
    """Clusters matching pixels with a fixed set of filter parameters."""

    def __init__(
        self,
        cluster_radius: float = 25.0,
        min_size: int = 10,
        circularity_threshold: float = 0.6,
        step: int = 1,
        method: str = CIRCULARITY_CONTOUR,
    ):
        self.cluster_radius = cluster_radius
        self.min_size = min_size
        self.circularity_threshold = circularity_threshold
        self.step = step
        self.method = method

    def cluster(self, pixels: Iterable[Sequence[int]]) -> List[BlobCandidate]:
        return cluster_pixels(
            pixels,
            cluster_radius=self.cluster_radius,
            min_size=self.min_size,
            circularity_threshold=self.circularity_threshold,
            step=self.step,
            method=self.method,
        )
