"""
Search space decomposition: point grid over the polygon, price pivoting
per cell, and the geometry used when a cell has to be densified.
"""
import logging
import math
from typing import List, Tuple

from .config import FinderConfig
from .models import Polygon, PriceBand, SearchCell, SearchTask

logger = logging.getLogger(__name__)

KM_PER_DEG_LAT = 111.0


def km_to_deg(km: float, lat: float) -> Tuple[float, float]:
    """Convert a distance to (lat delta, lon delta) degrees at the given latitude."""
    lat_delta = km / KM_PER_DEG_LAT
    cos_lat = max(math.cos(math.radians(lat)), 1e-6)
    lon_delta = km / (KM_PER_DEG_LAT * cos_lat)
    return lat_delta, lon_delta


def cell_bbox(cell: SearchCell) -> Tuple[float, float, float, float]:
    """Return (ne_lat, ne_lng, sw_lat, sw_lng) of the box enclosing the cell."""
    lat_delta, lon_delta = km_to_deg(cell.radius_km, cell.lat)
    return (cell.lat + lat_delta, cell.lon + lon_delta,
            cell.lat - lat_delta, cell.lon - lon_delta)


def price_bands(ceiling: float, buckets: int, floor: float = 0.0) -> List[PriceBand]:
    """
    Price pivoting: cut [floor, ceiling] into equal-width bands.

    Consecutive bands share one boundary and the last band ends exactly at
    the ceiling.
    """
    span = ceiling - floor
    edges = [floor + span * i / buckets for i in range(buckets)] + [ceiling]
    return [PriceBand(edges[i], edges[i + 1]) for i in range(buckets)]


def point_grid(polygon: Polygon, spacing_km: float) -> List[Tuple[float, float]]:
    """Grid points at spacing_km across the polygon's bbox, masked by the polygon."""
    if polygon.area() <= 0:
        return []

    south, west, north, east = polygon.bbox()
    lat_step, lon_step = km_to_deg(spacing_km, (south + north) / 2)

    rows = int((north - south) // lat_step)
    cols = int((east - west) // lon_step)
    # Centre the grid inside the bbox
    lat_off = ((north - south) - rows * lat_step) / 2
    lon_off = ((east - west) - cols * lon_step) / 2

    points = []
    for i in range(rows + 1):
        lat = south + lat_off + i * lat_step
        for j in range(cols + 1):
            lon = west + lon_off + j * lon_step
            if polygon.contains(lat, lon):
                points.append((lat, lon))
    return points


class GridPlanner:
    def __init__(self, config: FinderConfig):
        self.config = config

    def plan(self, polygon: Polygon) -> List[SearchTask]:
        radius = self.config.cell_radius_km
        cells = [SearchCell(lat, lon, radius, 0) for lat, lon in point_grid(polygon, radius)]
        tasks = [task for cell in cells for task in self.tasks_for(cell)]
        logger.info(
            f">>> Created search strategy with {len(cells)} initial areas "
            f"({radius}km radius each), {len(tasks)} searches"
        )
        return tasks

    def bands_for(self, cell: SearchCell) -> List[PriceBand]:
        return price_bands(self.config.price_ceiling, self.config.price_buckets)

    def tasks_for(self, cell: SearchCell) -> List[SearchTask]:
        return [SearchTask(cell, band) for band in self.bands_for(cell)]

    def can_subdivide(self, cell: SearchCell) -> bool:
        return cell.depth < self.config.max_depth and cell.radius_km > self.config.min_radius_km

    def subdivide(self, cell: SearchCell) -> List[SearchCell]:
        """Four children at half radius, offset diagonally from the parent centre."""
        if not self.can_subdivide(cell):
            return []
        lat_delta, lon_delta = km_to_deg(cell.radius_km, cell.lat)
        sub_radius = cell.radius_km / 2
        return [
            SearchCell(cell.lat + dlat, cell.lon + dlon, sub_radius, cell.depth + 1)
            for dlat in (lat_delta / 2, -lat_delta / 2)
            for dlon in (lon_delta / 2, -lon_delta / 2)
        ]

    def can_split(self, band: PriceBand) -> bool:
        return band.width > self.config.min_band_width
