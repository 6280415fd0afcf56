"""
Data models for the host finder.
"""
import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

LatLon = Tuple[float, float]
Ring = List[LatLon]


def _ring_contains(ring: Ring, lat: float, lon: float) -> bool:
    # Even-odd ray cast along the longitude axis
    inside = False
    j = len(ring) - 1
    for i in range(len(ring)):
        lat_i, lon_i = ring[i]
        lat_j, lon_j = ring[j]
        if (lat_i > lat) != (lat_j > lat):
            lon_cross = lon_i + (lat - lat_i) * (lon_j - lon_i) / (lat_j - lat_i)
            if lon < lon_cross:
                inside = not inside
        j = i
    return inside


def _ring_area(ring: Ring) -> float:
    """Shoelace area in square degrees."""
    total = 0.0
    for i in range(len(ring)):
        lat_i, lon_i = ring[i]
        lat_j, lon_j = ring[(i + 1) % len(ring)]
        total += lon_i * lat_j - lon_j * lat_i
    return abs(total) / 2.0


@dataclass(frozen=True)
class Polygon:
    """
    Geographic boundary of the target area.

    Each part is a list of rings: the outer boundary first, then holes.
    Vertices are (lat, lon); GeoJSON input is [lon, lat].
    """

    parts: Tuple[Tuple[Ring, ...], ...]
    display_name: str = ""

    @classmethod
    def from_geojson(cls, geojson: dict, display_name: str = "") -> "Polygon":
        gtype = geojson.get("type")
        coords = geojson.get("coordinates") or []
        if gtype == "Polygon":
            raw_parts = [coords]
        elif gtype == "MultiPolygon":
            raw_parts = coords
        else:
            raise ValueError(f"Unsupported geometry type: {gtype}")

        parts = []
        for raw_part in raw_parts:
            rings = tuple(
                [(float(pt[1]), float(pt[0])) for pt in raw_ring]
                for raw_ring in raw_part
                if raw_ring
            )
            if rings:
                parts.append(rings)
        return cls(parts=tuple(parts), display_name=display_name)

    def bbox(self) -> Tuple[float, float, float, float]:
        """Return (south, west, north, east)."""
        lats = [p[0] for part in self.parts for p in part[0]]
        lons = [p[1] for part in self.parts for p in part[0]]
        if not lats:
            return (0.0, 0.0, 0.0, 0.0)
        return (min(lats), min(lons), max(lats), max(lons))

    def contains(self, lat: float, lon: float) -> bool:
        for part in self.parts:
            outer, holes = part[0], part[1:]
            if _ring_contains(outer, lat, lon) and not any(
                _ring_contains(h, lat, lon) for h in holes
            ):
                return True
        return False

    def area(self) -> float:
        total = 0.0
        for part in self.parts:
            total += _ring_area(part[0]) - sum(_ring_area(h) for h in part[1:])
        return total


@dataclass(frozen=True)
class SearchCell:
    """Circular search area; radius in km, depth = subdivision level."""

    lat: float
    lon: float
    radius_km: float
    depth: int = 0


@dataclass(frozen=True)
class PriceBand:
    min: float
    max: float

    @property
    def width(self) -> float:
        return self.max - self.min

    def split(self) -> Tuple["PriceBand", "PriceBand"]:
        mid = self.min + self.width / 2
        return PriceBand(self.min, mid), PriceBand(mid, self.max)


@dataclass(frozen=True)
class SearchTask:
    cell: SearchCell
    band: PriceBand

    def describe(self) -> str:
        depth = f" (depth {self.cell.depth})" if self.cell.depth > 0 else ""
        return (
            f"area [{self.cell.lat:.3f}, {self.cell.lon:.3f}] radius:{self.cell.radius_km}km{depth}"
            f" | Price {self.band.min:.0f}-{self.band.max:.0f}"
        )


@dataclass
class Listing:
    id: str
    host_id: Optional[str] = None


@dataclass
class Host:
    """A lessor identity with its profile data."""

    id: str
    name: str
    listing_count: int
    is_agency: bool
    rating: Optional[float] = None
    picture_url: Optional[str] = None
    base_url: str = "https://www.airbnb.com"

    @property
    def profile_url(self) -> str:
        return f"{self.base_url}/users/show/{self.id}"

    @classmethod
    def from_profile(cls, user: dict, agency_threshold: int, base_url: str = "https://www.airbnb.com") -> "Host":
        """Map a users API record into a Host."""
        listing_count = int(user.get("listings_count") or 0)
        return cls(
            id=str(user["id"]),
            name=user.get("host_name") or user.get("first_name") or user.get("full_name") or "Unknown",
            listing_count=listing_count,
            is_agency=listing_count >= agency_threshold,
            rating=user.get("reviewee_rating") or None,
            picture_url=user.get("picture_url") or None,
            base_url=base_url,
        )


@dataclass
class DiscoveryState:
    """
    Dedup sets shared by every discovery worker.

    Insertions go through record(), which holds the lock so concurrent
    workers never both count the same listing as new.
    """

    listings: Dict[str, Listing] = field(default_factory=dict)
    host_ids: Dict[str, None] = field(default_factory=dict)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    async def record(self, listing_id: str, host_id: Optional[str] = None) -> bool:
        """Insert a sighting; return True only the first time the listing is seen."""
        async with self._lock:
            if host_id and host_id not in self.host_ids:
                self.host_ids[host_id] = None
            if listing_id in self.listings:
                existing = self.listings[listing_id]
                if existing.host_id is None and host_id:
                    existing.host_id = host_id
                return False
            self.listings[listing_id] = Listing(id=listing_id, host_id=host_id)
            return True

    @property
    def listing_ids(self) -> Set[str]:
        return set(self.listings)

    @property
    def host_id_set(self) -> Set[str]:
        return set(self.host_ids)
