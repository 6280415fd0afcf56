"""
Search and profile endpoints of the rental site.
"""
import json
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .config import FinderConfig
from .errors import HostFetchError, SearchRequestError, TransportError
from .transport import Transport

BBox = Tuple[float, float, float, float]  # ne_lat, ne_lng, sw_lat, sw_lng


@dataclass
class SearchItem:
    listing_id: str
    host_id: Optional[str] = None


@dataclass
class SearchPage:
    items: List[SearchItem] = field(default_factory=list)
    has_next_page: bool = False


def _fmt_price(value: float) -> str:
    # Split bands can land on fractions; the API takes whole currency units
    return str(int(round(value)))


def parse_search_page(data: dict) -> SearchPage:
    """Pull listing/host ids and the next-page flag out of an explore_tabs payload."""
    if not isinstance(data, dict):
        raise ValueError("search response is not a JSON object")
    tabs = _expect(data.get("explore_tabs"), list, "explore_tabs")
    tab = _expect(tabs[0], dict, "explore_tabs[0]") if tabs else {}
    raw = []
    for section in _expect(tab.get("sections"), list, "sections"):
        listings = _expect(section, dict, "section").get("listings")
        if listings:
            raw = _expect(listings, list, "listings")
            break

    items = []
    for entry in raw:
        listing = _expect(entry, dict, "listing entry").get("listing")
        listing = _expect(listing, dict, "listing")
        listing_id = listing.get("id")
        if not listing_id:
            continue
        host_id = _expect(listing.get("user"), dict, "listing user").get("id")
        items.append(SearchItem(str(listing_id), str(host_id) if host_id else None))

    meta = _expect(tab.get("pagination_metadata"), dict, "pagination_metadata")
    return SearchPage(items=items, has_next_page=bool(meta.get("has_next_page")) and bool(raw))


def _expect(value, kind: type, what: str):
    """Return value, or an empty kind when missing; raise ValueError on any other shape."""
    if value is None:
        return kind()
    if not isinstance(value, kind):
        raise ValueError(f"unexpected {what} in search response: {type(value).__name__}")
    return value


class AirbnbClient:
    """Thin wrapper turning transport failures into per-request errors."""

    def __init__(self, transport: Transport, config: FinderConfig):
        self.transport = transport
        self.config = config

    async def search(self, bbox: BBox, price_min: float, price_max: float,
                     offset: int, api_key: str) -> SearchPage:
        ne_lat, ne_lng, sw_lat, sw_lng = bbox
        params = {
            "search_by_map": "true",
            "ne_lat": str(ne_lat),
            "ne_lng": str(ne_lng),
            "sw_lat": str(sw_lat),
            "sw_lng": str(sw_lng),
            "items_per_grid": str(self.config.page_size),
            "items_offset": str(offset),
            "refinement_paths[]": "/homes",
            "key": api_key,
            "currency": self.config.currency,
            "price_min": _fmt_price(price_min),
        }
        # Top band is open-ended
        if price_max < self.config.price_ceiling:
            params["price_max"] = _fmt_price(price_max)

        url = f"{self.config.base_url}/api/v2/explore_tabs"
        try:
            text = await self.transport.get_text(url, params=params, headers={"X-Airbnb-API-Key": api_key})
            return parse_search_page(json.loads(text))
        except (TransportError, ValueError) as e:
            raise SearchRequestError(str(e)) from e

    async def get_user(self, host_id: str, api_key: str) -> dict:
        url = f"{self.config.base_url}/api/v2/users/{host_id}"
        try:
            text = await self.transport.get_text(url, headers={"X-Airbnb-API-Key": api_key})
            data = json.loads(text)
        except (TransportError, ValueError) as e:
            raise HostFetchError(f"host {host_id}: {e}") from e

        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(user, dict) or not user.get("id"):
            raise HostFetchError(f"host {host_id}: response has no user record")
        return user
