"""
Place name to polygon resolution via OpenStreetMap Nominatim.
"""
import json
import logging

from .config import FinderConfig
from .errors import LocationNotFoundError, TransportError
from .models import Polygon
from .transport import Transport

logger = logging.getLogger(__name__)

POLYGON_TYPES = ("Polygon", "MultiPolygon")


class GeoResolver:
    def __init__(self, transport: Transport, config: FinderConfig):
        self.transport = transport
        self.config = config

    async def resolve(self, query: str) -> Polygon:
        """Return the boundary of the first candidate carrying polygon geometry."""
        logger.info(f'>>> Geocoding "{query}" using OpenStreetMap...')
        params = {"q": query, "polygon_geojson": "1", "format": "json"}
        try:
            text = await self.transport.get_text(
                f"{self.config.geocoder_url}/search",
                params=params,
                # Nominatim requires an identifying user agent
                headers={"User-Agent": self.config.geocoder_user_agent},
            )
            results = json.loads(text)
        except (TransportError, ValueError) as e:
            raise LocationNotFoundError(f'Geocoding failed for "{query}": {e}') from e

        if not isinstance(results, list):
            raise LocationNotFoundError(f'Unexpected geocoder response for "{query}"')

        for candidate in results:
            if not isinstance(candidate, dict):
                continue
            geojson = candidate.get("geojson")
            if not isinstance(geojson, dict) or geojson.get("type") not in POLYGON_TYPES:
                continue
            name = candidate.get("display_name", "")
            try:
                polygon = Polygon.from_geojson(geojson, display_name=name)
            except (TypeError, ValueError, IndexError) as e:
                logger.warning(f"  Skipping malformed geometry for {name}: {e}")
                continue
            logger.info(f">>> Geocoding successful. Found polygon for: {name}")
            return polygon

        raise LocationNotFoundError(f'Could not find a valid geographic polygon for "{query}".')
