"""
Host Finder Package
"""
from .config import FinderConfig, ProxyConfig
from .core import FindResult, run_find_hosts, run_pipeline
from .credentials import CredentialProvider
from .discovery import ListingDiscoverer
from .errors import (
    CredentialError,
    HostFetchError,
    HostFinderError,
    LocationNotFoundError,
    OutputError,
    SearchRequestError,
)
from .export import save_hosts
from .geo import GeoResolver
from .grid import GridPlanner
from .hosts import HostResolver
from .models import DiscoveryState, Host, Polygon, PriceBand, SearchCell, SearchTask
from .utils import init_logger, now_iso

__version__ = "1.0.0"

__all__ = [
    "FinderConfig",
    "ProxyConfig",
    "FindResult",
    "run_find_hosts",
    "run_pipeline",
    "CredentialProvider",
    "ListingDiscoverer",
    "CredentialError",
    "HostFetchError",
    "HostFinderError",
    "LocationNotFoundError",
    "OutputError",
    "SearchRequestError",
    "save_hosts",
    "GeoResolver",
    "GridPlanner",
    "HostResolver",
    "DiscoveryState",
    "Host",
    "Polygon",
    "PriceBand",
    "SearchCell",
    "SearchTask",
    "init_logger",
    "now_iso",
]
