"""
Export utilities for the host report.
"""
import logging
import os
from typing import List

import pandas as pd

from .errors import OutputError
from .models import Host

logger = logging.getLogger(__name__)

HOST_COLUMNS = ["hostId", "hostName", "listingCount", "isAgency", "hostRating", "hostPictureUrl", "profileUrl"]


def hosts_to_frame(hosts: List[Host]) -> pd.DataFrame:
    rows = []
    for h in hosts:
        rows.append({
            "hostId": h.id,
            "hostName": h.name,
            "listingCount": h.listing_count,
            "isAgency": h.is_agency,
            "hostRating": h.rating,
            "hostPictureUrl": h.picture_url,
            "profileUrl": h.profile_url,
        })
    return pd.DataFrame(rows, columns=HOST_COLUMNS)


def save_hosts(hosts: List[Host], out_path: str) -> pd.DataFrame:
    """Save hosts to CSV or Excel file."""
    df = hosts_to_frame(hosts)
    try:
        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        if out_path.lower().endswith(".xlsx"):
            df.to_excel(out_path, index=False)
        else:
            df.to_csv(out_path, index=False)
    except OSError as e:
        raise OutputError(f"Could not write {out_path}: {e}") from e

    logger.info(f">>> Saved {len(df)} hosts to {out_path}")
    return df
