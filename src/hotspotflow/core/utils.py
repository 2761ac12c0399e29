"""Utility functions and helpers."""

import logging
from enum import Enum
from typing import Any

from pyproj import CRS as ProjCRS
from pyproj.exceptions import CRSError


# Logging setup
def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with standardized configuration.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


# Common CRS definitions
class CRS(str, Enum):
    """Common coordinate reference systems."""

    WGS84 = "EPSG:4326"  # Standard lat/lon
    WEB_MERCATOR = "EPSG:3857"  # Web mapping
    BRITISH_NATIONAL_GRID = "EPSG:27700"  # Great Britain (meters)
    ETRS89_LAEA = "EPSG:3035"  # Europe equal area
    UTM_ZONE_30N = "EPSG:32630"  # Great Britain UTM


def is_projected_crs(crs: str) -> bool:
    """
    Check whether a CRS is projected (planar) rather than geographic.

    Args:
        crs: Any CRS string pyproj understands (e.g., "EPSG:27700")

    Returns:
        True for projected coordinate systems

    Raises:
        ValueError: If pyproj cannot parse the CRS
    """
    try:
        return bool(ProjCRS.from_user_input(crs).is_projected)
    except CRSError as exc:
        raise ValueError(f"Unrecognised CRS: {crs!r}") from exc


# Type checking helpers
def is_numeric_col(dtype: Any) -> bool:
    """Check if a Polars dtype is numeric."""
    import polars as pl

    return dtype in [
        pl.Int8,
        pl.Int16,
        pl.Int32,
        pl.Int64,
        pl.UInt8,
        pl.UInt16,
        pl.UInt32,
        pl.UInt64,
        pl.Float32,
        pl.Float64,
    ]
