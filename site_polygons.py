# site_polygons.py
# Loading, size classification and inward buffering of the hand-drawn island (site)
# and deployment-block polygons, plus the block -> site relation implied by their names.
import re
import warnings
from pathlib import Path

import numpy as np
import pandas as pd
import geopandas as gpd
import shapely
from pyproj import CRS
from pyogrio.errors import DataSourceError

from fieldwork_config import (
    WORKING_CRS, SMALL_MAX_HA, MEDIUM_MAX_HA, BUFFER_AREA_SPLIT_HA,
    BUFFER_LARGE_M, BUFFER_SMALL_M, POINTS_PER_SIZE_CLASS
)
from fieldwork_errors import (
    CRSMismatchError, DuplicateNameError, GeometryFileNotFoundError,
    MalformedRecordError, OrphanBlockError
)

SQ_M_PER_HA = 10_000.0
_TRAILING_NUMBER = re.compile(r"\s*\d+$")


def load_polygons(path, crs=WORKING_CRS) -> gpd.GeoDataFrame:
    """
    Read polygons drawn in Google Earth (KML) or any other vector file geopandas can open.

    Z values are dropped, the layer is projected to `crs`, column names are lower-cased
    and the KML 'description' field is discarded.

    Args:
        path: vector file with one polygon per site/block and a unique 'name' attribute
        crs: projected working CRS (meters)
    Returns: GeoDataFrame indexed 0..n-1 with a 'name' column
    """
    path = Path(path)
    if not path.exists():
        raise GeometryFileNotFoundError(f"Polygon file not found: {path}")
    if not CRS.from_user_input(crs).is_projected:
        raise CRSMismatchError(f"Working CRS {crs} is not projected; areas and buffers need meters")

    try:
        gdf = gpd.read_file(path)
    except DataSourceError as e:
        raise MalformedRecordError(f"Could not read {path.name}: {e}") from e

    if gdf.crs is None:
        raise CRSMismatchError(f"{path.name} has no coordinate reference system")

    gdf = gdf.rename(columns=lambda c: c if c == gdf.geometry.name else c.lower())
    gdf = gdf.drop(columns=["description"], errors="ignore")
    flat = gpd.GeoSeries(shapely.force_2d(np.asarray(gdf.geometry.values)),
                         index=gdf.index, crs=gdf.crs, name=gdf.geometry.name)
    gdf = gdf.set_geometry(flat).to_crs(crs)

    check_unique_names(gdf, source=path.name)
    # joins downstream compare names exactly
    gdf["name"] = gdf["name"].astype(str).str.strip()
    return gdf.reset_index(drop=True)


def check_unique_names(gdf, source="polygons"):
    if "name" not in gdf.columns:
        raise MalformedRecordError(f"{source} has no 'name' attribute")
    names = gdf["name"].astype("string").str.strip()
    if names.isna().any() or (names == "").any():
        raise DuplicateNameError(f"{source} has polygons without a name")
    dupes = sorted(names[names.duplicated()].unique())
    if dupes:
        raise DuplicateNameError(f"{source} has duplicate names: {dupes}")


def classify_size(area_ha: float) -> str:
    """small < 10 ha <= medium < 80 ha <= large"""
    if area_ha is None or np.isnan(area_ha) or area_ha < 0:
        raise ValueError(f"Invalid polygon area: {area_ha}")
    if area_ha < SMALL_MAX_HA:
        return "small"
    if area_ha < MEDIUM_MAX_HA:
        return "medium"
    return "large"


def add_size_class(polygons: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    out = polygons.copy()
    out["area_ha"] = out.geometry.area / SQ_M_PER_HA
    out["size_class"] = out["area_ha"].map(classify_size)
    return out


def buffer_margin(area_ha: float) -> float:
    return BUFFER_LARGE_M if area_ha > BUFFER_AREA_SPLIT_HA else BUFFER_SMALL_M


def buffer_polygons(polygons: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Shrink each polygon inward by its size-dependent margin.

    A buffer can split a polygon into several parts (kept as a MultiPolygon) or
    remove a narrow one entirely (kept as an empty geometry); both are warned about.
    """
    out = polygons if "area_ha" in polygons.columns else add_size_class(polygons)
    out = out.copy()
    out["buffer_m"] = out["area_ha"].map(buffer_margin)

    buffered = [geom.buffer(-margin) for geom, margin in zip(out.geometry, out["buffer_m"])]
    for name, margin, geom in zip(out["name"], out["buffer_m"], buffered):
        if geom.is_empty:
            warnings.warn(f"'{name}' disappears after a {margin:.0f} m buffer")
        elif geom.geom_type == "MultiPolygon":
            warnings.warn(f"'{name}' splits into {len(geom.geoms)} parts after a {margin:.0f} m buffer")

    return out.set_geometry(
        gpd.GeoSeries(buffered, index=out.index, crs=out.crs, name=out.geometry.name)
    )


def site_name_for_block(block_name: str) -> str:
    """'Great Wass 1' -> 'Great Wass'"""
    return _TRAILING_NUMBER.sub("", str(block_name).strip())


def relate_blocks_to_sites(blocks, sites, mapping=None) -> pd.Series:
    """
    Build the block name -> site name relation and check it against the site polygons.

    Args:
        blocks, sites: GeoDataFrames with 'name' columns
        mapping: optional explicit {block name: site name}; otherwise the
                 '<site name> <n>' naming convention is used
    Returns: Series indexed by block name, values are site names
    """
    mapping = mapping or {}
    relation = pd.Series(
        {b: mapping.get(b, site_name_for_block(b)) for b in blocks["name"]},
        name="site",
        dtype=object,
    )
    relation.index.name = "block"

    site_names = set(sites["name"])
    orphans = sorted(b for b, s in relation.items() if s not in site_names)
    if orphans:
        raise OrphanBlockError(f"Blocks with no matching site polygon: {orphans}")

    site_geoms = sites.set_index("name").geometry
    for block_name, geom in zip(blocks["name"], blocks.geometry):
        if not geom.intersects(site_geoms[relation[block_name]]):
            warnings.warn(f"Block '{block_name}' does not overlap site '{relation[block_name]}'")
    return relation


def points_per_site(sites: gpd.GeoDataFrame) -> pd.Series:
    if "size_class" not in sites.columns:
        sites = add_size_class(sites)
    return pd.Series(
        sites["size_class"].map(POINTS_PER_SIZE_CLASS).to_numpy(),
        index=sites["name"], name="target_points",
    )


def check_block_counts(relation: pd.Series, sites: gpd.GeoDataFrame) -> pd.DataFrame:
    """Compare deployment blocks drawn per site against the size-class target."""
    if "size_class" not in sites.columns:
        sites = add_size_class(sites)
    counts = relation.value_counts().reindex(sites["name"], fill_value=0)

    table = pd.DataFrame({
        "site": sites["name"].to_numpy(),
        "size_class": sites["size_class"].to_numpy(),
        "target_points": points_per_site(sites).to_numpy(),
        "n_blocks": counts.to_numpy(),
    })
    table["matches"] = table["target_points"] == table["n_blocks"]

    for row in table[~table["matches"]].itertuples():
        warnings.warn(
            f"Site '{row.site}' ({row.size_class}) has {row.n_blocks} blocks, expected {row.target_points}"
        )
    return table
