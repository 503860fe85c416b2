# point_sampling.py
import numpy as np
import pandas as pd
import geopandas as gpd
import shapely
from shapely.geometry import Point

from fieldwork_config import MIN_POINT_DISTANCE_M, MAX_TRY, SEED
from fieldwork_errors import ConstraintUnsatisfiableError, DuplicateNameError


def make_rng(seed=SEED) -> np.random.Generator:
    return np.random.default_rng(seed)


def random_point_in(geometry, rng: np.random.Generator, crs=None) -> Point:
    """
    Uniform random point inside a (multi)polygon, drawn with GeoSeries.sample_points.

    Args:
        geometry: shapely Polygon or MultiPolygon in a projected CRS
        rng: numpy Generator; the only source of randomness
        crs: CRS of `geometry`, passed through to geopandas
    Returns: shapely Point inside `geometry`
    """
    if geometry is None or geometry.is_empty:
        raise ConstraintUnsatisfiableError("cannot place a point in an empty polygon")

    sample = gpd.GeoSeries([geometry], crs=crs).sample_points(1, rng=rng).iloc[0]
    # one-point MultiPoint
    return shapely.get_geometry(sample, 0)


def _target_counts(names, n_points):
    if isinstance(n_points, dict):
        unknown = set(n_points) - set(names)
        if unknown:
            raise KeyError(f"Point counts given for unknown blocks: {sorted(unknown)}")
        counts = {name: n_points.get(name, 1) for name in names}
    else:
        counts = {name: n_points for name in names}
    for name, n in counts.items():
        if int(n) != n or n < 0:
            raise ValueError(f"Point count for '{name}' must be a non-negative integer, got {n}")
    return {name: int(n) for name, n in counts.items()}


def point_name(block_name, i, n):
    return block_name if n == 1 else f"{block_name}-{i}"


def check_point_names(counts):
    """Point names come from block names, so "Roque" with 2 points clashes with a block "Roque-1"."""
    names = pd.Series([point_name(b, i, n) for b, n in counts.items() for i in range(1, n + 1)],
                      dtype=object)
    clashes = sorted(names[names.duplicated()].unique())
    if clashes:
        raise DuplicateNameError(f"Generated point names are not unique: {clashes}")


def draw_points(
    blocks: gpd.GeoDataFrame,
    n_points=1,
    min_distance=MIN_POINT_DISTANCE_M,
    max_try=MAX_TRY,
    rng=None,
    seed=SEED,
) -> gpd.GeoDataFrame:
    """
    Draw ARU locations inside each named (buffered) block.

    Every accepted point is at least `min_distance` from every other accepted point,
    across all blocks. Each point gets up to `max_try` placement attempts; when all of
    them violate the distance constraint the run stops with ConstraintUnsatisfiableError.
    Point names that would clash raise DuplicateNameError before anything is drawn.

    Args:
        blocks: GeoDataFrame with 'name' and polygon geometries, projected CRS
        n_points: points per block, an int for all blocks or {block name: count}
        min_distance: minimum pairwise distance in CRS units (meters)
        max_try: placement attempts per point
        rng: numpy Generator; built from `seed` when not given
    Returns: GeoDataFrame with columns name, block, geometry in the blocks' CRS
    """
    if blocks.crs is not None and not blocks.crs.is_projected:
        raise ValueError("draw_points needs a projected CRS so distances are in meters")
    if rng is None:
        rng = make_rng(seed)

    counts = _target_counts(list(blocks["name"]), n_points)
    check_point_names(counts)
    accepted = np.empty((0, 2))
    rows = []

    for block_name, geom in zip(blocks["name"], blocks.geometry):
        n = counts[block_name]
        for i in range(1, n + 1):
            for attempt in range(max_try):
                candidate = random_point_in(geom, rng, crs=blocks.crs)
                xy = np.array([[candidate.x, candidate.y]])
                if accepted.size == 0 or np.hypot(*(accepted - xy).T).min() >= min_distance:
                    break
            else:
                raise ConstraintUnsatisfiableError(
                    f"'{block_name}': no location at least {min_distance:g} m from the "
                    f"{len(accepted)} points already placed after {max_try} attempts"
                )
            accepted = np.vstack([accepted, xy])
            rows.append({
                "name": point_name(block_name, i, n),
                "block": block_name,
                "geometry": candidate,
            })

    return gpd.GeoDataFrame(rows, columns=["name", "block", "geometry"],
                            geometry="geometry", crs=blocks.crs)
