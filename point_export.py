# point_export.py
# Reprojection, KML export for field navigation, and the interactive inspection map.
from pathlib import Path

import numpy as np
import geopandas as gpd
import folium
from pyproj import Transformer

from fieldwork_config import WORKING_CRS, EXPORT_CRS, ESRI_IMAGERY_TILES
from fieldwork_errors import CRSMismatchError


def project_xy(x, y, src_crs=WORKING_CRS, dst_crs=EXPORT_CRS):
    """Transform coordinate arrays; x/y are easting/northing or lon/lat (always_xy)."""
    transformer = Transformer.from_crs(src_crs, dst_crs, always_xy=True)
    return transformer.transform(np.asarray(x, dtype=float), np.asarray(y, dtype=float))


def reproject_points(points: gpd.GeoDataFrame, dst_crs=EXPORT_CRS) -> gpd.GeoDataFrame:
    if points.crs is None:
        raise CRSMismatchError("points have no CRS to reproject from")
    xs, ys = project_xy(points.geometry.x, points.geometry.y, points.crs, dst_crs)
    out = points.copy()
    return out.set_geometry(
        gpd.GeoSeries(gpd.points_from_xy(xs, ys), index=points.index, crs=dst_crs,
                      name=points.geometry.name)
    )


def export_points(points: gpd.GeoDataFrame, path, name_col="name") -> gpd.GeoDataFrame:
    """
    Write ARU points for the field (e.g. Avenza / Google Earth): lon/lat, one 'Name' field.
    The destination is overwritten.

    Returns: the GeoDataFrame that was written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    lonlat = reproject_points(points, EXPORT_CRS)
    out = gpd.GeoDataFrame(
        {"Name": lonlat[name_col].astype(str).to_numpy()},
        geometry=lonlat.geometry.to_numpy(),
        crs=EXPORT_CRS,
    )
    if path.exists():
        path.unlink()
    if path.suffix.lower() == ".kml":
        out.to_file(path, driver="KML")
    else:
        out.to_file(path)
    print(f"✓ {len(out)} points exported to: {path}")
    return out


def build_inspection_map(points, sites=None, blocks=None) -> folium.Map:
    """Satellite map of sites, buffered blocks and ARU points for checking the draw by eye."""
    pts = points.to_crs(EXPORT_CRS)
    center = [float(pts.geometry.y.median()), float(pts.geometry.x.median())]

    m = folium.Map(location=center, zoom_start=14, tiles='OpenStreetMap')
    folium.TileLayer(
        tiles=ESRI_IMAGERY_TILES,
        attr='Esri',
        name='Satellite',
        overlay=False
    ).add_to(m)

    if sites is not None:
        folium.GeoJson(
            sites[["name", sites.geometry.name]].to_crs(EXPORT_CRS).to_json(),
            name="Islands",
            style_function=lambda f: {"color": "yellow", "weight": 2, "fillOpacity": 0.1},
            tooltip=folium.GeoJsonTooltip(fields=["name"]),
        ).add_to(m)

    if blocks is not None:
        keep = blocks[~blocks.geometry.is_empty]
        folium.GeoJson(
            keep[["name", keep.geometry.name]].to_crs(EXPORT_CRS).to_json(),
            name="Buffered blocks",
            style_function=lambda f: {"color": "orange", "weight": 1, "fillOpacity": 0.2},
        ).add_to(m)

    aru_group = folium.FeatureGroup(name="ARU locations")
    for name, geom in zip(pts["name"], pts.geometry):
        folium.Marker(
            location=[geom.y, geom.x],
            popup=f"<b>{name}</b><br>{geom.y:.6f}, {geom.x:.6f}",
            icon=folium.Icon(color='black', icon='microphone', prefix='fa')
        ).add_to(aru_group)
    aru_group.add_to(m)

    folium.LayerControl().add_to(m)
    return m


def save_inspection_map(points, path, sites=None, blocks=None):
    m = build_inspection_map(points, sites=sites, blocks=blocks)
    m.save(str(path))
    print(f"✓ Map saved to: {path}")
    return m
