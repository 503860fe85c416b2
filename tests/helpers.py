import math

import geopandas as gpd
from shapely.geometry import box

UTM19 = "EPSG:32619"
# somewhere off Jonesport, Maine
X0, Y0 = 590000.0, 4930000.0


def square(x, y, area_ha):
    side = math.sqrt(area_ha * 10_000)
    return box(x, y, x + side, y + side)


def frame(names, geoms, crs=UTM19, **cols):
    return gpd.GeoDataFrame({"name": list(names), **cols}, geometry=list(geoms), crs=crs)


def scenario_blocks():
    """'Knight 1' (5 ha) and 'Great Wass 1' (95 ha), well apart."""
    return frame(
        ["Knight 1", "Great Wass 1"],
        [square(X0, Y0, 5), square(X0 + 2000, Y0, 95)],
    )


def scenario_sites():
    return frame(
        ["Knight", "Great Wass"],
        [square(X0 - 50, Y0 - 50, 8), square(X0 + 1950, Y0 - 50, 110)],
    )


def write_kml(gdf, path):
    """Save polygons the way Google Earth would hand them over: lon/lat KML with a Name field."""
    gdf.rename(columns={"name": "Name"}).to_crs("EPSG:4326").to_file(path, driver="KML")
    return path
