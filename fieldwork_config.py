# fieldwork_config.py

# ---------- Coordinate systems ----------
WORKING_CRS = "EPSG:32619"   # UTM Zone 19N, all area/buffer/distance work
EXPORT_CRS = "EPSG:4326"     # lon/lat for field navigation apps

# ---------- Site size classes (hectares) ----------
SMALL_MAX_HA = 10.0          # area < 10 ha -> small
MEDIUM_MAX_HA = 80.0         # 10 <= area < 80 ha -> medium, otherwise large
SIZE_CLASSES = ("small", "medium", "large")

# ARUs requested per site, by size class
POINTS_PER_SIZE_CLASS = {"small": 1, "medium": 2, "large": 3}

# ---------- Shoreline / inter-block buffer (meters) ----------
BUFFER_AREA_SPLIT_HA = 10.0
BUFFER_LARGE_M = 100.0       # polygons over 10 ha
BUFFER_SMALL_M = 40.0        # everything else

# ---------- Point sampling ----------
MIN_POINT_DISTANCE_M = 250.0
MAX_TRY = 100                # placement attempts per point
SEED = 9382

# ---------- Validation tables ----------
VALIDATION_SUFFIX = ".txt"
BEGIN_FILE_COL = "Begin File"
VALID_COL = "Valid"
CONFIDENCE_TOKEN_WIDTH = 5

# ---------- Threshold derivation ----------
TARGET_PROBABILITIES = (0.90, 0.95, 0.99)
TRUE_LABELS = {"valid", "y", "yes", "true", "1", "correct"}
FALSE_LABELS = {"invalid", "n", "no", "false", "0", "incorrect"}

# ---------- Inspection map ----------
ESRI_IMAGERY_TILES = (
    "https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}"
)
