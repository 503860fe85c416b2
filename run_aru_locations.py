# Generates ARU deployment points inside hand-drawn deployment blocks, checks spacing and
# shoreline distance, and exports the points as KML for field navigation.
# example: python run_aru_locations.py --sites data/raw/project_islands_2024.kml --blocks data/raw/aru_blocks_2024.kml
import os
import sys
import argparse
import warnings

# import YOUR functions
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.append(SCRIPT_DIR)
import site_polygons as sp
import point_sampling as ps
import distance_checks as dc
import point_export as pe
from fieldwork_config import MIN_POINT_DISTANCE_M, MAX_TRY, SEED, BUFFER_SMALL_M
from fieldwork_errors import FieldworkError

# ---------------- USER SETTINGS ----------------
sites_path = "data/raw/project_islands_2024.kml"
blocks_path = "data/raw/aru_blocks_2024.kml"
output_folder = "data/processed"
output_kml = "aru_locations_2024.kml"
# -----------------------------------------------


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Generate ARU deployment points within deployment blocks.")
    parser.add_argument('--sites', default=sites_path, help="Island/site polygons (KML).")
    parser.add_argument('--blocks', default=blocks_path, help="Deployment block polygons (KML), one ARU per block.")
    parser.add_argument('--output-folder', default=output_folder)
    parser.add_argument('--output-kml', default=output_kml)
    parser.add_argument('--seed', type=int, default=SEED)
    parser.add_argument('--min-distance', type=float, default=MIN_POINT_DISTANCE_M, help="Meters between ARUs.")
    parser.add_argument('--max-try', type=int, default=MAX_TRY)
    parser.add_argument('--no-map', action='store_true', help="Skip the HTML inspection map and plots.")
    return parser.parse_args(argv)


def run(args):
    os.makedirs(args.output_folder, exist_ok=True)

    # ==========================================
    # 1. LOAD POLYGONS
    # ==========================================
    print("=" * 55)
    print("  Loading polygons")
    print("=" * 55)
    sites = sp.add_size_class(sp.load_polygons(args.sites))
    blocks = sp.add_size_class(sp.load_polygons(args.blocks))
    print(f"  {len(sites)} sites, {len(blocks)} deployment blocks")
    print(sites[["name", "area_ha", "size_class"]].round(1).to_string(index=False))

    # ==========================================
    # 2. BLOCK -> SITE RELATION AND POINT COUNTS
    # ==========================================
    relation = sp.relate_blocks_to_sites(blocks, sites)
    counts = sp.check_block_counts(relation, sites)
    print("\n  Blocks per site:")
    print(counts.to_string(index=False))

    # ==========================================
    # 3. BUFFER AND SAMPLE
    # ==========================================
    buffered = sp.buffer_polygons(blocks)
    print(f"\n  Drawing {len(buffered)} points (seed {args.seed}, min distance {args.min_distance:.0f} m)")
    points = ps.draw_points(
        buffered,
        min_distance=args.min_distance,
        max_try=args.max_try,
        seed=args.seed,
    )
    points["site"] = points["block"].map(relation)

    # ==========================================
    # 4. VALIDATE DISTANCES
    # ==========================================
    print("\n" + "=" * 55)
    print("  Distance checks")
    print("=" * 55)
    spacing = dc.check_point_spacing(points, args.min_distance)
    dc.print_report("Nearest ARU (all points)", spacing)

    solo = dc.solo_points(points, relation)
    within_island = dc.nearest_neighbor_distance(points, exclude=solo)
    print(f"\n  Nearest ARU, excluding {len(solo)} single-ARU islands:")
    print(dc.summarize_distances(within_island))

    clearance = dc.check_edge_clearance(points, sites, BUFFER_SMALL_M)
    dc.print_report("Shoreline distance", clearance)

    if not spacing.passed:
        raise FieldworkError(
            f"{len(spacing.violations)} point pairs closer than {args.min_distance:.0f} m; nothing exported"
        )
    if not clearance.passed:
        warnings.warn(f"{len(clearance.violations)} points closer than {BUFFER_SMALL_M:.0f} m to a shoreline")

    # ==========================================
    # 5. EXPORT
    # ==========================================
    print()
    pe.export_points(points, os.path.join(args.output_folder, args.output_kml))

    if not args.no_map:
        pe.save_inspection_map(points, os.path.join(args.output_folder, "aru_locations_map.html"),
                               sites=sites, blocks=buffered)
        plot_path = os.path.join(args.output_folder, "aru_distance_histograms.png")
        dc.plot_distance_histograms(within_island, dc.nearest_edge_distance(points, sites),
                                    args.min_distance, plot_path)
        print(f"✓ Saved: {plot_path}")
    return points


def main(argv=None):
    args = parse_args(argv)
    try:
        run(args)
    except FieldworkError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    print("\nAll outputs complete!")


if __name__ == "__main__":
    main()
