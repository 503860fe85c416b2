# distance_checks.py
# Distance-to-shoreline and nearest-neighbor checks for generated ARU points,
# reported as pass/fail instead of eyeballing summary stats.
from dataclasses import dataclass, field

import numpy as np
import pandas as pd
import shapely
from scipy.spatial.distance import cdist
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt


@dataclass
class DistanceReport:
    passed: bool
    threshold: float
    min_distance_found: float
    summary: dict
    violations: list = field(default_factory=list)

    def to_dict(self):
        return {
            "passed": self.passed,
            "threshold": self.threshold,
            "min_distance_found": self.min_distance_found,
            "n_violations": len(self.violations),
            **self.summary,
        }


def _xy(points) -> np.ndarray:
    return np.column_stack([points.geometry.x, points.geometry.y])


def edge_distance_matrix(points, sites) -> pd.DataFrame:
    """Distance from every point to every site boundary (points x sites)."""
    # shoreline of every island, holes included
    rings = shapely.boundary(np.asarray(sites.geometry.values))
    matrix = shapely.distance(
        np.asarray(points.geometry.values)[:, np.newaxis], rings[np.newaxis, :]
    )
    return pd.DataFrame(matrix, index=points["name"].to_numpy(), columns=sites["name"].to_numpy())


def nearest_edge_distance(points, sites) -> pd.Series:
    return edge_distance_matrix(points, sites).min(axis=1).rename("edge_distance")


def point_distance_matrix(points) -> pd.DataFrame:
    names = points["name"].to_numpy()
    return pd.DataFrame(cdist(_xy(points), _xy(points)), index=names, columns=names)


def solo_points(points, relation: pd.Series) -> list:
    """
    Points that are the only ARU on their island.

    Args:
        points: sampled points with a 'block' column
        relation: block name -> site name, from site_polygons.relate_blocks_to_sites
    """
    sites = points["block"].map(relation)
    per_site = sites.value_counts()
    return list(points.loc[sites.map(per_site) == 1, "name"])


def nearest_neighbor_distance(points, exclude=()) -> pd.Series:
    """Distance from each point to its nearest other point, leaving out `exclude`d names."""
    matrix = point_distance_matrix(points)
    exclude = set(exclude)
    keep = [n for n in matrix.index if n not in exclude]
    matrix = matrix.loc[keep, keep].to_numpy(copy=True)
    np.fill_diagonal(matrix, np.inf)
    nearest = matrix.min(axis=1) if len(keep) > 1 else np.full(len(keep), np.nan)
    return pd.Series(nearest, index=keep, name="nn_distance")


def summarize_distances(distances: pd.Series) -> dict:
    d = distances.dropna()
    return {
        "n": int(d.size),
        "mean": float(d.mean()) if d.size else np.nan,
        "std": float(d.std()) if d.size > 1 else np.nan,
        "min": float(d.min()) if d.size else np.nan,
        "max": float(d.max()) if d.size else np.nan,
    }


def check_point_spacing(points, min_distance, exclude=(), tolerance=1e-6) -> DistanceReport:
    nn = nearest_neighbor_distance(points, exclude=exclude)
    matrix = point_distance_matrix(points)
    keep = list(nn.index)
    violations = []
    for i, a in enumerate(keep):
        for b in keep[i + 1:]:
            d = matrix.at[a, b]
            if d < min_distance - tolerance:
                violations.append((a, b, float(d)))

    summary = summarize_distances(nn)
    return DistanceReport(
        passed=not violations,
        threshold=float(min_distance),
        min_distance_found=summary["min"],
        summary=summary,
        violations=violations,
    )


def check_edge_clearance(points, sites, min_clearance, tolerance=1e-6) -> DistanceReport:
    edge = nearest_edge_distance(points, sites)
    violations = [(name, float(d)) for name, d in edge.items() if d < min_clearance - tolerance]
    summary = summarize_distances(edge)
    return DistanceReport(
        passed=not violations,
        threshold=float(min_clearance),
        min_distance_found=summary["min"],
        summary=summary,
        violations=violations,
    )


def print_report(title, report: DistanceReport):
    s = report.summary
    status = "PASS" if report.passed else "FAIL"
    print(f"\n  {title}: {status} (threshold {report.threshold:.0f} m)")
    print(f"    n      : {s['n']}")
    print(f"    Mean   : {s['mean']:.1f}")
    print(f"    SD     : {s['std']:.1f}")
    print(f"    Range  : {s['min']:.1f} – {s['max']:.1f}")
    for v in report.violations:
        print(f"    ✗ {v}")


def plot_distance_histograms(nn: pd.Series, edge: pd.Series, min_distance, out_path):
    fig, axes = plt.subplots(1, 2, figsize=(11, 4))

    axes[0].hist(nn.dropna(), bins=20, edgecolor='black', color='steelblue')
    axes[0].axvline(min_distance, color='red', linestyle='--', linewidth=2,
                    label=f'minimum = {min_distance:.0f} m')
    axes[0].set_xlabel('Distance to nearest ARU (m)')
    axes[0].set_ylabel('Count')
    axes[0].set_title('Nearest-neighbor distance')
    axes[0].legend()

    axes[1].hist(edge.dropna(), bins=20, edgecolor='black', color='teal')
    axes[1].set_xlabel('Distance to nearest shoreline (m)')
    axes[1].set_ylabel('Count')
    axes[1].set_title('Shoreline distance')

    plt.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
