import os
import re
import tempfile
import unittest
import warnings

import pandas as pd

import site_polygons as sp
import point_sampling as ps
import distance_checks as dc
import run_aru_locations
import run_thresholds
from helpers import scenario_blocks, scenario_sites, write_kml
from test_confidence_thresholds import simulated_validations


class TestKnightGreatWassScenario(unittest.TestCase):
    """5 ha 'Knight 1' and 95 ha 'Great Wass 1', seed 9382."""

    def test_two_named_points_inside_buffered_blocks(self):
        blocks = sp.add_size_class(scenario_blocks())
        self.assertEqual(list(blocks["size_class"]), ["small", "large"])

        buffered = sp.buffer_polygons(blocks)
        self.assertEqual(list(buffered["buffer_m"]), [40.0, 100.0])

        points = ps.draw_points(buffered, seed=9382)

        self.assertEqual(list(points["name"]), ["Knight 1", "Great Wass 1"])
        self.assertGreaterEqual(points.geometry.iloc[0].distance(points.geometry.iloc[1]), 250)
        for point, block in zip(points.geometry, buffered.geometry):
            self.assertTrue(block.contains(point))

        report = dc.check_point_spacing(points, 250)
        self.assertTrue(report.passed)


class TestRunAruLocations(unittest.TestCase):
    def test_end_to_end(self):
        with tempfile.TemporaryDirectory() as tmp:
            sites_path = write_kml(scenario_sites(), os.path.join(tmp, "islands.kml"))
            blocks_path = write_kml(scenario_blocks(), os.path.join(tmp, "blocks.kml"))
            out_dir = os.path.join(tmp, "processed")

            with warnings.catch_warnings():
                # Great Wass is large but only one block has been drawn so far
                warnings.simplefilter("ignore")
                run_aru_locations.main([
                    "--sites", sites_path, "--blocks", blocks_path,
                    "--output-folder", out_dir, "--output-kml", "aru_locations.kml",
                ])

            with open(os.path.join(out_dir, "aru_locations.kml"), encoding="utf-8") as f:
                text = f.read()
            placemarks = re.findall(r"<Placemark[^>]*>\s*<name>([^<]*)</name>", text)
            self.assertEqual(sorted(placemarks), ["Great Wass 1", "Knight 1"])
            lon, lat = map(float, re.search(r"<coordinates>([^<]*)</coordinates>", text).group(1).split(",")[:2])
            self.assertTrue(-68 < lon < -66 and 44 < lat < 45)
            self.assertTrue(os.path.exists(os.path.join(out_dir, "aru_locations_map.html")))
            self.assertTrue(os.path.exists(os.path.join(out_dir, "aru_distance_histograms.png")))

    def test_orphan_block_aborts(self):
        with tempfile.TemporaryDirectory() as tmp:
            sites_path = os.path.join(tmp, "islands.gpkg")
            blocks_path = os.path.join(tmp, "blocks.gpkg")
            scenario_sites().iloc[:1].to_file(sites_path)
            scenario_blocks().to_file(blocks_path)

            with self.assertRaises(SystemExit) as ctx:
                run_aru_locations.main([
                    "--sites", sites_path, "--blocks", blocks_path,
                    "--output-folder", os.path.join(tmp, "processed"), "--no-map",
                ])
            self.assertEqual(ctx.exception.code, 1)
            self.assertFalse(os.path.exists(os.path.join(tmp, "processed", "aru_locations_2024.kml")))


class TestRunThresholds(unittest.TestCase):
    def test_end_to_end(self):
        with tempfile.TemporaryDirectory() as tmp:
            folder = os.path.join(tmp, "validations")
            os.makedirs(folder)
            bcch = simulated_validations()
            bcch.rename(columns={"file_name": "Begin File", "valid": "Valid"})[["Begin File", "Valid"]] \
                .to_csv(os.path.join(folder, "BCCH.txt"), sep="\t", index=False)
            coei = pd.DataFrame({"Begin File": ["0.910_COEI_a.wav", "0.950_COEI_b.wav"], "Valid": ["valid", "valid"]})
            coei.to_csv(os.path.join(folder, "COEI.txt"), sep="\t", index=False)
            out_dir = os.path.join(tmp, "out")

            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                run_thresholds.main(["--validations", folder, "--output-folder", out_dir])

            thresholds = pd.read_csv(os.path.join(out_dir, "thresholds.csv"))
            self.assertEqual(list(thresholds["species"]), ["BCCH", "COEI"])
            self.assertTrue(thresholds.loc[1, "p0.95"] != thresholds.loc[1, "p0.95"])  # NaN
            self.assertEqual(int(thresholds.loc[1, "n_valid"]), 2)
            self.assertTrue(os.path.exists(os.path.join(out_dir, "plots", "BCCH.png")))
            self.assertFalse(os.path.exists(os.path.join(out_dir, "plots", "COEI.png")))
            self.assertTrue(os.path.exists(os.path.join(out_dir, "validations", "COEI.csv")))


if __name__ == "__main__":
    unittest.main()
