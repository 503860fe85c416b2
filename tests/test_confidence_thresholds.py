import os
import tempfile
import unittest
import warnings
from types import SimpleNamespace

import numpy as np
import pandas as pd

import confidence_thresholds as ct
from fieldwork_errors import InsufficientValidationsError, MalformedRecordError


def simulated_validations(n=400, seed=1):
    """Labels drawn from P(correct) = sigmoid(10 * (score - 0.5))."""
    rng = np.random.default_rng(seed)
    scores = np.round(rng.uniform(0.1, 1.0, n), 3)
    p = 1 / (1 + np.exp(-10 * (scores - 0.5)))
    correct = rng.uniform(size=n) < p
    return pd.DataFrame({
        "file_name": [f"{s:.3f}_BCCH_{i}.wav" for i, s in enumerate(scores)],
        "valid": np.where(correct, "valid", "invalid"),
        "confidence_score": scores,
    })


class TestLabels(unittest.TestCase):
    def test_parse_valid_label(self):
        self.assertTrue(ct.parse_valid_label("Valid"))
        self.assertTrue(ct.parse_valid_label(" y "))
        self.assertTrue(ct.parse_valid_label(1))
        self.assertTrue(ct.parse_valid_label(True))
        self.assertFalse(ct.parse_valid_label("INVALID"))
        self.assertFalse(ct.parse_valid_label("n"))
        self.assertFalse(ct.parse_valid_label(0.0))
        self.assertIsNone(ct.parse_valid_label(""))
        self.assertIsNone(ct.parse_valid_label(np.nan))
        with self.assertRaises(MalformedRecordError):
            ct.parse_valid_label("maybe")

    def test_summary(self):
        tables = {"BCCH": pd.DataFrame({
            "file_name": ["a", "b", "c", "d"],
            "valid": ["valid", "invalid", "valid", ""],
            "confidence_score": [0.9, 0.2, 0.8, 0.5],
        })}
        summary = ct.summarize_validations(tables).iloc[0]
        self.assertEqual(summary["n"], 3)
        self.assertEqual(summary["n_valid"], 2)
        self.assertEqual(summary["n_invalid"], 1)
        self.assertAlmostEqual(summary["precision"], 2 / 3)


class TestThresholds(unittest.TestCase):
    def setUp(self):
        self.table = simulated_validations()
        self.model = ct.fit_species_model(self.table)

    def test_threshold_hits_target_probability(self):
        for p in (0.90, 0.95, 0.99):
            t = ct.threshold_for_probability(self.model, p)
            fitted = self.model.predict_proba(np.array([[t]]))[0, 1]
            self.assertAlmostEqual(fitted, p, places=6)

    def test_thresholds_increase_with_target(self):
        t = [ct.threshold_for_probability(self.model, p) for p in (0.90, 0.95, 0.99)]
        self.assertTrue(t[0] < t[1] < t[2])
        self.assertTrue(0.5 < t[0] < 1.0)

    def test_negative_slope_gives_nan(self):
        model = SimpleNamespace(intercept_=[0.0], coef_=[[-2.0]])
        self.assertTrue(np.isnan(ct.threshold_for_probability(model, 0.9)))

    def test_probability_must_be_open_interval(self):
        with self.assertRaises(ValueError):
            ct.threshold_for_probability(self.model, 1.0)

    def test_all_correct_species_cannot_be_fitted(self):
        table = self.table.assign(valid="valid")
        with self.assertRaises(InsufficientValidationsError):
            ct.fit_species_model(table)

    def test_derive_thresholds_keeps_unfittable_species(self):
        tables = {"BCCH": self.table, "COEI": self.table.assign(valid="invalid")}
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            out = ct.derive_thresholds(tables)
        self.assertEqual(list(out["species"]), ["BCCH", "COEI"])
        self.assertEqual(list(out.columns), ["species", "p0.90", "p0.95", "p0.99"])
        self.assertTrue(out.loc[1, ["p0.90", "p0.95", "p0.99"]].isna().all())
        self.assertFalse(out.loc[0, ["p0.90", "p0.95", "p0.99"]].isna().any())
        self.assertTrue(any("COEI" in str(w.message) for w in caught))

    def test_plot_is_written(self):
        thresholds = ct.derive_thresholds({"BCCH": self.table}).set_index("species").loc["BCCH"]
        with tempfile.TemporaryDirectory() as tmp:
            out = os.path.join(tmp, "BCCH.png")
            ct.plot_species_curve(self.table, self.model, thresholds, out, species="BCCH")
            self.assertTrue(os.path.getsize(out) > 0)


if __name__ == "__main__":
    unittest.main()
