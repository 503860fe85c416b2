# confidence_thresholds.py
# Turns validated classifier output into per-species confidence score thresholds:
# a logistic regression of "prediction was correct" on the classifier confidence score,
# solved for the score at which P(correct) reaches each target probability.
import math
import warnings
from itertools import cycle

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from sklearn.linear_model import LogisticRegression

from fieldwork_config import TARGET_PROBABILITIES, TRUE_LABELS, FALSE_LABELS
from fieldwork_errors import InsufficientValidationsError, MalformedRecordError


def parse_valid_label(value):
    """
    Map a reviewer's label to True/False.

    Args:
        value: raw cell from the 'Valid' column (str, bool or 0/1)
    Returns: True, False, or None for a row nobody has labelled yet
    """
    if value is None or (isinstance(value, float) and math.isnan(value)):
        return None
    if isinstance(value, (bool, np.bool_)):
        return bool(value)
    if isinstance(value, (int, float, np.integer, np.floating)) and value in (0, 1):
        return bool(value)

    label = str(value).strip().lower()
    if label == "":
        return None
    if label in TRUE_LABELS:
        return True
    if label in FALSE_LABELS:
        return False
    raise MalformedRecordError(f"Unrecognised validation label: {value!r}")


def labelled_rows(table: pd.DataFrame) -> pd.DataFrame:
    """Rows with both a usable label and a numeric confidence score."""
    out = table.copy()
    out["correct"] = out["valid"].map(parse_valid_label)
    out = out.dropna(subset=["correct", "confidence_score"])
    out["correct"] = out["correct"].astype(bool)
    return out


def summarize_validations(species_tables: dict) -> pd.DataFrame:
    rows = []
    for species, table in species_tables.items():
        labelled = labelled_rows(table)
        n_valid = int(labelled["correct"].sum())
        n = len(labelled)
        rows.append({
            "species": species,
            "n": n,
            "n_valid": n_valid,
            "n_invalid": n - n_valid,
            "precision": n_valid / n if n else np.nan,
        })
    return pd.DataFrame(rows, columns=["species", "n", "n_valid", "n_invalid", "precision"])


def fit_species_model(table: pd.DataFrame) -> LogisticRegression:
    labelled = labelled_rows(table)
    if labelled["correct"].nunique() < 2:
        state = "no labelled rows" if labelled.empty else (
            "all correct" if labelled["correct"].all() else "no correct predictions"
        )
        raise InsufficientValidationsError(f"cannot fit a curve: {state}")

    X = labelled[["confidence_score"]].to_numpy(dtype=float)
    y = labelled["correct"].to_numpy(dtype=int)
    # large C keeps the fit effectively unpenalized
    model = LogisticRegression(C=1e6, max_iter=1000)
    model.fit(X, y)
    return model


def threshold_for_probability(model: LogisticRegression, probability: float) -> float:
    if not 0 < probability < 1:
        raise ValueError("probability must be strictly between 0 and 1")
    b0 = float(model.intercept_[0])
    b1 = float(model.coef_[0][0])
    if b1 <= 0:
        return np.nan
    return (math.log(probability / (1 - probability)) - b0) / b1


def fit_species_models(species_tables: dict) -> dict:
    """Fit every species that has both correct and incorrect validations; warn about the rest."""
    models = {}
    for species, table in species_tables.items():
        try:
            models[species] = fit_species_model(table)
        except InsufficientValidationsError as e:
            warnings.warn(f"{species}: {e}")
            continue
        if models[species].coef_[0][0] <= 0:
            warnings.warn(f"{species}: correctness does not increase with confidence score")
    return models


def derive_thresholds(species_tables: dict, probabilities=TARGET_PROBABILITIES,
                      models: dict = None) -> pd.DataFrame:
    """
    One row per species, one column per target probability ('p0.95' etc.).
    Species that cannot be fitted are kept with NaN thresholds.
    """
    if models is None:
        models = fit_species_models(species_tables)

    columns = threshold_columns(probabilities)
    rows = []
    for species in species_tables:
        row = {"species": species}
        model = models.get(species)
        for col, p in zip(columns, probabilities):
            row[col] = threshold_for_probability(model, p) if model is not None else np.nan
        rows.append(row)
    return pd.DataFrame(rows, columns=["species"] + columns)


def threshold_columns(probabilities=TARGET_PROBABILITIES) -> list:
    return [f"p{p:.2f}" for p in probabilities]


def plot_species_curve(table, model, thresholds, out_path, species=""):
    labelled = labelled_rows(table)
    grid = np.linspace(0, 1, 200).reshape(-1, 1)
    prob = model.predict_proba(grid)[:, 1]

    fig, ax = plt.subplots(figsize=(7, 4))
    ax.scatter(labelled["confidence_score"], labelled["correct"].astype(int),
               alpha=0.4, color='steelblue', edgecolors='none', label='validations')
    ax.plot(grid[:, 0], prob, color='black', label='fitted P(correct)')
    for (label, value), style in zip(thresholds.items(), cycle(['--', '-.', ':'])):
        if pd.notna(value):
            ax.axvline(value, color='red', linestyle=style, alpha=0.7, label=f'{label} = {value:.3f}')
    ax.set_xlim(0, 1)
    ax.set_xlabel('Confidence score')
    ax.set_ylabel('P(correct)')
    ax.set_title(f'{species} — confidence score threshold')
    ax.legend(fontsize=8)
    plt.tight_layout()
    fig.savefig(out_path, dpi=150)
    plt.close(fig)
