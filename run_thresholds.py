# Derives per-species confidence score thresholds from manual validations of classifier output.
# Duplicates happen because 100 random files were drawn for scores 0.1-1.0 and another
# 100 for scores 0.85-1.0; they are dropped before fitting.
# example: python run_thresholds.py --validations data/raw/2024_validation_results
import os
import sys
import argparse

# import YOUR functions
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
sys.path.append(SCRIPT_DIR)
import validation_tables as vt
import confidence_thresholds as ct
from fieldwork_config import TARGET_PROBABILITIES
from fieldwork_errors import FieldworkError

# ---------------- USER SETTINGS ----------------
validations_folder = "data/raw/2024_validation_results"
output_folder = "data/processed/confidence_thresholds"
# -----------------------------------------------


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Derive classifier confidence thresholds from validations.")
    parser.add_argument('--validations', default=validations_folder, help="Folder of tab-delimited validation files.")
    parser.add_argument('--output-folder', default=output_folder)
    parser.add_argument('--probabilities', type=float, nargs='+', default=list(TARGET_PROBABILITIES),
                        help="Target P(correct) values, e.g. 0.9 0.95 0.99")
    parser.add_argument('--no-plots', action='store_true')
    return parser.parse_args(argv)


def run(args):
    os.makedirs(args.output_folder, exist_ok=True)

    # ==========================================
    # 1. LOAD AND DEDUPLICATE VALIDATIONS
    # ==========================================
    print("=" * 55)
    print(f"  Loading validations from {args.validations}")
    print("=" * 55)
    species_tables = vt.load_species_validations(args.validations)

    cleaned_dir = os.path.join(args.output_folder, "validations")
    os.makedirs(cleaned_dir, exist_ok=True)
    for species, table in species_tables.items():
        table.to_csv(os.path.join(cleaned_dir, f"{species}.csv"), index=False)

    # ==========================================
    # 2. SUMMARY
    # ==========================================
    summary = ct.summarize_validations(species_tables)
    print("\n  Validation summary:")
    print(summary.round(3).to_string(index=False))

    # ==========================================
    # 3. FIT AND SOLVE FOR THRESHOLDS
    # ==========================================
    models = ct.fit_species_models(species_tables)
    thresholds = ct.derive_thresholds(species_tables, args.probabilities, models=models)
    thresholds = thresholds.merge(summary, on="species", how="left")

    out_csv = os.path.join(args.output_folder, "thresholds.csv")
    thresholds.to_csv(out_csv, index=False)
    print(f"\n  Thresholds ({len(models)} of {len(species_tables)} species fitted):")
    print(thresholds.round(3).to_string(index=False))
    print(f"\n✓ Thresholds saved to: {out_csv}")

    if not args.no_plots:
        plot_dir = os.path.join(args.output_folder, "plots")
        os.makedirs(plot_dir, exist_ok=True)
        columns = ct.threshold_columns(args.probabilities)
        for species, model in models.items():
            row = thresholds.set_index("species").loc[species, columns]
            ct.plot_species_curve(species_tables[species], model, row,
                                  os.path.join(plot_dir, f"{species}.png"), species=species)
        print(f"✓ {len(models)} plots saved to: {plot_dir}")
    return thresholds


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
