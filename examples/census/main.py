"""Run the census example.

Provides two jobs:
- fit.yml   (fit metadata on census.csv, publish it, write CSV and matrix)
- apply.yml (apply the published metadata to census.csv again)
"""

from __future__ import annotations

import argparse
from pathlib import Path

from datatransform import run_job_from_yaml


def main() -> None:
    parser = argparse.ArgumentParser(description="Run census transformation jobs")
    parser.add_argument(
        "--job",
        choices=["fit", "apply"],
        default="fit",
        help="Job to run (apply needs a previous fit)",
    )
    parser.add_argument("--out-dir", default="output", help="Output directory")
    args = parser.parse_args()

    here = Path(__file__).parent
    cli_vars = {
        "data_dir": str(here / "data"),
        "out_dir": str(Path(args.out_dir).resolve()),
    }
    result = run_job_from_yaml(str(here / "jobs" / f"{args.job}.yml"), cli_vars=cli_vars)
    print(f"{result.mode}: {result.layout.num_columns} -> "
          f"{result.layout.num_columns_transformed} columns")
    for output in result.outputs:
        print(f"  {output}")


if __name__ == "__main__":
    main()
