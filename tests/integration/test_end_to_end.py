"""End-to-end integration tests for complete transformation runs."""

import math

import pyarrow.parquet as pq
import pytest

from datatransform import from_yaml, run_job, run_job_from_yaml
from datatransform.core import engine
from datatransform.core.exceptions import (
    EngineError,
    MetadataMismatchError,
    MissingMetadataError,
    UnknownCategoryError,
    UnsupportedMethodError,
)
from datatransform.core.metadata import MetadataStore
from datatransform.models.job import TransformJob

SCENARIO_SPEC = {
    "recode": ["b"],
    "bin": [{"name": "a", "method": "equi-width", "numBins": 2}],
}

FULL_SPEC = {
    "impute": [
        {"name": "color", "method": "global_mode"},
        {"name": "weight", "method": "global_mean"},
    ],
    "recode": ["color"],
    "bin": [{"name": "size", "method": "equi-width", "numBins": 3}],
    "scale": [{"name": "weight", "method": "z-score"}],
    "dummycode": ["color", "size"],
}


def read(path) -> str:
    with open(path, encoding="utf-8") as f:
        return f.read()


def make_job(temp_dir, input_path, spec=None, apply_from=None, output="out.csv", **extra):
    data = {
        "name": "test",
        "input": {"path": str(input_path)},
        "metadata": {"path": str(temp_dir / "tfmtd")} if apply_from is None else {"apply_from": apply_from},
        "outputs": [{"type": "csv", "path": str(temp_dir / output)}],
    }
    if spec is not None:
        data["spec"] = spec
    data.update(extra)
    return TransformJob.from_dict(data)


@pytest.fixture
def scenario_input(write_csv):
    return write_csv("in/scenario.csv", ["a,b", "1,x", "2,y", "3,x"])


@pytest.fixture
def full_input(write_csv, scenario_lines):
    return write_csv("in/full.csv", scenario_lines)


@pytest.mark.integration
class TestFitAndApply:
    """Fit+apply runs."""

    def test_recode_and_bin_scenario(self, temp_dir, scenario_input):
        """Recode codes follow encounter order; bins clamp at the top."""
        result = run_job(make_job(temp_dir, scenario_input, spec=SCENARIO_SPEC))

        assert read(temp_dir / "out.csv") == "a,b\n1,1\n2,2\n2,1\n"
        assert result.mode == "fit+apply"
        assert result.layout.num_rows == 3
        assert result.layout.num_columns_transformed == 2

        store = MetadataStore(str(temp_dir / "tfmtd"))
        assert store.read_text("Bin/a.bin") == "1,1.0,3.0,2\n"
        assert store.read_text("Recode/b.map") == "x,1\ny,2\n"

    def test_all_agents(self, temp_dir, full_input):
        """Impute, recode, bin, scale and dummycode compose in order."""
        result = run_job(make_job(temp_dir, full_input, spec=FULL_SPEC))

        assert result.transformed_header == [
            "id", "color_red", "color_blue", "size_1", "size_2", "size_3", "weight",
        ]
        assert result.layout.num_columns_transformed == 7

        lines = read(temp_dir / "out.csv").splitlines()
        assert lines[0] == "id,color_red,color_blue,size_1,size_2,size_3,weight"
        rows = [line.split(",") for line in lines[1:]]
        assert [row[:6] for row in rows] == [
            ["1", "1", "0", "1", "0", "0"],
            ["2", "0", "1", "0", "1", "0"],
            ["3", "1", "0", "0", "0", "1"],
        ]
        weights = [float(row[6]) for row in rows]
        assert weights == pytest.approx([-1 / math.sqrt(2), 0.0, 1 / math.sqrt(2)])

        store = MetadataStore(str(temp_dir / "tfmtd"))
        given, transformed = store.load_headers()
        assert given == "id,color,size,weight"
        assert transformed == ",".join(result.transformed_header)

    def test_width_formula(self, temp_dir, full_input):
        """Width is columns - dummycoded + sum of dummycode widths."""
        result = run_job(make_job(temp_dir, full_input, spec=FULL_SPEC))
        assert result.layout.num_columns_transformed == 4 - 2 + 2 + 3

    def test_tab_delimited_trailing_missing_value(self, temp_dir, write_csv):
        """Rows ending in an empty missing-value field are imputed and recoded."""
        data = write_csv("in/tabs.tsv", ["a\tb", "1\tx", "2\t", "3\tx"])
        job = make_job(
            temp_dir,
            data,
            spec={
                "impute": [{"name": "b", "method": "constant", "value": "z"}],
                "recode": ["b"],
            },
            input={"path": str(data), "delimiter": "\t", "na_strings": [""]},
        )
        run_job(job)
        assert read(temp_dir / "out.csv") == "a\tb\n1\t1\n2\t2\n3\t1\n"
        store = MetadataStore(str(temp_dir / "tfmtd"))
        assert store.read_text("Recode/b.map") == "x,1\nz,2\n"

    def test_empty_spec_copies_input(self, temp_dir, full_input, scenario_lines):
        run_job(make_job(temp_dir, full_input, spec={}))
        assert read(temp_dir / "out.csv") == "\n".join(scenario_lines) + "\n"

    def test_matrix_output(self, temp_dir, scenario_input):
        job = make_job(
            temp_dir,
            scenario_input,
            spec=SCENARIO_SPEC,
            outputs=[
                {"type": "matrix", "path": str(temp_dir / "out.parquet")},
                {"type": "csv", "path": str(temp_dir / "out.csv")},
            ],
        )
        result = run_job(job)
        assert len(result.outputs) == 2
        table = pq.read_table(temp_dir / "out.parquet")
        assert table.column("C1").to_pylist() == [1.0, 2.0, 2.0]
        assert table.column("C2").to_pylist() == [1.0, 2.0, 1.0]

    def test_metrics_reported(self, temp_dir, scenario_input):
        result = run_job(make_job(temp_dir, scenario_input, spec=SCENARIO_SPEC))
        assert result.metrics["rows_fitted"] == 3
        assert result.metrics["rows_applied"] == 3
        assert set(result.metrics["phase_times"]) == {
            "resolve", "compile", "fit", "publish", "apply",
        }


@pytest.mark.integration
class TestApplyOnly:
    """Apply-only runs over published metadata."""

    def test_output_identical_to_fit_and_apply(self, temp_dir, full_input):
        """Applying published metadata reproduces the fit+apply output."""
        run_job(make_job(temp_dir, full_input, spec=FULL_SPEC, output="fit.csv"))
        result = run_job(
            make_job(
                temp_dir, full_input, apply_from=str(temp_dir / "tfmtd"), output="apply.csv"
            )
        )
        assert result.mode == "apply-only"
        assert result.metadata_path == str(temp_dir / "tfmtd")
        assert read(temp_dir / "apply.csv") == read(temp_dir / "fit.csv")
        assert "fit" not in result.metrics["phase_times"]

    def test_whitespace_in_imputed_value_survives(self, temp_dir, write_csv):
        """Stored values keep surrounding whitespace across fit and apply runs."""
        data = write_csv("in/gaps.csv", ["a,b", "1,x", "2,NA", "3,x"])
        spec = {"impute": [{"name": "b", "method": "constant", "value": " other "}]}
        run_job(make_job(temp_dir, data, spec=spec, output="fit.csv"))
        run_job(
            make_job(temp_dir, data, apply_from=str(temp_dir / "tfmtd"), output="apply.csv")
        )
        assert read(temp_dir / "fit.csv") == "a,b\n1,x\n2, other \n3,x\n"
        assert read(temp_dir / "apply.csv") == read(temp_dir / "fit.csv")

    def test_whitespace_value_still_recodes(self, temp_dir, write_csv):
        """A loaded imputed value still matches its recode entry."""
        data = write_csv("in/gaps.csv", ["a,b", "1,x", "2,NA"])
        spec = {
            "impute": [{"name": "b", "method": "constant", "value": "other "}],
            "recode": ["b"],
        }
        run_job(make_job(temp_dir, data, spec=spec, output="fit.csv"))
        run_job(
            make_job(temp_dir, data, apply_from=str(temp_dir / "tfmtd"), output="apply.csv")
        )
        assert read(temp_dir / "apply.csv") == "a,b\n1,1\n2,2\n"

    def test_republish_to_metadata_path(self, temp_dir, scenario_input):
        run_job(make_job(temp_dir, scenario_input, spec=SCENARIO_SPEC))
        job = make_job(
            temp_dir,
            scenario_input,
            apply_from=str(temp_dir / "tfmtd"),
            output="apply.csv",
        )
        job.metadata.path = str(temp_dir / "export")
        run_job(job)

        original = MetadataStore(str(temp_dir / "tfmtd"))
        exported = MetadataStore(str(temp_dir / "export"))
        assert exported.list_artifacts() == original.list_artifacts()
        assert exported.read_text("Bin/a.bin") == original.read_text("Bin/a.bin")

    def test_missing_metadata(self, temp_dir, scenario_input):
        job = make_job(temp_dir, scenario_input, apply_from=str(temp_dir / "nowhere"))
        with pytest.raises(EngineError) as exc_info:
            run_job(job)
        assert exc_info.value.phase == "load"
        assert isinstance(exc_info.value.__cause__, MissingMetadataError)

    def test_column_count_mismatch(self, temp_dir, scenario_input, write_csv):
        run_job(make_job(temp_dir, scenario_input, spec=SCENARIO_SPEC))
        wider = write_csv("in/wider.csv", ["a,b,c", "1,x,0"])
        with pytest.raises(EngineError) as exc_info:
            run_job(make_job(temp_dir, wider, apply_from=str(temp_dir / "tfmtd")))
        assert isinstance(exc_info.value.__cause__, MetadataMismatchError)

    def test_unknown_category(self, temp_dir, scenario_input, write_csv):
        """Categories never seen during fit fail with their row."""
        run_job(make_job(temp_dir, scenario_input, spec=SCENARIO_SPEC))
        unseen = write_csv("in/unseen.csv", ["a,b", "1,x", "2,z"])
        with pytest.raises(EngineError) as exc_info:
            run_job(
                make_job(
                    temp_dir, unseen, apply_from=str(temp_dir / "tfmtd"), output="unseen.csv"
                )
            )
        assert exc_info.value.phase == "apply"
        assert isinstance(exc_info.value.__cause__, UnknownCategoryError)
        assert exc_info.value.context["row"] == 2
        assert not (temp_dir / "unseen.csv").exists()


@pytest.mark.integration
class TestDistributed:
    """Distributed runs match single-node runs."""

    @pytest.fixture
    def large_input(self, write_csv):
        colors = ["red", "blue", "green", "NA"]
        lines = ["id,color,size,weight"]
        for i in range(1, 41):
            weight = "NA" if i % 7 == 0 else str(i % 9)
            lines.append(f"{i},{colors[(i * 3) % 4]},{(i * 13) % 50},{weight}")
        return write_csv("in/large.csv", lines)

    def test_same_output_as_single_node(self, temp_dir, large_input):
        spec = {
            "impute": [
                {"name": "color", "method": "global_mode"},
                {"name": "weight", "method": "global_mean"},
            ],
            "recode": ["color"],
            "bin": [{"name": "size", "method": "equi-width", "numBins": 5}],
            "dummycode": ["color", "size"],
        }
        run_job(make_job(temp_dir, large_input, spec=spec, output="single.csv"))
        single_meta = MetadataStore(str(temp_dir / "tfmtd"))
        single_artifacts = {
            name: single_meta.read_text(name) for name in single_meta.list_artifacts()
        }

        result = run_job(
            make_job(
                temp_dir,
                large_input,
                spec=spec,
                output="distributed.csv",
                runtime={"mode": "distributed", "parallelism": 3, "batch_size": 3},
            )
        )

        assert result.metrics["partitions_applied"] == 14
        assert read(temp_dir / "distributed.csv") == read(temp_dir / "single.csv")
        distributed_meta = MetadataStore(str(temp_dir / "tfmtd"))
        assert {
            name: distributed_meta.read_text(name)
            for name in distributed_meta.list_artifacts()
        } == single_artifacts

    def test_task_failure_reports_running_phase(self, temp_dir, scenario_input, monkeypatch):
        """Unexpected task errors are reported under the phase that ran them."""

        def fail(chain, partition, metrics):
            raise RuntimeError("worker lost")

        monkeypatch.setattr(engine, "_fit_partition", fail)
        job = make_job(
            temp_dir,
            scenario_input,
            spec=SCENARIO_SPEC,
            runtime={"mode": "distributed", "parallelism": 2, "batch_size": 1},
        )
        with pytest.raises(EngineError) as exc_info:
            run_job(job)
        assert exc_info.value.phase == "fit"
        assert exc_info.value.context["phase"] == "fit"
        assert exc_info.value.context["partition"] == 0

    def test_part_file_directory(self, temp_dir, write_csv):
        write_csv("parts/part-00000", ["a,b", "1,x", "2,y"])
        write_csv("parts/part-00001", ["3,x"])
        job = make_job(
            temp_dir,
            temp_dir / "parts",
            spec=SCENARIO_SPEC,
            runtime={"mode": "distributed", "parallelism": 2, "batch_size": 10},
        )
        run_job(job)
        assert read(temp_dir / "out.csv") == "a,b\n1,1\n2,2\n2,1\n"


@pytest.mark.integration
class TestSpecFailures:
    """Specification problems stop the run before any data is read."""

    def test_equi_height_not_supported(self, temp_dir, scenario_input):
        spec = {"bin": [{"name": "a", "method": "equi-height", "numBins": 2}]}
        with pytest.raises(EngineError) as exc_info:
            run_job(make_job(temp_dir, scenario_input, spec=spec))
        assert exc_info.value.phase == "compile"
        assert isinstance(exc_info.value.__cause__, UnsupportedMethodError)
        assert not (temp_dir / "tfmtd").exists()

    def test_unknown_column(self, temp_dir, scenario_input):
        with pytest.raises(EngineError) as exc_info:
            run_job(make_job(temp_dir, scenario_input, spec={"recode": ["zzz"]}))
        assert exc_info.value.phase == "compile"
        assert exc_info.value.context["column_name"] == "zzz"


@pytest.mark.integration
class TestYamlJobs:
    """Jobs loaded from YAML files."""

    def test_run_job_from_yaml(self, temp_dir, scenario_input):
        (temp_dir / "spec.json").write_text(
            '{"recode": ["b"], "bin": [{"name": "a", "method": "equi-width", "numBins": 2}]}'
        )
        job_file = temp_dir / "job.yaml"
        job_file.write_text(
            f"""
name: scenario
input:
  path: "{scenario_input}"
spec_path: spec.json
metadata:
  path: "{{{{ var('out') }}}}/{{{{ job.name }}}}/tfmtd"
outputs:
  - type: csv
    path: "{{{{ var('out') }}}}/scenario.csv"
"""
        )
        job = from_yaml(str(job_file), cli_vars={"out": str(temp_dir / "out")})
        assert job.metadata.path == str(temp_dir / "out" / "scenario" / "tfmtd")

        result = run_job_from_yaml(str(job_file), cli_vars={"out": str(temp_dir / "out")})
        assert read(temp_dir / "out" / "scenario.csv") == "a,b\n1,1\n2,2\n2,1\n"
        assert result.metadata_path.endswith("tfmtd")
