"""Tests for the metadata store and agent persistence."""

import pytest

from datatransform.agents import AgentChain
from datatransform.core.columns import ColumnIndex
from datatransform.core.compiler import compile_spec
from datatransform.core.engine import publish_metadata
from datatransform.core.exceptions import (
    CorruptMetadataError,
    MissingMetadataError,
)
from datatransform.core.metadata import (
    GIVEN_HEADER_FILE,
    SPEC_FILE,
    TRANSFORMED_HEADER_FILE,
    MetadataStore,
)
from datatransform.core.reader import Partition
from datatransform.models.transform_spec import NameSpec, TransformMethod

SPEC = {
    "impute": [
        {"name": "w", "method": "global_mean"},
        {"name": "c", "method": "constant", "value": "none"},
    ],
    "recode": ["c"],
    "bin": [{"name": "a", "method": "equi-width", "numBins": 2}],
    "scale": [{"name": "w", "method": "z-score"}],
    "dummycode": ["c", "a"],
}
HEADER = "a,c,w"
ROWS = [["1", "x", "2"], ["2", "y", "NA"], ["3", "NA", "6"]]


@pytest.fixture
def fitted_chain():
    columns = ColumnIndex.from_header(HEADER, ",")
    chain = AgentChain(compile_spec(NameSpec.model_validate(SPEC), columns), columns, ["NA"])
    chain.merge([chain.fit_partition(Partition(0, 0, ROWS, "t"))])
    return chain


@pytest.fixture
def published(temp_dir, fitted_chain):
    store = MetadataStore(str(temp_dir / "tfmtd"))
    publish_metadata(store, fitted_chain, ",")
    return store


def load_chain(store: MetadataStore) -> AgentChain:
    columns = ColumnIndex.from_header(HEADER, ",")
    chain = AgentChain(store.load_spec(), columns, ["NA"])
    chain.load(store)
    return chain


class TestPublish:
    """Tests for atomic publish."""

    def test_artifact_layout(self, published):
        """Every agent writes its artifacts under its own directory."""
        assert published.list_artifacts() == [
            "Bin/a.bin",
            "Dummycode/dummyCodeMaps.csv",
            "Impute/c.impute",
            "Impute/w.impute",
            "Recode/c.map",
            "Recode/c.ndistinct",
            "Scale/w.scale",
            GIVEN_HEADER_FILE,
            TRANSFORMED_HEADER_FILE,
            SPEC_FILE,
        ]

    def test_artifact_contents(self, published):
        """Artifacts use the documented line formats."""
        assert published.read_text("Impute/w.impute") == "3,4.0\n"
        assert published.read_text("Impute/c.impute") == "2,none\n"
        assert published.read_text("Recode/c.map") == "x,1\ny,2\nnone,3\n"
        assert published.read_text("Recode/c.ndistinct") == "3\n"
        assert published.read_text("Bin/a.bin") == "1,1.0,3.0,2\n"
        assert published.read_text("Scale/w.scale") == "3,4.0,2.8284271247461903\n"
        assert published.read_text("Dummycode/dummyCodeMaps.csv") == "1,1,2\n2,3,5\n"

    def test_header_snapshots(self, published):
        """Given and transformed headers are published with the metadata."""
        given, transformed = published.load_headers()
        assert given == "a,c,w"
        assert transformed == "a_1,a_2,c_x,c_y,c_none,w"

    def test_no_staging_left_behind(self, published, temp_dir):
        """Only the published directory remains after a publish."""
        assert [p.name for p in temp_dir.iterdir()] == ["tfmtd"]

    def test_failed_publish_leaves_previous_metadata(self, published, temp_dir):
        """An exception inside publish discards the staged artifacts."""
        before = published.list_artifacts()
        with pytest.raises(RuntimeError):
            with published.publish() as staging:
                staging.write(SPEC_FILE, "{}")
                raise RuntimeError("boom")
        assert published.list_artifacts() == before
        assert published.read_text(SPEC_FILE) != "{}"
        assert [p.name for p in temp_dir.iterdir()] == ["tfmtd"]

    def test_republish_replaces_directory(self, published):
        """A second publish replaces all previous artifacts."""
        with published.publish() as staging:
            staging.write("only.txt", "x\n")
        assert published.list_artifacts() == ["only.txt"]


class TestLoad:
    """Tests for loading published metadata."""

    def test_loaded_metadata_matches_fitted(self, published, fitted_chain):
        """Loading reproduces the merged metadata exactly."""
        loaded = load_chain(published)
        for method in TransformMethod:
            assert loaded.get(method).metadata == fitted_chain.get(method).metadata

    def test_loaded_chain_applies_identically(self, published, fitted_chain):
        """Loaded and fitted chains transform rows the same way."""
        loaded = load_chain(published)
        for row in ROWS:
            assert loaded.apply(row) == fitted_chain.apply(row)

    def test_missing_artifact_names_column(self, published, temp_dir):
        """A missing per-column artifact reports the column."""
        (temp_dir / "tfmtd" / "Bin" / "a.bin").unlink()
        with pytest.raises(MissingMetadataError) as exc_info:
            load_chain(published)
        assert exc_info.value.context["column_name"] == "a"
        assert exc_info.value.context["column_id"] == 1

    def test_missing_directory(self, temp_dir):
        """Loading from a directory that was never published fails."""
        store = MetadataStore(str(temp_dir / "nothing"))
        assert not store.exists()
        with pytest.raises(MissingMetadataError):
            store.load_spec()

    def test_corrupt_artifact(self, published, temp_dir):
        """Artifacts for the wrong column id are rejected."""
        (temp_dir / "tfmtd" / "Scale" / "w.scale").write_text("2,4.0,1.0\n")
        with pytest.raises(CorruptMetadataError):
            load_chain(published)

    def test_recode_count_mismatch(self, published, temp_dir):
        """The distinct count must agree with the map."""
        (temp_dir / "tfmtd" / "Recode" / "c.ndistinct").write_text("5\n")
        with pytest.raises(CorruptMetadataError):
            load_chain(published)

    def test_corrupt_spec(self, published, temp_dir):
        """An unreadable spec.json is corrupt metadata."""
        (temp_dir / "tfmtd" / SPEC_FILE).write_text("not json")
        with pytest.raises(CorruptMetadataError):
            published.load_spec()
