"""Durable transformation metadata with atomic publish.

Layout of a metadata directory::

    spec.json                       compiled id-keyed specification
    column.names.given              header before transformation
    column.names.transformed        header after dummy-code expansion
    Impute/<name>.impute            id,value
    Recode/<name>.map               category,code (one CSV record per line)
    Recode/<name>.ndistinct         distinct count
    Bin/<name>.bin                  id,min,max,num_bins
    Scale/<name>.scale              id,mean,stdev
    Dummycode/dummyCodeMaps.csv     id,start,end

Apply tasks may read a metadata directory while another job publishes to
it, so every publish is staged in a hidden sibling directory and renamed
into place only once all artifacts are written.
"""

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from datatransform.core.exceptions import MissingMetadataError, StorageError
from datatransform.core.storage import Storage
from datatransform.models.transform_spec import TransformSpec

logger = logging.getLogger(__name__)

SPEC_FILE = "spec.json"
GIVEN_HEADER_FILE = "column.names.given"
TRANSFORMED_HEADER_FILE = "column.names.transformed"
FIELD_SEP = ","


class MetadataStaging:
    """Write side of an in-progress publish."""

    def __init__(self, storage: Storage, path: str):
        self._storage = storage
        self.path = path
        self.written: list[str] = []

    def write(self, relpath: str, text: str) -> None:
        self._storage.write_text(Storage.join(self.path, relpath), text)
        self.written.append(relpath)

    def write_lines(self, relpath: str, lines: list[str]) -> None:
        self._storage.write_lines(Storage.join(self.path, relpath), lines)
        self.written.append(relpath)


class MetadataStore:
    """A metadata directory on any fsspec filesystem."""

    def __init__(self, url: str, storage_options: dict[str, Any] | None = None):
        self.url = str(url)
        self._storage, self.path = Storage.for_url(self.url, storage_options)

    def __repr__(self) -> str:
        return f"MetadataStore({self.url!r})"

    def exists(self) -> bool:
        return self._storage.exists(self.path)

    def read_text(self, relpath: str, column: dict[str, Any] | None = None) -> str:
        """Read one artifact.

        Args:
            relpath: Artifact path relative to the metadata directory
            column: Column context (id and name) for the error message

        Raises:
            MissingMetadataError: If the artifact does not exist
        """
        artifact = Storage.join(self.path, relpath)
        if not self._storage.exists(artifact):
            raise MissingMetadataError(
                f"Transformation metadata not found: {relpath}",
                context={**(column or {}), "metadata_path": self.url},
            )
        return self._storage.read_text(artifact)

    def load_spec(self) -> TransformSpec:
        return TransformSpec.from_json(self.read_text(SPEC_FILE))

    def load_headers(self) -> tuple[str, str]:
        """Return the (given, transformed) header snapshots."""
        return (
            self.read_text(GIVEN_HEADER_FILE).rstrip("\n"),
            self.read_text(TRANSFORMED_HEADER_FILE).rstrip("\n"),
        )

    def list_artifacts(self) -> list[str]:
        """Relative paths of every artifact, sorted."""
        if not self.exists():
            return []
        prefix = self.path.rstrip("/") + "/"
        return sorted(
            found[len(prefix):] if found.startswith(prefix) else found
            for found in self._storage.fs.find(self.path)
        )

    @contextmanager
    def publish(self) -> Iterator[MetadataStaging]:
        """Stage a complete artifact set and make it visible atomically.

        Usage::

            with store.publish() as staging:
                staging.write("spec.json", spec.to_json())
                ...

        If the block raises, the staging directory is discarded and the
        metadata directory is left exactly as it was.
        """
        parent = Storage.parent(self.path)
        name = Storage.basename(self.path)
        staging_path = Storage.join(parent, f".{name}.staging-{uuid.uuid4().hex}")

        self._storage.makedirs(staging_path)
        staging = MetadataStaging(self._storage, staging_path)
        try:
            yield staging
        except BaseException:
            logger.warning(f"Discarding staged metadata for {self.url}")
            self._storage.remove(staging_path)
            raise

        self._commit(staging_path, parent, name)
        logger.info(
            f"Published {len(staging.written)} metadata artifact(s) to {self.url}"
        )

    def _commit(self, staging_path: str, parent: str, name: str) -> None:
        replaced = None
        try:
            if self._storage.exists(self.path):
                replaced = Storage.join(parent, f".{name}.replaced-{uuid.uuid4().hex}")
                self._storage.rename(self.path, replaced)
            self._storage.rename(staging_path, self.path)
        except StorageError:
            self._storage.remove(staging_path)
            if replaced is not None and not self._storage.exists(self.path):
                self._storage.rename(replaced, self.path)
            raise

        if replaced is not None:
            self._storage.remove(replaced)
