import io
import tarfile

import pytest

from opct.kube import KubeError
from opct.retrieve import (
    RetrieveError,
    extract_results,
    renamed_result_path,
    retrieve_results,
    retrieve_results_retry,
)
from opct.sonobuoy import AGGREGATOR_RESULTS_PATH, InMemorySonobuoy
from opct.types import CERTIFICATION_NAMESPACE


def make_tar(entries):
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buf.getvalue()


def test_renamed_result_path_replaces_prefix_once():
    assert renamed_result_path("/tmp/x/sonobuoy_sonobuoy_a.tar.gz") == "/tmp/x/opct_sonobuoy_a.tar.gz"


def test_renamed_result_path_without_sonobuoy():
    assert renamed_result_path("/data/results.tar.gz") == "/data/opct_results.tar.gz"


def test_extract_results_writes_files(tmp_path):
    data = make_tar({"a.txt": b"alpha", "sub/b.txt": b"beta"})
    created = extract_results(io.BytesIO(data), tmp_path)
    assert sorted(created) == sorted(
        [str((tmp_path / "a.txt").resolve()), str((tmp_path / "sub" / "b.txt").resolve())]
    )
    assert (tmp_path / "sub" / "b.txt").read_bytes() == b"beta"


def test_extract_results_uses_scanner(tmp_path):
    seen = []

    def scanner(stream):
        seen.append(stream)
        return io.BytesIO(make_tar({"clean.txt": b"ok"}))

    source = io.BytesIO(make_tar({"dirty.txt": b"bad"}))
    created = extract_results(source, tmp_path, scanner)
    assert seen == [source]
    assert [p.rsplit("/", 1)[-1] for p in created] == ["clean.txt"]


def test_extract_results_rejects_escaping_entries(tmp_path):
    data = make_tar({"../evil.txt": b"x"})
    with pytest.raises(RetrieveError):
        extract_results(io.BytesIO(data), tmp_path / "inner")


def test_extract_results_rejects_garbage(tmp_path):
    with pytest.raises(RetrieveError):
        extract_results(io.BytesIO(b"not a tar archive at all" * 40), tmp_path)


def test_retrieve_results_renames(tmp_path):
    sonobuoy = InMemorySonobuoy()
    sonobuoy.results_archive = make_tar({"2024_sonobuoy_abc.tar.gz": b"payload"})
    paths = retrieve_results(sonobuoy, tmp_path)
    expected = tmp_path.resolve() / "opct_2024_abc.tar.gz"
    assert paths == [str(expected)]
    assert expected.read_bytes() == b"payload"
    assert not (tmp_path / "2024_sonobuoy_abc.tar.gz").exists()
    assert sonobuoy.retrieved == [(CERTIFICATION_NAMESPACE, AGGREGATOR_RESULTS_PATH)]


def test_retrieve_results_wraps_client_error(tmp_path):
    with pytest.raises(RetrieveError, match="error retrieving results from sonobuoy"):
        retrieve_results(InMemorySonobuoy(), tmp_path)


def test_retry_gives_up_after_limit(tmp_path):
    pauses = []
    with pytest.raises(RetrieveError, match="Retrieval retry limit reached"):
        retrieve_results_retry(InMemorySonobuoy(), tmp_path, limit=4, pause=0.5, sleep=pauses.append)
    assert pauses == [0.5] * 4


class FlakySonobuoy:
    def __init__(self, failures, archive):
        self.failures = failures
        self.archive = archive
        self.calls = 0

    def retrieve_results(self, namespace, path):
        self.calls += 1
        if self.calls <= self.failures:
            raise KubeError("temporary failure")
        return io.BytesIO(self.archive)


def test_retry_succeeds_after_failures(tmp_path):
    pauses = []
    client = FlakySonobuoy(2, make_tar({"sonobuoy_r.tar.gz": b"r"}))
    paths = retrieve_results_retry(client, tmp_path, pause=1.0, sleep=pauses.append)
    assert client.calls == 3
    assert len(pauses) == 2
    assert paths == [str(tmp_path.resolve() / "opct_r.tar.gz")]


def test_retry_requires_directory(tmp_path):
    missing = tmp_path / "missing"
    client = FlakySonobuoy(0, make_tar({"x": b"x"}))
    with pytest.raises(RetrieveError):
        retrieve_results_retry(client, missing, sleep=lambda _: None)
    assert client.calls == 0