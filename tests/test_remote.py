import pytest

from cellpair.remote import is_gs_uri, list_gs_blobs, split_gs_uri
from tests.utils.fake_storage import make_bucket


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("gs://lab/run1/OMETIFF", ("lab", "run1/OMETIFF")),
        ("gs://lab", ("lab", "")),
        ("gs://lab/", ("lab", "")),
    ],
)
def test_split_gs_uri(uri, expected):
    assert split_gs_uri(uri) == expected


@pytest.mark.parametrize("uri", ["/local/path", "gs://", "s3://lab/x"])
def test_split_gs_uri_rejects(uri):
    with pytest.raises(ValueError):
        split_gs_uri(uri)


def test_is_gs_uri():
    assert is_gs_uri("gs://lab/x")
    assert not is_gs_uri("/tmp/gs://x")


def test_list_gs_blobs_skips_directories(tmp_path):
    client = make_bucket(tmp_path, "lab", {"masks/S1_WholeCellMask.TIFF": b"", "masks/deep/S2_WholeCellMask.tiff": b""})
    names = list_gs_blobs("gs://lab/masks", "_wholecellmask.tiff", client=client)
    assert names == ["masks/S1_WholeCellMask.TIFF", "masks/deep/S2_WholeCellMask.tiff"]
