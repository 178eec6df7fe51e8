import pytest

from safario.utils.storage import ObjectStorage

@pytest.fixture
def storage(tmp_path):
    return ObjectStorage(str(tmp_path), "http://testserver/", 1024)

@pytest.mark.parametrize("content_type, ext", [
    ("image/jpeg", "jpg"),
    ("image/PNG", "png"),
    ("image/webp; charset=binary", "webp"),
    ("image/gif", "gif"),
])
def test_extension_comes_from_content_type(storage, content_type, ext):
    url = storage.upload("lost-items", "owner", b"bytes", content_type)
    assert url.startswith("http://testserver/storage/lost-items/owner-")
    assert url.endswith(f".{ext}")

@pytest.mark.parametrize("content_type", ["image/svg+xml", "text/html", "", "image/x-icon"])
def test_unsupported_types_rejected(storage, content_type):
    with pytest.raises(ValueError):
        storage.upload("lost-items", "owner", b"bytes", content_type)

def test_size_limit(storage):
    with pytest.raises(ValueError):
        storage.upload("profile-photos", "owner", b"x" * 2048, "image/png")

def test_unknown_bucket(storage):
    with pytest.raises(ValueError):
        storage.upload("scripts", "owner", b"bytes", "image/png")

def test_delete_removes_object(storage, tmp_path):
    url = storage.upload("lost-items", "owner", b"bytes", "image/png")
    assert list((tmp_path / "lost-items").iterdir())

    storage.delete(url)
    assert list((tmp_path / "lost-items").iterdir()) == []

@pytest.mark.parametrize("url", [
    "http://elsewhere/storage/lost-items/a.png",
    "http://testserver/storage/lost-items/../../etc/passwd",
    "http://testserver/storage/other/a.png",
    "http://testserver/storage/lost-items/",
])
def test_foreign_urls_are_not_paths(storage, url):
    assert storage.path_for_url(url) is None
