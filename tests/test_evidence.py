from datetime import datetime, timedelta, timezone

from PIL import Image

from gte.adapters.files import FileStorageError, LocalFileStore
from gte.intake.evidence import OLD_PHOTO_FLAG, fingerprint_files, store_files
from gte.models import UploadedFile
from gte.utils.hashing import hash_file
from gte.utils.media import TAG_DATETIME, extract_capture_time


NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def _jpeg(path, color=(200, 10, 10), taken: str | None = None):
    image = Image.new("RGB", (8, 8), color)
    if taken is None:
        image.save(path, format="JPEG")
    else:
        exif = Image.Exif()
        exif[TAG_DATETIME] = taken
        image.save(path, format="JPEG", exif=exif)
    return path


class _BrokenStore:
    def store(self, local_path):
        raise FileStorageError("bucket unavailable")


def test_hash_file_is_stable_and_content_based(tmp_path):
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    a.write_bytes(b"same bytes")
    b.write_bytes(b"same bytes")
    assert hash_file(a) == hash_file(b)
    assert len(hash_file(a)) == 64
    b.write_bytes(b"other bytes")
    assert hash_file(a) != hash_file(b)


def test_capture_time_from_exif(tmp_path):
    path = _jpeg(tmp_path / "dated.jpg", taken="2026:01:02 03:04:05")
    assert extract_capture_time(path) == datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_capture_time_missing_exif_is_none(tmp_path):
    assert extract_capture_time(_jpeg(tmp_path / "plain.jpg")) is None


def test_capture_time_non_image_is_none(tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("not an image", encoding="utf-8")
    assert extract_capture_time(path) is None


def test_fingerprint_flags_old_photo(tmp_path):
    taken = (NOW - timedelta(days=45)).strftime("%Y:%m:%d %H:%M:%S")
    path = _jpeg(tmp_path / "old.jpg", taken=taken)
    prints = fingerprint_files([UploadedFile(path=str(path), media_type="image/jpeg")], NOW, 30)
    assert prints.image_hashes == [hash_file(path)]
    assert len(prints.capture_times) == 1
    assert prints.flags == [OLD_PHOTO_FLAG]


def test_fingerprint_skips_non_images_and_recent_photos(tmp_path):
    taken = (NOW - timedelta(days=1)).strftime("%Y:%m:%d %H:%M:%S")
    photo = _jpeg(tmp_path / "new.jpg", taken=taken)
    doc = tmp_path / "doc.pdf"
    doc.write_bytes(b"%PDF-1.4")
    prints = fingerprint_files(
        [
            UploadedFile(path=str(photo), media_type="image/jpeg"),
            UploadedFile(path=str(doc), media_type="application/pdf"),
        ],
        NOW,
        30,
    )
    assert prints.image_hashes == [hash_file(photo)]
    assert prints.flags == []


def test_store_files_returns_urls(tmp_path):
    photo = _jpeg(tmp_path / "p.jpg")
    upload = UploadedFile(path=str(photo), media_type="image/jpeg")
    prints = fingerprint_files([upload], NOW, 30)
    stored = store_files([upload], LocalFileStore(tmp_path / "media", "/media/"), prints)
    assert len(stored.attachments) == 1
    assert stored.image_url.startswith("/media/")
    assert stored.image_url.endswith(".jpg")
    assert stored.image_hashes == prints.image_hashes


def test_store_failure_drops_attachment_only(tmp_path):
    photo = _jpeg(tmp_path / "p.jpg")
    upload = UploadedFile(path=str(photo), media_type="image/jpeg")
    prints = fingerprint_files([upload], NOW, 30)
    stored = store_files([upload], _BrokenStore(), prints)
    assert stored.attachments == []
    assert stored.image_url is None
    assert stored.image_hashes == []
