from PIL import Image

from cliptrail.services import InternalWriteGuard
from cliptrail.utils import FileManager, atomic_write_bytes


def test_atomic_write_replaces_without_leftovers(tmp_path):
    target = tmp_path / "record.json"
    atomic_write_bytes(target, b"one")
    atomic_write_bytes(target, b"two")

    assert target.read_bytes() == b"two"
    assert [p.name for p in tmp_path.iterdir()] == ["record.json"]


def test_stage_image_uses_unique_names(tmp_path):
    manager = FileManager(tmp_path / "images")
    image = Image.new("RGB", (2, 2), "black")

    first = manager.stage_image(image)
    second = manager.stage_image(image)
    assert first != second
    assert first.read_bytes() == second.read_bytes()


def test_stage_image_rejects_garbage(tmp_path):
    manager = FileManager(tmp_path / "images")
    assert manager.stage_image(b"\x00\x01") is None
    assert list(manager.base_dir.iterdir()) == []


def test_remove_and_cleanup(tmp_path):
    manager = FileManager(tmp_path / "images")
    staged = manager.stage_image(Image.new("L", (1, 1)))

    assert manager.remove_file(staged)
    assert not manager.remove_file(staged)

    manager.stage_image(Image.new("L", (1, 1)))
    manager.cleanup_all_files()
    assert manager.base_dir.is_dir()
    assert list(manager.base_dir.iterdir()) == []


def test_write_guard_expires(clock):
    guard = InternalWriteGuard(window=0.5, clock=clock)
    assert not guard.active

    guard.mark()
    assert guard.active
    clock.advance(0.4)
    assert guard.active
    clock.advance(0.2)
    assert not guard.active

    guard.mark()
    guard.clear()
    assert not guard.active
