import pytest

from axebatch.utils.output_manager import OutputManager


def test_structure_is_scoped_to_run(tmp_path):
    output = OutputManager(tmp_path, "run_20260101_120000_abcd1234")

    root = tmp_path / "run_20260101_120000_abcd1234"
    assert output.get_path("root") == root
    assert output.get_path("screenshots", "001_page", "shot.png") == root / "screenshots" / "001_page" / "shot.png"
    assert all(output.get_path(name).is_dir() for name in ("screenshots", "exports", "pdf", "logs"))


def test_lazy_structure_creates_nothing(tmp_path):
    OutputManager(tmp_path, "run_lazy", create_dirs=False)

    assert list(tmp_path.iterdir()) == []


def test_unknown_component(tmp_path):
    with pytest.raises(ValueError):
        OutputManager(tmp_path, "run_x", create_dirs=False).get_path("reports")


def test_safe_slug():
    assert OutputManager.create_safe_slug("https://www.example.com/a b?c=1") == "example_com_a_b_c_1"
    assert OutputManager.create_safe_slug("///") == "item"
    assert len(OutputManager.create_safe_slug("x" * 200)) == 80


def test_safe_write_creates_parents(tmp_path):
    output = OutputManager(tmp_path, "run_x")
    target = output.get_path("screenshots", "001_page", "violation-1-node-1.png")

    assert output.safe_write_file(target, b"png")
    assert target.read_bytes() == b"png"


def test_backup_existing_file(tmp_path):
    output = OutputManager(tmp_path, "run_x", timestamp="20260101_000000")
    output.safe_write_file(output.get_path("exports", "junit.xml"), "<testsuites/>")

    backup = output.backup_existing_file("exports", "junit.xml")

    assert backup.name == "junit_backup_20260101_000000.xml"
    assert output.backup_existing_file("exports", "missing.xml") is None
