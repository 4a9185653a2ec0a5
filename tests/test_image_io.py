import pytest

from wallfacer.errors import ImageReadError, WallfacerError
from wallfacer.image_io import expand_paths, get_image_size, output_path

from conftest import write_image


def test_get_image_size_reads_dimensions(tmp_path) -> None:
    img = write_image(tmp_path / "a.png", 320, 180)

    assert get_image_size(img) == (320, 180)


def test_get_image_size_rejects_corrupt_file(tmp_path) -> None:
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"definitely not a png")

    with pytest.raises(ImageReadError, match="broken.png"):
        get_image_size(broken)


def test_get_image_size_missing_file_is_a_wallfacer_error(tmp_path) -> None:
    with pytest.raises(WallfacerError):
        get_image_size(tmp_path / "missing.jpg")


def test_expand_paths_mixes_files_and_directories(tmp_path) -> None:
    folder = tmp_path / "walls"
    write_image(folder / "b.png", 10, 10)
    write_image(folder / "a.png", 10, 10)
    (folder / "notes.txt").write_text("x", encoding="utf-8")
    single = write_image(tmp_path / "single.png", 10, 10)

    assert [p.name for p in expand_paths([single, folder])] == ["single.png", "a.png", "b.png"]


def test_output_path_swaps_extension_only_when_format_given(tmp_path) -> None:
    src = tmp_path / "in" / "x.png"

    assert output_path(src, tmp_path / "out", None) == tmp_path / "out" / "x.png"
    assert output_path(src, tmp_path / "out", "webp") == tmp_path / "out" / "x.webp"
