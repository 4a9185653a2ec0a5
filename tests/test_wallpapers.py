import csv
import logging

import pytest

from wallfacer.errors import StoreError
from wallfacer.models import Face, Geometry
from wallfacer.ratios import AspectRatio
from wallfacer.wallpapers import WallInfo, WallpaperStore

HD = AspectRatio(16, 9)
SQUARE = AspectRatio(1, 1)
ULTRAWIDE = AspectRatio(21, 9)


def _info(filename="a.png", faces=None, geometries=None) -> WallInfo:
    return WallInfo(
        filename=filename,
        width=1920,
        height=1080,
        faces=faces if faces is not None else [Face(xmin=800, xmax=900, ymin=400, ymax=500)],
        geometries=dict(geometries or {}),
        wallust="catppuccin",
    )


def test_save_writes_offsets_in_requested_column_order(tmp_path) -> None:
    store = WallpaperStore(tmp_path / "wallpapers.csv")
    store.insert("a.png", _info(geometries={SQUARE: Geometry(1080, 1080, 310, 0), HD: Geometry(1920, 1080, 0, 0)}))

    store.save([SQUARE, HD, ULTRAWIDE])

    with open(tmp_path / "wallpapers.csv", newline="", encoding="utf-8") as f:
        rows = list(csv.reader(f))
    assert rows[0] == ["filename", "width", "height", "faces", "1x1", "16x9", "21x9", "wallust"]
    assert rows[1][:3] == ["a.png", "1920", "1080"]
    assert rows[1][4:] == ["310+0", "0+0", "", "catppuccin"]


def test_load_reconstructs_crop_size_from_ratio(tmp_path) -> None:
    store = WallpaperStore(tmp_path / "wallpapers.csv")
    original = _info(geometries={SQUARE: Geometry(1080, 1080, 310, 0), ULTRAWIDE: Geometry(1920, 822, 0, 129)})
    store.insert("a.png", original)
    store.save([SQUARE, ULTRAWIDE])

    loaded = WallpaperStore(tmp_path / "wallpapers.csv").load().get("a.png")

    assert loaded == original
    assert loaded.geometries[ULTRAWIDE] == Geometry(1920, 822, 0, 129)


def test_empty_cell_means_no_geometry(tmp_path) -> None:
    store = WallpaperStore(tmp_path / "wallpapers.csv")
    store.insert("a.png", _info(geometries={SQUARE: Geometry(1080, 1080, 310, 0)}))
    store.save([SQUARE, HD])

    loaded = WallpaperStore(tmp_path / "wallpapers.csv").load().get("a.png")

    assert HD not in loaded.geometries
    # falls back to the default crop
    assert loaded.get_geometry(HD) == Geometry(1920, 1080, 0, 0)


def test_load_accepts_full_geometry_form(tmp_path) -> None:
    path = tmp_path / "wallpapers.csv"
    path.write_text(
        "filename,width,height,faces,1x1,wallust\n"
        "b.png,1920,1080,[],1080x1080+420+0,\n",
        encoding="utf-8",
    )

    info = WallpaperStore(path).load().get("b.png")

    assert info.faces == []
    assert info.geometries == {SQUARE: Geometry(1080, 1080, 420, 0)}
    assert info.wallust == ""


def test_missing_table_is_empty_unless_required(tmp_path) -> None:
    store = WallpaperStore(tmp_path / "missing.csv").load()
    assert len(store) == 0

    with pytest.raises(StoreError, match="not found"):
        WallpaperStore(tmp_path / "missing.csv").load(required=True)


@pytest.mark.parametrize(
    "row",
    [
        "a.png,abc,1080,[],,\n",
        "a.png,1920,1080,not-json,,\n",
        "a.png,1920,1080,[],1+2+3,\n",
    ],
)
def test_malformed_rows_raise_store_error(tmp_path, row) -> None:
    path = tmp_path / "wallpapers.csv"
    path.write_text("filename,width,height,faces,1x1,wallust\n" + row, encoding="utf-8")

    with pytest.raises(StoreError):
        WallpaperStore(path).load()


def test_unknown_column_raises_store_error(tmp_path) -> None:
    path = tmp_path / "wallpapers.csv"
    path.write_text("filename,width,height,faces,bogus,wallust\n", encoding="utf-8")

    with pytest.raises(StoreError, match="bogus"):
        WallpaperStore(path).load()


def test_insert_replaces_existing_row(tmp_path) -> None:
    store = WallpaperStore(tmp_path / "wallpapers.csv")
    store.insert("a.png", _info())
    store.insert("a.png", _info(faces=[]))

    assert len(store) == 1
    assert store.get("a.png").faces == []
    assert store.get("missing.png") is None


def test_is_default_crops() -> None:
    info = _info()
    cropper = info.cropper()
    info.set_geometry(SQUARE, cropper.crop(SQUARE))

    assert info.is_default_crops([SQUARE, HD])

    info.set_geometry(SQUARE, Geometry(1080, 1080, 0, 0))
    assert not info.is_default_crops([SQUARE, HD])
    assert info.is_default_crops([HD])


def test_with_geometry_leaves_original_untouched() -> None:
    info = _info()

    updated = info.with_geometry(SQUARE, Geometry(1080, 1080, 5, 0))

    assert SQUARE not in info.geometries
    assert updated.geometries[SQUARE] == Geometry(1080, 1080, 5, 0)


def test_find_duplicates_groups_identical_files(tmp_path, caplog) -> None:
    (tmp_path / "a.png").write_bytes(b"same image bytes")
    (tmp_path / "b.png").write_bytes(b"same image bytes")
    (tmp_path / "c.png").write_bytes(b"different bytes")
    store = WallpaperStore(tmp_path / "wallpapers.csv", tmp_path)
    for name in ("a.png", "b.png", "c.png", "gone.png"):
        store.insert(name, _info(name))

    with caplog.at_level(logging.WARNING):
        duplicates = store.find_duplicates()

    assert duplicates == [["a.png", "b.png"]]
    assert "a.png, b.png" in caplog.text
    assert len(store) == 4
