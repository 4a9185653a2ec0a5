import pytest

from wallfacer.cropper import Cropper
from wallfacer.errors import ImageTooSmallError
from wallfacer.models import Direction, Face, Geometry
from wallfacer.ratios import AspectRatio

SQUARE = AspectRatio(1, 1)


def _face(xmin, xmax, ymin=400, ymax=500) -> Face:
    return Face(xmin=xmin, xmax=xmax, ymin=ymin, ymax=ymax)


def test_no_faces_gives_single_centered_crop() -> None:
    cropper = Cropper([], 1920, 1080)

    assert cropper.crop_candidates(SQUARE) == [Geometry(w=1080, h=1080, x=420, y=0)]
    assert cropper.crop(SQUARE) == Geometry(w=1080, h=1080, x=420, y=0)


def test_single_face_crop_covers_face() -> None:
    cropper = Cropper([_face(800, 900)], 1920, 1080)

    crop = cropper.crop(SQUARE)

    assert crop == Geometry(1080, 1080, 310, 0)
    assert crop.x <= 800 and crop.x + crop.w >= 900
    # face center and face bounds center coincide, so only the image center is added
    assert cropper.crop_candidates(SQUARE) == [Geometry(1080, 1080, 310, 0), Geometry(1080, 1080, 420, 0)]


def test_face_near_edge_clamps_crop() -> None:
    cropper = Cropper([_face(1800, 1900)], 1920, 1080)

    assert cropper.crop(SQUARE) == Geometry(1080, 1080, 840, 0)


def test_candidate_order_is_bounds_then_faces_then_center() -> None:
    cropper = Cropper([_face(100, 200), _face(1700, 1800)], 1920, 1080)

    assert [g.x for g in cropper.crop_candidates(SQUARE)] == [410, 0, 840, 420]


def test_candidates_are_deduplicated() -> None:
    cropper = Cropper([_face(0, 10), _face(20, 30), _face(1900, 1910)], 1920, 1080)

    candidates = cropper.crop_candidates(SQUARE)

    assert len(candidates) == len(set(candidates))
    assert [g.x for g in candidates] == [415, 0, 840, 420]


def test_candidates_along_y() -> None:
    cropper = Cropper([Face(xmin=0, xmax=100, ymin=100, ymax=300)], 1080, 1920)
    ratio = AspectRatio(16, 9)

    assert cropper.direction(ratio) == Direction.Y
    assert cropper.crop_candidates(ratio) == [Geometry(1080, 607, 0, 0), Geometry(1080, 607, 0, 656)]


def test_out_of_bounds_face_is_clamped() -> None:
    cropper = Cropper([_face(-50, 100)], 1920, 1080)

    assert cropper.faces == [_face(0, 100)]
    assert cropper.crop(SQUARE).x == 0


def test_crop_is_deterministic() -> None:
    faces = [_face(300, 420), _face(1500, 1600), _face(900, 950)]

    first = Cropper(faces, 3000, 1000).crop_candidates(AspectRatio(16, 9))
    second = Cropper(faces, 3000, 1000).crop_candidates(AspectRatio(16, 9))

    assert first == second


def test_every_candidate_stays_inside_the_image() -> None:
    ratios = [AspectRatio(1, 1), AspectRatio(16, 9), AspectRatio(21, 9), AspectRatio(9, 16), AspectRatio(4, 3)]
    face_sets = [
        [],
        [_face(0, 50, 0, 50)],
        [_face(-100, 5000, -20, 3000)],
        [_face(100, 300, 50, 200), Face(xmin=400, xmax=480, ymin=400, ymax=480)],
    ]
    for width, height in [(1920, 1080), (1080, 1920), (500, 500), (3000, 1000), (1001, 999)]:
        for faces in face_sets:
            cropper = Cropper(faces, width, height)
            for ratio in ratios:
                for g in cropper.crop_candidates(ratio):
                    assert 0 <= g.x and g.x + g.w <= width
                    assert 0 <= g.y and g.y + g.h <= height


def test_crop_dimensions_fit_the_ratio() -> None:
    cropper = Cropper([], 1920, 1080)

    assert cropper.crop_dimensions(AspectRatio(16, 9)) == (1920, 1080)
    assert cropper.crop_dimensions(AspectRatio(21, 9)) == (1920, 822)
    assert cropper.crop_dimensions(AspectRatio(9, 16)) == (607, 1080)


def test_clamp_clips_to_image() -> None:
    cropper = Cropper([], 1920, 1080)

    assert cropper.clamp(-300.0, Direction.X, 1080, 1080) == Geometry(1080, 1080, 0, 0)
    assert cropper.clamp(5000.0, Direction.X, 1080, 1080) == Geometry(1080, 1080, 840, 0)
    assert cropper.clamp(100.7, Direction.Y, 1920, 822) == Geometry(1920, 822, 0, 100)


def test_image_too_small_for_ratio_is_fatal() -> None:
    with pytest.raises(ImageTooSmallError):
        Cropper([], 1, 1).crop(AspectRatio(21, 9))

    with pytest.raises(ImageTooSmallError):
        Cropper([], 0, 100)
