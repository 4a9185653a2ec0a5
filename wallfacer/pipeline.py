"""
Batch pipeline that brings new wallpapers into the metadata table.

Each image is in exactly one stage at a time::

    Upscale(src, factor) --upscale-->  Optimize(dst)   (factor 1: Optimize(src))
    Optimize(path)       --optimize--> Detect(out)
    Detect(path)         --detect-->   stored          (face count != 1: also Preview)
    Preview(path)        handed to the crop editor

Stages advance batch-wise: every image is upscaled, then every image is
optimized, then one face-detector process runs over the whole batch.
The detector prints one JSON line per path, in the order the paths were
given; the line count is checked before any result is used, and the
table is saved once after the batch.  Any failure aborts the run before
anything is saved.
"""

import asyncio
import json
import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path

from wallfacer.config import SCALE_FACTORS
from wallfacer.cropper import Cropper
from wallfacer.errors import DetectorProtocolError, GeometryError, ImageTooSmallError, PipelineError, ToolError
from wallfacer.image_io import filter_images, get_image_size, output_path, with_directory
from wallfacer.models import Face
from wallfacer.settings import WallpaperConfig
from wallfacer.tools import launch_editor, optimize, upscale, wait_for_file
from wallfacer.wallpapers import WallInfo, WallpaperStore

logger = logging.getLogger(__name__)


# =============================================================================
# Stages
# =============================================================================
@dataclass(frozen=True)
class Upscale:
    source: Path
    scale_factor: int


@dataclass(frozen=True)
class Optimize:
    path: Path


@dataclass(frozen=True)
class Detect:
    path: Path


@dataclass(frozen=True)
class Preview:
    path: Path


Stage = Upscale | Optimize | Detect | Preview


def stage_path(stage: Stage) -> Path:
    match stage:
        case Upscale(source=path) | Optimize(path=path) | Detect(path=path) | Preview(path=path):
            return path


def get_scale_factor(width: int, height: int, min_width: int, min_height: int) -> int:
    """Smallest factor in 1..4 that brings both sides up to the minimum."""
    for scale_factor in SCALE_FACTORS:
        if width * scale_factor >= min_width and height * scale_factor >= min_height:
            return scale_factor
    raise ImageTooSmallError(
        f"image {width}x{height} is too small to be upscaled to {min_width}x{min_height}"
    )


# =============================================================================
# Face detector protocol
# =============================================================================
def parse_faces(line: str) -> list[Face]:
    """Decode one detector output line into faces."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise DetectorProtocolError(f"could not decode faces {line!r}: {exc}") from exc
    if not isinstance(data, list):
        raise DetectorProtocolError(f"expected a list of faces, got {line!r}")
    try:
        return [Face.from_json(face) for face in data]
    except GeometryError as exc:
        raise DetectorProtocolError(str(exc)) from exc


async def read_detector(detector: list[str], paths: list[Path]) -> list[str]:
    """
    Run the face detector once over *paths* and collect its output lines.

    Line *i* belongs to ``paths[i]``.  Raises DetectorProtocolError if the
    number of lines differs from the number of paths.
    """
    try:
        proc = await asyncio.create_subprocess_exec(
            *detector, *(str(p) for p in paths),
            stdout=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise ToolError(f"could not spawn {detector[0]}: {exc}") from exc

    raw_lines: list[bytes] = []
    try:
        async for raw in proc.stdout:
            if len(raw_lines) < len(paths):
                logger.info("Detecting faces in %s...", paths[len(raw_lines)].name)
            raw_lines.append(raw)
    finally:
        returncode = await proc.wait()

    if returncode != 0:
        raise ToolError(f"{detector[0]} exited with status {returncode}")
    if len(raw_lines) != len(paths):
        raise DetectorProtocolError(
            f"{detector[0]} returned {len(raw_lines)} line(s) for {len(paths)} image(s)"
        )

    lines = []
    for path, raw in zip(paths, raw_lines):
        try:
            lines.append(raw.decode("utf-8").rstrip("\r\n"))
        except UnicodeDecodeError as exc:
            raise DetectorProtocolError(f"undecodable detector output for {path.name}: {exc}") from exc
    return lines


# =============================================================================
# Pipeline
# =============================================================================
class WallpaperPipeline:
    """State for one ingest run: queued stages, the config and the metadata table."""

    def __init__(
        self,
        cfg: WallpaperConfig,
        fmt: str | None = None,
        min_width: int | None = None,
        min_height: int | None = None,
        store: WallpaperStore | None = None,
    ):
        self.cfg = cfg
        self.format = fmt
        self.min_width = min_width or cfg.min_width
        self.min_height = min_height or cfg.min_height
        self.wall_dir = cfg.wallpapers_dir
        self.resolutions = cfg.sorted_resolutions()
        self.store = store if store is not None else WallpaperStore(cfg.csv_path, cfg.wallpapers_dir).load()
        self.images: list[Stage] = []

        self.store.find_duplicates()

        # images already in the wallpapers dir but missing from the table
        for img in filter_images(self.wall_dir):
            if self.store.get(img.name) is None:
                self.images.append(Detect(img))

    def _is_queued(self, *paths: Path) -> bool:
        return any(stage_path(stage) in paths for stage in self.images)

    def add_image(self, img: Path) -> None:
        """Classify *img* against the table and queue the stage it needs."""
        out_path = output_path(img, self.wall_dir, self.format)
        if self._is_queued(img, out_path):
            return

        width, height = get_image_size(img)

        if out_path.exists():
            info = self.store.get(out_path.name)
            if info is None:
                self.images.append(Detect(out_path))
                return

            # same aspect as the stored image, so it has not been edited since
            if info.width * height == info.height * width:
                default_crops = info.is_default_crops(self.resolutions)
                if len(info.faces) == 1 and not default_crops:
                    logger.debug("Skipping %s: already processed", img.name)
                    return
                # re-preview if no / multiple faces and still using default crops
                if len(info.faces) != 1 and default_crops:
                    self.images.append(Preview(out_path))
                    return

        self.images.append(Upscale(
            img, get_scale_factor(width, height, self.min_width, self.min_height),
        ))

    # -------------------------------------------------------------------------
    # Stage transitions
    # -------------------------------------------------------------------------
    def _upscale(self, stage: Stage) -> Stage:
        match stage:
            case Upscale(source=src, scale_factor=1):
                return Optimize(src)
            case Upscale(source=src, scale_factor=scale_factor):
                dest = output_path(src, Path(tempfile.gettempdir()), self.format)
                logger.info("Upscaling %s...", src.name)
                upscale(self.cfg.upscaler, src, scale_factor, dest)
                return Optimize(dest)
            case Optimize() | Detect() | Preview():
                return stage

    def _optimize(self, stage: Stage) -> Stage:
        match stage:
            case Upscale():
                raise PipelineError(f"Optimize: got unprocessed image: {stage}")
            case Optimize(path=src):
                wait_for_file(src)
                out_img = output_path(src, self.wall_dir, self.format)
                logger.info("Optimizing %s...", src.name)
                optimize(src, out_img)
                return Detect(out_img)
            case Detect() | Preview():
                return stage

    def upscale_images(self) -> None:
        self.images = [self._upscale(stage) for stage in self.images]

    def optimize_images(self) -> None:
        self.images = [self._optimize(stage) for stage in self.images]

    def detect_faces(self) -> None:
        """Detect faces for every queued image and store a new row for each."""
        to_preview: list[Stage] = []
        paths: list[Path] = []
        for stage in self.images:
            match stage:
                case Upscale() | Optimize():
                    raise PipelineError(f"Detect: got unprocessed image: {stage}")
                case Detect(path=path):
                    paths.append(path)
                case Preview():
                    to_preview.append(stage)

        if not paths:
            self.images = to_preview
            return

        # the optimizers may still be writing
        for path in paths:
            wait_for_file(path)

        lines = asyncio.run(read_detector(self.cfg.detector, paths))
        faces_per_path = [parse_faces(line) for line in lines]

        infos = []
        for path, faces in zip(paths, faces_per_path):
            width, height = get_image_size(path)
            cropper = Cropper(faces, width, height)
            infos.append(WallInfo(
                filename=path.name,
                width=width,
                height=height,
                faces=faces,
                geometries={ratio: cropper.crop(ratio) for ratio in self.resolutions},
            ))
            # preview both multiple faces and no faces
            if len(faces) != 1:
                to_preview.append(Preview(with_directory(path, self.wall_dir)))

        for info in infos:
            self.store.insert(info.filename, info)
        self.store.save(self.resolutions)

        self.images = to_preview

    def preview(self) -> list[Path]:
        """Hand surviving images to the crop editor.  Returns their paths."""
        paths = []
        for stage in self.images:
            match stage:
                case Preview(path=path):
                    paths.append(path)
                case Upscale() | Optimize() | Detect():
                    raise PipelineError(f"Preview: got unprocessed image: {stage}")

        if paths:
            launch_editor(self.cfg.editor, paths)
        return paths

    def run(self) -> list[Path]:
        self.upscale_images()
        self.optimize_images()
        self.detect_faces()
        return self.preview()
