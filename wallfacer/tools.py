"""
External tool invocations.

Every tool is awaited to completion; there are no timeouts and no
retries.  A tool that cannot be spawned, or that exits with a failure
status, raises ToolError.  Tool output is silenced except for the face
detector, whose stdout is the pipeline's data (see ``pipeline``).

``wait_for_file`` blocks until another process has written a path.  It is
only needed where a tool gives no completion signal of its own.
"""

import logging
import subprocess
import time
from pathlib import Path

from wallfacer.config import WAIT_POLL_INTERVAL
from wallfacer.errors import ToolError, UnsupportedFormatError

logger = logging.getLogger(__name__)


def run_tool(cmd: list[str]) -> None:
    """Run *cmd* to completion, silencing its output."""
    logger.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            cmd,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=False,
        )
    except OSError as exc:
        raise ToolError(f"could not spawn {cmd[0]}: {exc}") from exc
    if result.returncode != 0:
        raise ToolError(f"{cmd[0]} exited with status {result.returncode}")


def wait_for_file(path: Path, interval: float = WAIT_POLL_INTERVAL) -> None:
    """Block until *path* exists, polling every *interval* seconds."""
    while not path.exists():
        time.sleep(interval)


# =============================================================================
# Upscaler
# =============================================================================
def upscale(upscaler: list[str], src: Path, scale_factor: int, dest: Path) -> None:
    """Upscale *src* by an integer factor into *dest*."""
    run_tool([*upscaler, "-i", str(src), "-s", str(scale_factor), "-o", str(dest)])


# =============================================================================
# Optimizers
# =============================================================================
def optimize_webp(infile: Path, outfile: Path) -> None:
    run_tool(["cwebp", "-q", "100", "-m", "6", "-mt", "-af", str(infile), "-o", str(outfile)])


def optimize_jpg(infile: Path, outfile: Path) -> None:
    # jpegoptim keeps the input filename inside the destination directory
    run_tool(["jpegoptim", "--strip-all", str(infile), "--dest", str(outfile.parent)])


def optimize_png(infile: Path, outfile: Path) -> None:
    run_tool(["oxipng", "--opt", "max", str(infile), "--out", str(outfile)])


OPTIMIZERS = {
    ".jpg": optimize_jpg,
    ".jpeg": optimize_jpg,
    ".png": optimize_png,
    ".webp": optimize_webp,
}


def optimize(infile: Path, outfile: Path) -> None:
    """Optimize *infile* into *outfile* with the tool matching *outfile*'s extension."""
    optimizer = OPTIMIZERS.get(outfile.suffix.lower())
    if optimizer is None:
        raise UnsupportedFormatError(f"unsupported image format: {outfile.suffix!r}")
    optimizer(infile, outfile)


# =============================================================================
# Editor hand-off
# =============================================================================
def launch_editor(editor: list[str], paths: list[Path]) -> None:
    """Open *paths* in the interactive crop editor and wait for it to close."""
    if not paths:
        return
    logger.info("Opening %d wallpaper(s) in %s", len(paths), editor[0])
    try:
        subprocess.run([*editor, *(str(p) for p in paths)], check=True)
    except OSError as exc:
        raise ToolError(f"could not spawn {editor[0]}: {exc}") from exc
    except subprocess.CalledProcessError as exc:
        raise ToolError(f"{editor[0]} exited with status {exc.returncode}") from exc
