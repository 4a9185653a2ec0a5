"""Face-aware wallpaper cropping metadata and ingest pipeline."""

__version__ = "0.1.0"
