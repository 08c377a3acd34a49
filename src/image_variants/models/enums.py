"""Enumerations for the image variant data model."""

from enum import Enum


class AssetCategory(str, Enum):
    """What an image depicts. Selects the size catalog, nothing else."""

    POSTER = "poster"
    PROFILE = "profile"
    BACKDROP = "backdrop"


class SizeState(str, Enum):
    """Progress of one size within a single process_image call."""

    CHECKING_EXISTENCE = "checking_existence"
    EXISTS = "exists"  # Terminal
    DOWNLOADING = "downloading"
    RESIZING = "resizing"
    UPLOADING = "uploading"
    FAILED = "failed"  # Terminal, propagates
