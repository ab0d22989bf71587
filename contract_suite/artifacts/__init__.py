"""Artifacts module - compiled unit loading."""

from .loader import (
    ArtifactLoader,
    FileArtifactLoader,
    UnitArtifact,
    tested_unit_name,
)

__all__ = [
    "ArtifactLoader",
    "FileArtifactLoader",
    "UnitArtifact",
    "tested_unit_name",
]
