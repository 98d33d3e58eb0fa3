"""Media ingestion building blocks: staging, probing, classification and publishing."""

from .classify import AspectClassification, classify
from .probe import VideoGeometry, parse_probe_output, probe_geometry
from .publish import RemotePublisher, object_key
from .staging import discard_staged, stage_upload

__all__ = [
    "AspectClassification",
    "classify",
    "VideoGeometry",
    "parse_probe_output",
    "probe_geometry",
    "RemotePublisher",
    "object_key",
    "discard_staged",
    "stage_upload",
]
