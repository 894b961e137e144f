"""Service surface extraction."""

from storyprobe.source.extractor import SourceExtractor, extract_source_model
from storyprobe.source.models import EndpointInfo, ModelInfo, SourceModel

__all__ = [
    "EndpointInfo",
    "ModelInfo",
    "SourceModel",
    "SourceExtractor",
    "extract_source_model",
]
