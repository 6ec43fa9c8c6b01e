"""
Sketchlab - Sketch to Transparent Line Art

Sketchlab removes the paper background from a raster sketch, turning it into
solid black lines on a transparent background, and exports the result as
PNG or SVG at 300, 600 and 1200 px wide.
"""

from .errors import (
    SketchlabError,
    InvalidInputError,
    DecodeError,
    ExportError,
)
from .models import (
    SIZE_CATALOG,
    SourceImage,
    ProcessedImage,
    ExportFormat,
    ExportSpec,
    ExportArtifact,
)
from .threshold import load_source, load_source_file, threshold
from .resize import resize, target_size
from .output import SVGWriter, wrap
from .export import (
    BatchReport,
    Delivery,
    DeliveryQueue,
    DirectorySink,
    MemorySink,
    ExportCoordinator,
)
from .session import Session

__version__ = "0.1.0"
__author__ = "Sketchlab Contributors"

__all__ = [
    # Errors
    'SketchlabError',
    'InvalidInputError',
    'DecodeError',
    'ExportError',
    # Data model
    'SIZE_CATALOG',
    'SourceImage',
    'ProcessedImage',
    'ExportFormat',
    'ExportSpec',
    'ExportArtifact',
    # Pipeline stages
    'load_source',
    'load_source_file',
    'threshold',
    'resize',
    'target_size',
    'SVGWriter',
    'wrap',
    # Export
    'BatchReport',
    'Delivery',
    'DeliveryQueue',
    'DirectorySink',
    'MemorySink',
    'ExportCoordinator',
    # Session
    'Session',
]
