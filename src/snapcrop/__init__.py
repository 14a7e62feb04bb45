from .image_processing.batch import BatchProcessor, read_image_list
from .image_processing.pipeline import ResizeCropper, SnapCropPipeline
from .image_processing.snapping import ImageTooSmallError, snap
from .media.loader import ImageDecodeError, SourceLoader, decode_image
from .media.writer import ContentAddressedWriter, OutputExistsError
from .models import BatchReport, JobResult, JobStatus, ResolutionPair, ResolutionSet, SnapResult
from .resolutions.spec_parser import (
    ResolutionSetError,
    ResolutionSpecError,
    load_resolution_set,
    parse_resolutions,
)

__all__ = [
    "BatchProcessor",
    "BatchReport",
    "ContentAddressedWriter",
    "ImageDecodeError",
    "ImageTooSmallError",
    "JobResult",
    "JobStatus",
    "OutputExistsError",
    "ResizeCropper",
    "ResolutionPair",
    "ResolutionSet",
    "ResolutionSetError",
    "ResolutionSpecError",
    "SnapCropPipeline",
    "SnapResult",
    "SourceLoader",
    "decode_image",
    "load_resolution_set",
    "parse_resolutions",
    "read_image_list",
    "snap",
]
