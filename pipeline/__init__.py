from .config import DetectorConfig
from .copymove_pipeline import CopyMovePipeline, DetectionResult

__all__ = ["CopyMovePipeline", "DetectionResult", "DetectorConfig"]
