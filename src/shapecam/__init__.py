"""
shapecam - Real-time Geometric Shape Classification

Converts camera frames into the flat luminance tensor a pre-trained shape
classifier expects, runs the model, and maps its scores to a label:

- processing: Frame normalization (resize, luminance) and tensor packing
- model: Inference engine adapters and named model resolution
- inference: Model invocation and result decoding
- pipeline: Per-frame glue, single-flight dispatch, display handoff
"""

from shapecam.config import PipelineConfig, load_pipeline_config
from shapecam.inference import Prediction, decode, infer
from shapecam.pipeline import FrameDispatcher, ResultDisplay, ShapeClassificationPipeline
from shapecam.processing import ShapePreprocessor, normalize_frame, pack_tensor

__all__ = [
    "PipelineConfig",
    "load_pipeline_config",
    "Prediction",
    "decode",
    "infer",
    "FrameDispatcher",
    "ResultDisplay",
    "ShapeClassificationPipeline",
    "ShapePreprocessor",
    "normalize_frame",
    "pack_tensor",
]

__version__ = "0.1.0"
