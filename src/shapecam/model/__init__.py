"""
Model Module - Inference Engines and Model Registry

This module provides:
- engine: Narrow load / set_input / invoke adapters over ONNX Runtime and TFLite
- registry: Resolve a named model resource and load it once
"""

from shapecam.model.engine import (
    InferenceEngine,
    LoadedModel,
    OnnxRuntimeEngine,
    SessionConfig,
    TFLiteEngine,
)

from shapecam.model.registry import ModelRegistry

__all__ = [
    # Engines
    "InferenceEngine",
    "LoadedModel",
    "OnnxRuntimeEngine",
    "SessionConfig",
    "TFLiteEngine",
    # Registry
    "ModelRegistry",
]
