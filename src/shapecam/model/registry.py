"""Model Registry.

This module resolves a named model resource to a file in the models
directory, loads it with the engine matching its file type, and caches the
result so the model is loaded exactly once.

Features:
- Name resolution: "<name>.onnx" is preferred, then "<name>.tflite"
- Engine selection by file suffix
- Session caching: the model is never reloaded
- Thread-safe access
"""

import logging
from pathlib import Path
from threading import Lock

from shapecam.errors import ModelNotFoundError
from shapecam.model.engine import (
    InferenceEngine,
    LoadedModel,
    OnnxRuntimeEngine,
    SessionConfig,
    TFLiteEngine,
)

logger = logging.getLogger(__name__)


class ModelRegistry:
    """Registry for loading and caching models by name.

    Example:
        >>> registry = ModelRegistry(models_dir=Path("models/"))
        >>> model = registry.load("shape_classification_model")
        >>> model.input_size
        50176

    Attributes:
        models_dir: Base directory for model files
        config: ONNX Runtime session configuration
        engines: Engines keyed by file suffix, in resolution order
    """

    def __init__(
        self,
        models_dir: Path,
        config: SessionConfig | None = None,
        engines: dict[str, InferenceEngine] | None = None,
    ) -> None:
        """Initialize ModelRegistry.

        Args:
            models_dir: Directory containing model files
            config: Session configuration for the ONNX engine
            engines: Override the suffix -> engine mapping
        """
        self.models_dir = Path(models_dir)
        self.config = config or SessionConfig()

        if engines is None:
            engines = {
                OnnxRuntimeEngine.suffix: OnnxRuntimeEngine(self.config),
                TFLiteEngine.suffix: TFLiteEngine(self.config.intra_op_threads),
            }
        self.engines = engines

        self._models: dict[str, LoadedModel] = {}
        self._lock = Lock()

        logger.info("ModelRegistry initialized")
        logger.info(f"  Models dir: {self.models_dir}")
        logger.info(f"  Engines: {', '.join(self.engines)}")

    def resolve(self, model_name: str) -> Path:
        """Resolve a model name to a file path.

        Raises:
            ModelNotFoundError: If no file with a supported suffix exists
        """
        for suffix in self.engines:
            candidate = self.models_dir / f"{model_name}{suffix}"
            if candidate.exists():
                return candidate

        tried = ", ".join(f"{model_name}{suffix}" for suffix in self.engines)
        raise ModelNotFoundError(
            f"Model '{model_name}' not found in {self.models_dir} (tried: {tried})"
        )

    def load(self, model_name: str) -> LoadedModel:
        """Load a model, or return the cached instance.

        Raises:
            ModelNotFoundError: If the model file is missing
            ModelLoadError: If the engine fails to load the model
        """
        with self._lock:
            if model_name not in self._models:
                self._models[model_name] = self._load_model(model_name)

            return self._models[model_name]

    def _load_model(self, model_name: str) -> LoadedModel:
        model_path = self.resolve(model_name)
        engine = self.engines[model_path.suffix]

        logger.info(f"Loading model: {model_name} from {model_path}")
        model = engine.load(model_path, name=model_name)

        logger.info(f"  Loaded {model_name} with {type(engine).__name__}")
        logger.info(f"    Input: {model.input_name} {model.input_shape}")
        logger.info(f"    Output: {model.output_name} {model.output_shape}")
        return model

    def is_loaded(self, model_name: str) -> bool:
        """Check if a model is already loaded."""
        return model_name in self._models

    def clear_cache(self) -> None:
        """Drop all cached models."""
        with self._lock:
            self._models.clear()
            logger.info("Model cache cleared")

    def list_available(self) -> list[str]:
        """List model names with a loadable file in the models directory."""
        if not self.models_dir.is_dir():
            return []

        return sorted(
            {
                path.stem
                for path in self.models_dir.iterdir()
                if path.suffix in self.engines
            }
        )
