"""
Classifier Configuration Module

This module provides a Python interface to classifier.yaml, the single
source of truth for the model name, input dimensions and label table.

Usage:
    from shapecam.config import get_config, load_pipeline_config

    # Raw YAML mapping (cached)
    config = get_config()

    # Validated, immutable pipeline configuration
    pipeline_config = load_pipeline_config()
    pipeline_config.labels[0]   # 'Circle'
"""

from collections import Counter
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from shapecam.processing.transforms import LUMA_WEIGHTS


# =============================================================================
# Constants
# =============================================================================

# Shipped alongside this module as package data
_CONFIG_PATH = Path(__file__).parent / "classifier.yaml"

DEFAULT_INPUT_SIZE: int = 224
"""Default square model input dimension."""


# =============================================================================
# Pipeline Configuration
# =============================================================================

@dataclass(frozen=True)
class PipelineConfig:
    """
    Immutable configuration passed to the pipeline at construction time.

    Attributes:
        target_width: Width of the normalized frame and model input
        target_height: Height of the normalized frame and model input
        labels: Class labels, positionally aligned with model output scores
        model_name: Name of the bundled model resource (without suffix)
    """

    target_width: int = DEFAULT_INPUT_SIZE
    target_height: int = DEFAULT_INPUT_SIZE
    labels: Tuple[str, ...] = ()
    model_name: str = "shape_classification_model"

    def __post_init__(self) -> None:
        if self.target_width < 1 or self.target_height < 1:
            raise ValueError(
                f"Invalid target size: {self.target_width}x{self.target_height}"
            )
        if not self.labels:
            raise ValueError("Label table must not be empty")
        # Accept any sequence but store a tuple
        object.__setattr__(self, "labels", tuple(self.labels))

    @property
    def input_size(self) -> int:
        """Number of values in one packed input tensor."""
        return self.target_width * self.target_height

    def duplicate_labels(self) -> List[str]:
        """Labels that appear more than once in the table."""
        counts = Counter(self.labels)
        return [label for label, count in counts.items() if count > 1]


# =============================================================================
# Configuration Loading
# =============================================================================

@lru_cache(maxsize=1)
def get_config() -> Dict[str, Any]:
    """
    Load and cache the classifier configuration.

    Returns:
        Complete classifier configuration dictionary

    Raises:
        FileNotFoundError: If classifier.yaml not found
        yaml.YAMLError: If YAML parsing fails

    Example:
        >>> get_config()["model"]["name"]
        'shape_classification_model'
    """
    if not _CONFIG_PATH.exists():
        raise FileNotFoundError(
            f"Classifier configuration not found: {_CONFIG_PATH}"
        )

    with open(_CONFIG_PATH, "r") as f:
        return yaml.safe_load(f)


def reload_config() -> Dict[str, Any]:
    """
    Force reload of configuration (clears cache).

    Returns:
        Freshly loaded configuration dictionary
    """
    get_config.cache_clear()
    return get_config()


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a classifier configuration from an explicit path (uncached).

    Args:
        path: Path to a YAML file with the same layout as classifier.yaml

    Returns:
        Parsed configuration dictionary
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Classifier configuration not found: {path}")

    with open(path, "r") as f:
        return yaml.safe_load(f)


def get_labels(config: Optional[Dict[str, Any]] = None) -> List[str]:
    """
    Get the ordered label table.

    Args:
        config: Parsed configuration (default: the shipped classifier.yaml)

    Example:
        >>> get_labels()[:3]
        ['Circle', 'Kite', 'Parallelogram']
    """
    if config is None:
        config = get_config()
    return [str(label) for label in config.get("labels") or []]


def get_luma_weights(config: Optional[Dict[str, Any]] = None) -> Tuple[float, float, float]:
    """
    Get the RGB luminance weights.

    Falls back to BT.601 when the configuration does not set them.

    Args:
        config: Parsed configuration (default: the shipped classifier.yaml)

    Example:
        >>> get_luma_weights()
        (0.299, 0.587, 0.114)
    """
    if config is None:
        config = get_config()
    weights = (config.get("preprocessing") or {}).get("luma_weights", LUMA_WEIGHTS)
    return tuple(float(w) for w in weights)


def load_pipeline_config(path: Optional[Path] = None) -> PipelineConfig:
    """
    Build a PipelineConfig from classifier.yaml (or an explicit file).

    Args:
        path: Optional alternative YAML file

    Returns:
        Validated PipelineConfig

    Raises:
        KeyError: If a required section is missing
        ValueError: If dimensions or labels are invalid
    """
    config = get_config() if path is None else load_config_file(path)

    model = config["model"]
    model_input = model["input"]

    return PipelineConfig(
        target_width=int(model_input["width"]),
        target_height=int(model_input["height"]),
        labels=tuple(get_labels(config)),
        model_name=str(model["name"]),
    )


# =============================================================================
# Validation
# =============================================================================

def validate_config(config: Optional[Dict[str, Any]] = None) -> List[str]:
    """
    Validate the classifier configuration.

    Args:
        config: Configuration to check (default: the shipped classifier.yaml)

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if config is None:
        try:
            config = get_config()
        except (OSError, yaml.YAMLError) as e:
            return [f"Failed to load config: {e}"]

    for section in ["model", "preprocessing", "labels"]:
        if section not in config:
            errors.append(f"Missing required section: {section}")

    model = config.get("model", {})
    if "name" not in model:
        errors.append("Model missing field: name")

    model_input = model.get("input", {})
    for field in ["width", "height"]:
        value = model_input.get(field)
        if not isinstance(value, int) or value < 1:
            errors.append(f"Model input {field} must be a positive integer")

    labels = config.get("labels") or []
    if not labels:
        errors.append("Label table is empty")

    num_classes = model.get("output", {}).get("num_classes")
    if num_classes is not None and labels and num_classes != len(labels):
        errors.append(
            f"Model declares {num_classes} classes but {len(labels)} labels given"
        )

    weights = config.get("preprocessing", {}).get("luma_weights")
    if weights is not None and len(weights) != 3:
        errors.append("luma_weights must have exactly 3 entries (R, G, B)")

    return errors
