"""Configuration and tile type loading utilities."""

import importlib
from pathlib import Path
from types import ModuleType
from typing import Any, Dict, Iterable

import yaml

from .config import DashboardConfig, EngineSettings
from .errors import ConfigurationError
from .registry import TransformRegistry, TransformStrategy

WIDGETS_PACKAGE = "tile_deck.widgets"


def load_yaml(file_path: Path) -> dict:
    """Load YAML file."""
    with open(file_path, 'r') as f:
        return yaml.safe_load(f) or {}


def load_dashboard_config(dashboard_file: Path) -> DashboardConfig:
    """Load and validate dashboard configuration."""
    data = load_yaml(dashboard_file)
    return DashboardConfig(**data)


def load_engine_settings(settings_file: Path) -> EngineSettings:
    """Load engine settings, falling back to defaults if the file is missing."""
    settings_file = Path(settings_file)
    if not settings_file.exists():
        return EngineSettings()
    data = load_yaml(settings_file)
    return EngineSettings(**data)


def load_widget_module(widget_type: str) -> ModuleType:
    """Dynamically load a tile type module.

    Args:
        widget_type: Tile type in kebab-case (e.g., "crypto-price")

    Returns:
        Module exposing ``strategy``, ``build_request`` and ``REQUIRED_PARAMS``

    Raises:
        ConfigurationError if the module or its strategy is missing
    """
    # Convert kebab-case to snake_case for module name
    module_name = widget_type.replace("-", "_")

    try:
        module = importlib.import_module(f"{WIDGETS_PACKAGE}.{module_name}")
    except ImportError as e:
        raise ConfigurationError(
            f"Tile module '{WIDGETS_PACKAGE}.{module_name}' not found. "
            f"Expected file: src/tile_deck/widgets/{module_name}.py",
            key=widget_type,
        ) from e

    if not isinstance(getattr(module, "strategy", None), TransformStrategy):
        raise ConfigurationError(
            f"Tile module '{module_name}' does not define a TransformStrategy named 'strategy'",
            key=widget_type,
        )
    return module


def validate_params(module: ModuleType, widget_type: str, params: Dict[str, Any]):
    """Ensure all required params for a tile type are present."""
    missing = [p for p in getattr(module, "REQUIRED_PARAMS", []) if p not in params]
    if missing:
        raise ConfigurationError(
            f"{widget_type} missing required params: {', '.join(missing)}",
            key=widget_type,
        )


def register_widget_strategies(registry: TransformRegistry, widget_types: Iterable[str]):
    """Register the strategy of every listed tile type, keyed by its type."""
    for widget_type in widget_types:
        registry.register(widget_type, load_widget_module(widget_type).strategy)
