"""
Configuration loader
"""
import yaml
from pathlib import Path
from typing import Optional
from toolaudit.models import AnalysisConfig


def load_config(config_path: Optional[str] = None) -> AnalysisConfig:
    """
    Load configuration from YAML file

    Args:
        config_path: Path to config file, or None for the compiled-in defaults

    Returns:
        AnalysisConfig object

    Raises:
        FileNotFoundError: If an explicit config path does not exist
    """
    if config_path is None:
        return AnalysisConfig()

    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f) or {}

    return AnalysisConfig(**data)
