"""
Configuration loaders for YAML and JSON files.

Loads OctreeConfig from files with nested sections:

    tree:
      depth: 16
      dtype: uint8
    arena:
      initial_capacity: 1024
      max_nodes: 1000000
      growth_factor: 2.0
    misc:
      verbose: false
"""

from typing import Dict, Any, Union
from pathlib import Path
import yaml
import json

from sparse_octree.core.octree import OctreeConfig


# Field mapping for nested structures
FIELD_MAPPINGS = {
    'tree': {
        'depth': 'depth',
        'dtype': 'dtype',
    },
    'arena': {
        'initial_capacity': 'initial_capacity',
        'capacity': 'initial_capacity',
        'max_nodes': 'max_nodes',
        'growth_factor': 'growth_factor',
    },
    'misc': {
        'verbose': 'verbose',
    },
}


def load_config(filename: Union[str, Path], **overrides) -> OctreeConfig:
    """
    Load octree configuration from YAML or JSON file.

    Parameters
    ----------
    filename : str or Path
        Path to configuration file (.yaml, .yml, or .json)
    **overrides : keyword arguments
        Override specific config values (e.g., depth=10, dtype="uint8")

    Returns
    -------
    config : OctreeConfig
        Validated configuration

    Raises
    ------
    FileNotFoundError
        If configuration file does not exist
    ValueError
        If file format is unsupported or config is invalid

    Examples
    --------
    >>> config = load_config("terrain.yaml")
    >>> config = load_config("terrain.yaml", depth=12)
    """
    filepath = Path(filename)

    if not filepath.exists():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        config_dict = load_yaml(filepath)
    elif suffix == '.json':
        config_dict = load_json(filepath)
    else:
        raise ValueError(
            f"Unsupported config file format: {suffix}. "
            "Use .yaml, .yml, or .json"
        )

    flat_config = flatten_config(config_dict)
    flat_config.update(overrides)

    try:
        config = OctreeConfig(**flat_config)
    except Exception as e:
        raise ValueError(
            f"Configuration validation failed for {filepath}: {e}"
        ) from e

    return config


def load_yaml(filepath: Path) -> Dict[str, Any]:
    """Load YAML configuration file (an empty file yields {})."""
    with open(filepath, 'r') as f:
        config_dict = yaml.safe_load(f)

    if config_dict is None:
        config_dict = {}

    return config_dict


def load_json(filepath: Path) -> Dict[str, Any]:
    """Load JSON configuration file."""
    with open(filepath, 'r') as f:
        config_dict = json.load(f)

    return config_dict


def flatten_config(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten nested configuration dictionary.

    Converts nested structures like:
        {'tree': {'depth': 8}, 'arena': {'capacity': 256}}
    to:
        {'depth': 8, 'initial_capacity': 256}

    Parameters
    ----------
    config_dict : Dict[str, Any]
        Nested configuration dictionary

    Returns
    -------
    flat_dict : Dict[str, Any]
        Flattened configuration dictionary
    """
    flat = {}

    for key, value in config_dict.items():
        if key in FIELD_MAPPINGS and isinstance(value, dict):
            for subkey, subvalue in value.items():
                # Unmapped keys pass through so OctreeConfig can reject them
                flat[FIELD_MAPPINGS[key].get(subkey, subkey)] = subvalue
        elif isinstance(value, dict):
            flat.update(flatten_config(value))
        else:
            flat[key] = value

    return flat


def save_config(config: OctreeConfig, filename: Union[str, Path]) -> None:
    """
    Save OctreeConfig to a YAML or JSON file in nested form.

    Parameters
    ----------
    config : OctreeConfig
        Configuration to save
    filename : str or Path
        Output file path (.yaml, .yml or .json)
    """
    filepath = Path(filename)
    config_dict = config.model_dump()

    organized = {
        'tree': {
            'depth': config_dict['depth'],
            'dtype': config_dict['dtype'],
        },
        'arena': {
            'initial_capacity': config_dict['initial_capacity'],
            'max_nodes': config_dict['max_nodes'],
            'growth_factor': config_dict['growth_factor'],
        },
        'misc': {
            'verbose': config_dict['verbose'],
        },
    }

    suffix = filepath.suffix.lower()
    if suffix in ['.yaml', '.yml']:
        with open(filepath, 'w') as f:
            yaml.dump(organized, f, default_flow_style=False, sort_keys=False)
    elif suffix == '.json':
        with open(filepath, 'w') as f:
            json.dump(organized, f, indent=2)
    else:
        raise ValueError(f"Unsupported output format: {suffix}. Use .yaml or .json")


def config_from_dict(config_dict: Dict[str, Any]) -> OctreeConfig:
    """Create OctreeConfig from a (possibly nested) dictionary."""
    return OctreeConfig(**flatten_config(config_dict))
