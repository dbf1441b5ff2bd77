"""
Utility Functions

Helper functions for configuration, logging, and I/O.
"""

import yaml
import json
import logging
from pathlib import Path
from typing import Dict, Any, Optional, Union
from datetime import datetime


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        Configuration dictionary
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        config = yaml.safe_load(f)

    return config or {}


def save_config(config: Dict[str, Any],
                config_path: Union[str, Path]) -> None:
    """Save configuration to YAML file."""
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False)


def save_results(results: Dict[str, Any],
                 output_dir: Union[str, Path],
                 name: str = "results",
                 formats: tuple = ('json',)) -> Dict[str, Path]:
    """
    Save results to multiple formats.

    Args:
        results: Results dictionary
        output_dir: Output directory
        name: Base filename
        formats: Output formats ('json', 'yaml')

    Returns:
        Dictionary of format -> output path
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    base_name = f"{name}_{timestamp}"

    output_paths = {}

    if 'json' in formats:
        json_path = output_dir / f"{base_name}.json"
        with open(json_path, 'w') as f:
            json.dump(results, f, indent=2, default=str)
        output_paths['json'] = json_path

    if 'yaml' in formats:
        yaml_path = output_dir / f"{base_name}.yaml"
        with open(yaml_path, 'w') as f:
            # Round-trip through JSON to drop numpy scalars
            yaml.safe_dump(json.loads(json.dumps(results, default=str)), f,
                           default_flow_style=False)
        output_paths['yaml'] = yaml_path

    return output_paths


def setup_logging(level: str = "INFO",
                  log_file: Optional[Union[str, Path]] = None) -> logging.Logger:
    """
    Setup logging configuration.

    Args:
        level: Logging level
        log_file: Optional log file path

    Returns:
        Logger instance
    """
    logger = logging.getLogger("drrip")
    logger.setLevel(getattr(logging, level.upper()))

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    # Console handler
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    # File handler (if specified)
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def format_number(n: Union[int, float], precision: int = 2) -> str:
    """Format large numbers with K/M/B suffixes."""
    if abs(n) >= 1e9:
        return f"{n/1e9:.{precision}f}B"
    elif abs(n) >= 1e6:
        return f"{n/1e6:.{precision}f}M"
    elif abs(n) >= 1e3:
        return f"{n/1e3:.{precision}f}K"
    else:
        return f"{n:.{precision}f}"


def create_policy_from_config(config: Dict[str, Any],
                              policy_type: str = "drrip"):
    """
    Create replacement policy instance from configuration.

    Args:
        config: Full configuration dictionary. Geometry comes from its
            'cache' section; a section named after the policy overrides it.
        policy_type: Type of policy to create

    Returns:
        Policy instance
    """
    from ..policies.base import LRUPolicy
    from ..policies.drrip import DRRIPPolicy, SRRIPPolicy, BIPPolicy

    policy_map = {
        'drrip': DRRIPPolicy,
        'srrip': SRRIPPolicy,
        'bip': BIPPolicy,
        'lru': LRUPolicy,
    }

    policy_class = policy_map.get(policy_type.lower())
    if not policy_class:
        raise ValueError(f"Unknown policy type: {policy_type}")

    type_config = dict(config.get('cache', {}))
    type_config.update(config.get(policy_type.lower(), {}))

    return policy_class(type_config)
