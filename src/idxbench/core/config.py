"""
Configuration Management
========================

TOML-based configuration for idxbench.

Settings are layered; each source overrides the ones listed below it, key by key:
1. Path specified via --config option
2. ./idxbench.toml (current directory)
3. ~/.config/idxbench/config.toml (user config)
4. /etc/idxbench/config.toml (system config)
5. Built-in defaults

Example configuration file (idxbench.toml):

    [dataset]
    root = "./data/mnist"
    num_classes = 10
    strict_magic = true
    test_source = "split"

    [model]
    type = "dense"
    path = "mnist_model_float32.pt"
    layers = [[28, 28], [32, 32], [32, 32], [10, 1]]
    activations = ["linear", "relu", "relu", "softmax"]
    fully_connected = [true, true, true, true]
    accelerated_device = "cuda"
    force_retrain = false

    [training]
    epochs = 3
    learning_rate = 0.01
    batch_size = 1
    early_stop = false
    clip_upper = 1.0
    clip_lower = -1.0
    seed = 0

    [split]
    limit = 10
    ratio = 0.8
    train_count = 0

    [scoring]
    thresholds = [10.0, 20.0, 30.0, 40.0, 50.0, 100.0]

    [benchmark]
    enabled = true
    iterations = 1000
    warmup = 1

    [output]
    report_path = ""

    [logging]
    level = "INFO"
"""

import copy
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from idxbench.core.files import BinaryFile, TextFile, ensure_parent_dir

logger = logging.getLogger(__name__)

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


# Default configuration values
DEFAULT_CONFIG: Dict[str, Any] = {
    "dataset": {
        "root": "./data/mnist",
        "num_classes": 10,
        "strict_magic": True,
        "test_source": "split",  # "split" or "t10k"
    },
    "model": {
        "type": "dense",
        "path": "mnist_model_float32.pt",
        "layers": [[28, 28], [32, 32], [32, 32], [10, 1]],
        "activations": ["linear", "relu", "relu", "softmax"],
        "fully_connected": [True, True, True, True],
        "accelerated_device": "cuda",  # "cuda", "cuda:<n>", "mps" or "auto"
        "force_retrain": False,
    },
    "training": {
        "epochs": 3,
        "learning_rate": 0.01,
        "batch_size": 1,
        "early_stop": False,
        "clip_upper": 1.0,
        "clip_lower": -1.0,
        "seed": 0,
    },
    "split": {
        "limit": 10,  # 0 = use every sample
        "ratio": 0.8,
        "train_count": 0,  # > 0 overrides ratio
    },
    "scoring": {
        "thresholds": [10.0, 20.0, 30.0, 40.0, 50.0, 100.0],
    },
    "benchmark": {
        "enabled": True,
        "iterations": 1000,
        "warmup": 1,
    },
    "output": {
        "report_path": "",
    },
    "logging": {
        "level": "INFO",
    },
}

# Standard config file locations
CONFIG_LOCATIONS = [
    Path("idxbench.toml"),
    Path("~/.config/idxbench/config.toml").expanduser(),
    Path("/etc/idxbench/config.toml"),
]


@dataclass
class Config:
    """
    Configuration container for idxbench settings.

    Attributes:
        dataset: Dataset location and parsing options
        model: Model type, persisted path and architecture
        training: Training hyperparameters
        split: Truncation limit and train/test split
        scoring: Error tier thresholds
        benchmark: Benchmark protocol settings
        output: Report output settings
        logging: Logging settings
        _source: Path to the config file that was loaded
    """

    dataset: Dict[str, Any] = field(default_factory=dict)
    model: Dict[str, Any] = field(default_factory=dict)
    training: Dict[str, Any] = field(default_factory=dict)
    split: Dict[str, Any] = field(default_factory=dict)
    scoring: Dict[str, Any] = field(default_factory=dict)
    benchmark: Dict[str, Any] = field(default_factory=dict)
    output: Dict[str, Any] = field(default_factory=dict)
    logging: Dict[str, Any] = field(default_factory=dict)
    _source: Optional[str] = None

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """Look up ``[section] key``, returning ``default`` when either is missing."""
        values = getattr(self, section, None)
        if not isinstance(values, dict):
            return default
        return values.get(key, default)

    def set(self, section: str, key: str, value: Any) -> None:
        """Assign ``[section] key``; unknown sections are ignored."""
        values = getattr(self, section, None)
        if isinstance(values, dict):
            values[key] = value

    @property
    def source(self) -> Optional[str]:
        return self._source

    def to_dict(self) -> Dict[str, Any]:
        """Return every known section as a plain dictionary."""
        return {section: getattr(self, section) for section in DEFAULT_CONFIG}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: Optional[str] = None) -> "Config":
        """Build a Config from parsed TOML; unknown sections are dropped."""
        return cls(**{section: data.get(section, {}) for section in DEFAULT_CONFIG}, _source=source)


def load_toml(filepath: Union[str, Path]) -> Dict[str, Any]:
    """
    Parse one TOML file into nested dictionaries.

    Raises:
        FileNotFoundError: If ``filepath`` does not exist
        tomllib.TOMLDecodeError: If the file is not valid TOML
    """
    path = Path(filepath)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {filepath}")

    with BinaryFile(path) as f:
        return tomllib.load(f.handle)


def _format_value(value: Any) -> str:
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_format_value(v) for v in value) + "]"
    raise TypeError(f"Cannot write {type(value).__name__} to TOML")


def save_toml(config: Dict[str, Any], filepath: Union[str, Path]) -> str:
    """
    Write sectioned settings as TOML, creating parent directories.

    Only one level of tables is written; keys whose value is None are
    omitted and empty sections are skipped.

    Returns:
        The written path
    """
    blocks = []
    for section, values in config.items():
        if not isinstance(values, dict) or not values:
            continue
        body = [f"{key} = {_format_value(value)}" for key, value in values.items() if value is not None]
        blocks.append("\n".join([f"[{section}]"] + body))

    path = ensure_parent_dir(filepath)
    with TextFile(path, mode="w") as f:
        f.write("\n\n".join(blocks) + "\n")
    return str(path)


def get_config_locations() -> List[Path]:
    """Standard configuration files, highest priority first."""
    return list(CONFIG_LOCATIONS)


def find_config_file(config_path: Optional[str] = None) -> Optional[Path]:
    """
    Return the configuration file with the highest priority.

    An explicit ``config_path`` is returned only if it exists; a missing
    explicit path is reported and does not fall through to the standard
    locations.
    """
    if config_path:
        path = Path(config_path)
        if path.exists():
            return path
        logger.warning(f"Specified config file not found: {config_path}")
        return None

    return next((location for location in get_config_locations() if location.exists()), None)


def get_default_config() -> Config:
    """Return a fresh Config holding the built-in defaults."""
    return Config.from_dict(copy.deepcopy(DEFAULT_CONFIG))


def create_default_config_file(filepath: Optional[str] = None) -> str:
    """Write the built-in defaults to ``filepath`` (default: ./idxbench.toml)."""
    return save_toml(DEFAULT_CONFIG, filepath or "idxbench.toml")


def _merge_sections(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively overlay ``override`` on a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_sections(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def load_config_cascade(explicit_path: Optional[str] = None) -> Config:
    """
    Build the effective configuration.

    Layers are applied from lowest to highest priority, each overriding
    individual keys of the previous ones:
    defaults -> /etc -> ~/.config -> ./idxbench.toml -> explicit_path

    A layer that cannot be read or parsed is skipped with a warning.

    Returns:
        Config whose ``source`` is the highest-priority file that was applied,
        or "defaults"
    """
    layers = list(reversed(get_config_locations()))
    if explicit_path:
        explicit = Path(explicit_path)
        if explicit.exists():
            layers.append(explicit)
        else:
            logger.warning(f"Specified config file not found: {explicit_path}")

    data = copy.deepcopy(DEFAULT_CONFIG)
    source = "defaults"
    for layer in layers:
        if not layer.exists():
            continue
        try:
            data = _merge_sections(data, load_toml(layer))
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning(f"Skipping configuration {layer}: {e}")
            continue
        source = str(layer)
        logger.debug(f"Applied configuration layer {layer}")

    return Config.from_dict(data, source=source)


# Process-wide configuration, loaded on first use
_global_config: Optional[Config] = None


def get_config() -> Config:
    """Return the process-wide configuration, loading the cascade on first use."""
    global _global_config
    if _global_config is None:
        _global_config = load_config_cascade()
    return _global_config


def set_config(config: Config) -> None:
    """Replace the process-wide configuration."""
    global _global_config
    _global_config = config


def reset_config() -> None:
    """Forget the process-wide configuration so the next get_config() reloads it."""
    global _global_config
    _global_config = None
