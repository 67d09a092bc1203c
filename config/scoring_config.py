"""
Scoring configuration.

Contains ScoringConfig class and the built-in defaults it merges over.
"""

import copy
import os
import json
import hashlib

# Every threshold and weight used by the analyzers. A JSON config file only
# needs to contain the keys it overrides.
DEFAULT_CONFIG = {
    "technical": {
        "laplacian_variance_divisor": 1000.0,
        "block_size": 8,
        "uniform_block_variance": 100.0,
        "noise_level_divisor": 20.0,
        "neutral_noise_score": 0.5,
        "target_mean_luminance": 128.0,
        "std_dev_divisor": 60.0,
        "dark_bin_end": 50,
        "bright_bin_start": 200,
        "dark_ratio_threshold": 0.1,
        "bright_ratio_threshold": 0.1,
        "weights": {
            "blur": 0.4,
            "noise": 0.3,
            "exposure": 0.3
        }
    },
    "aesthetic": {
        "max_colors": 5,
        "max_color_samples": 1000,
        "color_quantization": 16,
        "harmony": {
            "complementary_range": [165, 195],
            "complementary_weight": 0.3,
            "analogous_max": 30,
            "analogous_weight": 0.2,
            "triadic_range": [105, 135],
            "triadic_weight": 0.2
        },
        "edge_threshold": 30.0,
        "thirds_radius_divisor": 10,
        "neutral_thirds_score": 0.5,
        "composition_weights": {
            "thirds": 0.6,
            "balance": 0.4
        },
        "contrast_percentile": 0.05,
        "contrast_range": 200.0,
        "weights": {
            "harmony": 0.4,
            "composition": 0.4,
            "contrast": 0.2
        },
        "distribution_std_dev": 1.0
    },
    "expression": {
        "weights": {
            "happy": 1.0,
            "neutral": 0.7,
            "surprised": 0.5,
            "negative": 0.1
        }
    },
    "fusion": {
        "technical_weight": 0.4,
        "aesthetic_weight": 0.4,
        "face_weight": 0.2,
        "no_face_factor": 0.5
    },
    "processing": {
        "num_workers": None,
        "prefetch_multiplier": 2,
        "max_size": 1024,
        "skip_on_detection_error": False
    }
}

# Weight groups that must be non-negative, as (section, key) paths
WEIGHT_GROUPS = [
    ("technical", "weights"),
    ("aesthetic", "composition_weights"),
    ("aesthetic", "weights"),
    ("expression", "weights"),
]

FUSION_WEIGHT_KEYS = ["technical_weight", "aesthetic_weight", "face_weight", "no_face_factor"]


class ScoringConfig:
    """Loads scoring configuration from an optional JSON file over the defaults."""

    def __init__(self, config_path=None, validate=True):
        self.config_path = config_path
        self.config = self._load_config()
        self.version_hash = self._compute_version_hash()
        if validate:
            self.validate_weights()

    def _load_config(self):
        """Load config from file, merged over DEFAULT_CONFIG.

        Raises:
            FileNotFoundError: If an explicit config file doesn't exist
            ValueError: If the config file can't be parsed
        """
        if self.config_path is None:
            return copy.deepcopy(DEFAULT_CONFIG)

        if not os.path.exists(self.config_path):
            raise FileNotFoundError(f"Config file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r') as f:
                override = json.load(f)
        except Exception as e:
            raise ValueError(f"Could not load config from {self.config_path}: {e}")

        if not isinstance(override, dict):
            raise ValueError(f"Config file {self.config_path} must contain a JSON object")

        return self._merge_configs(copy.deepcopy(DEFAULT_CONFIG), override)

    def _merge_configs(self, base, override):
        """Deep merge override into base config."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value
        return result

    def _compute_version_hash(self):
        """Compute a hash of the config for tracking which version was used."""
        config_str = json.dumps(self.config, sort_keys=True)
        return hashlib.md5(config_str.encode()).hexdigest()[:12]

    def validate_weights(self):
        """Reject negative weights.

        Raises:
            ValueError: Listing every offending key
        """
        problems = []
        for section, key in WEIGHT_GROUPS:
            for name, value in self.config.get(section, {}).get(key, {}).items():
                if not isinstance(value, (int, float)) or value < 0:
                    problems.append(f"{section}.{key}.{name}={value!r}")

        fusion = self.config.get('fusion', {})
        for name in FUSION_WEIGHT_KEYS:
            value = fusion.get(name)
            if not isinstance(value, (int, float)) or value < 0:
                problems.append(f"fusion.{name}={value!r}")

        if problems:
            raise ValueError("Invalid scoring weights: " + ", ".join(problems))
        return True

    def save_config(self, path=None):
        """Save the current config to a JSON file."""
        path = path or self.config_path
        with open(path, 'w') as f:
            json.dump(self.config, f, indent=2)
            f.write('\n')  # Trailing newline

    def get_technical_settings(self):
        return self.config['technical']

    def get_aesthetic_settings(self):
        return self.config['aesthetic']

    def get_expression_weights(self):
        return self.config['expression']['weights']

    def get_fusion_weights(self):
        return self.config['fusion']

    def get_processing_settings(self):
        return self.config['processing']


_default_config = None


def get_default_config():
    """Shared defaults-only config, used when an analyzer gets config=None."""
    global _default_config
    if _default_config is None:
        _default_config = ScoringConfig()
    return _default_config
