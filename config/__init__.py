"""
Configuration package.

Re-exports all public classes and functions.
"""

from config.scoring_config import ScoringConfig, DEFAULT_CONFIG, get_default_config
