"""
Configuration loading

Reads config/ocr_config.yaml (or the file named by BILLSPLIT_OCR_CONFIG) and
deep-merges it over the built-in defaults, so a partial YAML file only needs
the keys it changes.
"""

import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from loguru import logger


CONFIG_ENV_VAR = "BILLSPLIT_OCR_CONFIG"
API_KEY_ENV_VAR = "OCR_SPACE_API_KEY"
PLACEHOLDER_API_KEY = "your_ocr_space_api_key_here"

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "ocr_config.yaml"


def default_config() -> Dict[str, Any]:
    """Return default configuration"""
    return {
        'ocr': {
            'use_gpu': False,
            'use_angle_cls': True,
            'lang': 'en',
            'det_db_thresh': 0.15,
            'det_db_box_thresh': 0.4,
            'det_db_unclip_ratio': 1.2,
            'det_limit_side_len': 2560,
            'drop_score': 0.25,
            'use_dilation': True,
            'det_db_score_mode': 'slow',
            'rec_batch_num': 6,
        },
        'engines': {
            'primary': ['paddle', 'ocr_space'],
            'secondary': ['tesseract'],
            'call_timeout_seconds': 45,
        },
        'ocr_space': {
            'api_key': None,
            'url': 'https://api.ocr.space/parse/image',
            'engine': '2',
            'language': 'eng',
            'timeout': 45,
        },
        'tesseract': {
            'lang': 'eng',
            'config': '--oem 1 --psm 6 -c preserve_interword_spaces=1',
            'timeout': 60,
        },
        'selection': {
            'good_enough_confidence': 0.7,
            'early_exit_confidence': 0.95,
        },
        'preprocessing': {
            'max_image_bytes': 10 * 1024 * 1024,
        },
        'vocabulary': {},
        'logging': {
            'level': 'INFO',
            'file': 'logs/billsplit_ocr.log',
        },
    }


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load configuration from YAML file

    Args:
        config_path: explicit path; falls back to $BILLSPLIT_OCR_CONFIG,
                     then config/ocr_config.yaml in the project root

    Returns:
        Complete configuration dictionary
    """
    if config_path is None:
        config_path = os.environ.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH

    config = default_config()

    if not os.path.exists(config_path):
        logger.warning(f"Config file not found: {config_path}, using defaults")
    else:
        with open(config_path, 'r', encoding='utf-8') as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Config file {config_path} must contain a mapping")
        config = _deep_merge(config, loaded)
        logger.debug(f"Loaded config from {config_path}")

    env_key = os.environ.get(API_KEY_ENV_VAR)
    if env_key:
        config['ocr_space']['api_key'] = env_key
    if config['ocr_space'].get('api_key') == PLACEHOLDER_API_KEY:
        config['ocr_space']['api_key'] = None

    return config
