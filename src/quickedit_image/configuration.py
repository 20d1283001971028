from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

from .models import UISettings

# Backend paths are read through ${oc.env:...}; make a local .env visible first.
load_dotenv()

CONFIG_PATH = Path(__file__).resolve().parent / "config/config.yaml"
if not CONFIG_PATH.exists():  # pragma: no cover - broken installation
    raise FileNotFoundError(f"Default config.yaml could not be located at {CONFIG_PATH}")


@lru_cache(maxsize=1)
def _load_default_config() -> DictConfig:
    return OmegaConf.load(CONFIG_PATH)


def make_runtime_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    """Merge ``overrides`` onto the packaged defaults.

    The defaults are struct-locked, so a misspelt key in ``overrides`` raises
    instead of being silently ignored.
    """
    base_container = OmegaConf.to_container(_load_default_config(), resolve=False)
    base = OmegaConf.create(base_container)
    OmegaConf.set_struct(base, True)

    cli_config = OmegaConf.create(overrides or {})
    merged = DictConfig(OmegaConf.merge(base, cli_config))
    return merged


def build_ui_settings(config: DictConfig) -> UISettings:
    ui = config.ui
    return UISettings(
        padding=ui.padding,
        unified_toolbar=ui.unified_toolbar,
        full_width_toolbar=ui.full_width_toolbar,
        popup=ui.popup,
    )
