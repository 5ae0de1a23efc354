"""
Configuration Management Module
Environment-driven settings and the packaged coverage catalog
"""
from pathlib import Path

from .settings import (
    Settings,
    LLMSettings,
    StoreSettings,
    JobApiSettings,
    PregenSettings,
    get_settings,
    get_llm_settings,
    get_store_settings,
    get_job_api_settings,
    get_pregen_settings,
)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "catalog.json"

__all__ = [
    "DEFAULT_CATALOG_PATH",
    "Settings",
    "LLMSettings",
    "StoreSettings",
    "JobApiSettings",
    "PregenSettings",
    "get_settings",
    "get_llm_settings",
    "get_store_settings",
    "get_job_api_settings",
    "get_pregen_settings",
]
