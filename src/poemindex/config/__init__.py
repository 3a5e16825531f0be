"""Configuration utilities for the poem indexer."""

from .policies import (
    BulkPolicy,
    ElasticsearchSettings,
    LoaderPolicy,
    NormalizationPolicy,
    Policies,
    WalkPolicy,
    load_policies,
)
from .settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "Policies",
    "load_policies",
    "BulkPolicy",
    "ElasticsearchSettings",
    "LoaderPolicy",
    "NormalizationPolicy",
    "WalkPolicy",
]
