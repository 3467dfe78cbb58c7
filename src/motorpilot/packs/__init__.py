"""
MotorPilot Configuration Packs

Schema validation and loading for configuration packs.

Configuration packs are YAML or JSON files that carry the rate tables,
depreciation brackets, fraud weights, decision thresholds and static
tariff/clause tables for one motor product.

Usage:
    from motorpilot.packs import load_default_pack, ConfigPackLoader

    pack = load_default_pack()
    pipeline = ClaimsPipeline(
        claim_store=store,
        retriever=pack.static_retriever(),
        config=pack.config,
    )
"""
from __future__ import annotations

from .loader import (
    DEFAULT_PACK,
    ConfigPack,
    ConfigPackLoader,
    default_pack_path,
    load_config_pack,
    load_config_pack_from_string,
    load_default_pack,
)
from .schema import (
    SCHEMA_VERSION,
    ConfigPackSchema,
    check_schema_version,
    validate_config_pack,
)

__all__ = [
    # Loader
    "DEFAULT_PACK",
    "ConfigPack",
    "ConfigPackLoader",
    "default_pack_path",
    "load_config_pack",
    "load_config_pack_from_string",
    "load_default_pack",
    # Schema
    "SCHEMA_VERSION",
    "ConfigPackSchema",
    "check_schema_version",
    "validate_config_pack",
]
