"""
Stockflow Django Adapter Wiring
===============================
Constructs HttpApiDependencies for local/staging live runs.

This module is adapter-only glue:
- settings are read once from django.conf.settings.STOCK_MOVEMENTS
- the catalog comes from CATALOG_FIXTURE when set, else it starts empty
- submissions go to the in-memory gateway
"""

from __future__ import annotations

import logging
import threading

from django.conf import settings as django_settings

from core.http_api.dependencies import HttpApiDependencies
from engines.stock_movements.catalog import InMemoryCatalogProvider
from engines.stock_movements.services import (
    InMemorySubmissionGateway,
    StockMovementService,
)
from engines.stock_movements.settings import EngineSettings
from engines.stock_movements.strategies import StrategyResolver

logger = logging.getLogger("stockflow.movements")

_DEPENDENCIES_LOCK = threading.Lock()
_DEPENDENCIES: HttpApiDependencies | None = None


def load_engine_settings() -> EngineSettings:
    return EngineSettings.from_mapping(
        getattr(django_settings, "STOCK_MOVEMENTS", None)
    )


def _build_catalog_provider(engine_settings: EngineSettings) -> InMemoryCatalogProvider:
    if engine_settings.catalog_fixture is None:
        return InMemoryCatalogProvider()
    logger.info(f"Loading catalog fixture {engine_settings.catalog_fixture}")
    return InMemoryCatalogProvider.from_json_file(engine_settings.catalog_fixture)


def _create_dependencies() -> HttpApiDependencies:
    engine_settings = load_engine_settings()
    gateway = InMemorySubmissionGateway()
    service = StockMovementService(
        StrategyResolver.for_gateway(gateway, engine_settings),
        catalog_provider=_build_catalog_provider(engine_settings),
    )
    return HttpApiDependencies(movement_service=service)


def build_dependencies() -> HttpApiDependencies:
    """
    Lazy singleton wiring for adapter runtime.
    """
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        if _DEPENDENCIES is None:
            _DEPENDENCIES = _create_dependencies()
        return _DEPENDENCIES


def install_dependencies(dependencies: HttpApiDependencies | None) -> None:
    """Replace the singleton; None forces a rebuild on next use."""
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        _DEPENDENCIES = dependencies
