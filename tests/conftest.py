from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from refgen.config import BrandMapping, ReferenceData, ResourceOverride
from refgen.llm.runner import LLMRunner
from tests._fixtures.metadata_builder import MetadataBuilder

_LLM_ENV_KEYS = (
    LLMRunner.ENV_MODEL_KEYS
    + LLMRunner.ENV_BASE_URL_KEYS
    + LLMRunner.ENV_API_KEY_KEYS
    + LLMRunner.ENV_API_VERSION_KEYS
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep developer LLM settings and CLI logging setup out of the tests."""
    for key in _LLM_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    logger = logging.getLogger("refgen")
    handlers = list(logger.handlers)
    propagate = logger.propagate
    level = logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.propagate = propagate
    logger.setLevel(level)


@pytest.fixture
def metadata_builder(tmp_path: Path) -> MetadataBuilder:
    """Provide a reusable extractor-output builder rooted at the pytest tmp_path."""
    return MetadataBuilder(tmp_path)


@pytest.fixture
def reference_data() -> ReferenceData:
    return ReferenceData.create(
        brand_mappings={
            "storage": BrandMapping(brand_name="Azure Storage", slug="azure-storage", short_name="Storage"),
            "aks": BrandMapping(brand_name="Azure Kubernetes Service", slug="azure-kubernetes-service"),
        },
        compound_words={"eventhub": "event-hub", "nodepool": "node-pool"},
        common_parameters=["subscription", "tenant", "--retry-max-retries"],
        resource_overrides={
            "storage blob container": ResourceOverride(
                resource_type="Container",
                operations={"get": "Get container details"},
            ),
        },
    )
