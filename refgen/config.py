"""Configuration loading for refgen (.refgen.yml and reference data maps)."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

import yaml

from .logging import get_logger

CONFIG_FILENAME = ".refgen.yml"
DEFAULT_DATA_DIR = Path(__file__).with_name("data")

BRAND_MAPPING_FILE = "brand-mapping.json"
COMPOUND_WORDS_FILE = "compound-words.json"
COMMON_PARAMETERS_FILE = "common-parameters.json"
RESOURCE_OVERRIDES_FILE = "resource-overrides.json"

_logger = get_logger("config")


class ConfigError(RuntimeError):
    """Raised when the configuration or a reference data file cannot be parsed."""


@dataclass
class LLMConfig:
    """Generative endpoint settings from .refgen.yml."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    api_version: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    request_timeout: Optional[float] = None


@dataclass
class RetryConfig:
    """Overrides for the rate-limit retry policy."""

    max_attempts: Optional[int] = None
    base_delay: Optional[float] = None
    multiplier: Optional[float] = None
    max_delay: Optional[float] = None


@dataclass
class InputsConfig:
    """Locations of the extractor outputs."""

    tools: Optional[Path] = None
    namespaces: Optional[Path] = None
    version_file: Optional[Path] = None


@dataclass
class GenerationConfig:
    """Run-level switches."""

    skip_ai: bool = False
    namespaces: List[str] = field(default_factory=list)


@dataclass
class RefGenConfig:
    """Represents the settings defined in .refgen.yml."""

    root: Path
    llm: Optional[LLMConfig] = None
    retry: RetryConfig = field(default_factory=RetryConfig)
    inputs: InputsConfig = field(default_factory=InputsConfig)
    output_dir: Optional[Path] = None
    data_dir: Optional[Path] = None
    templates_dir: Optional[Path] = None
    generation: GenerationConfig = field(default_factory=GenerationConfig)


def load_config(config_path: Path) -> RefGenConfig:
    """Load configuration from disk; a missing file yields defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return RefGenConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            api_version=_as_str(llm_data.get("api_version")),
            temperature=_as_float(llm_data.get("temperature")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
        )
        if not any(
            (
                llm.model,
                llm.base_url,
                llm.api_key,
                llm.api_version,
                llm.temperature,
                llm.max_tokens,
                llm.request_timeout,
            )
        ):
            llm = None

    retry_data = _as_dict(data.get("retry"))
    retry = RetryConfig(
        max_attempts=_as_int(retry_data.get("max_attempts")),
        base_delay=_as_float(retry_data.get("base_delay")),
        multiplier=_as_float(retry_data.get("multiplier")),
        max_delay=_as_float(retry_data.get("max_delay")),
    )

    inputs_data = _as_dict(data.get("inputs"))
    inputs = InputsConfig(
        tools=_as_path(root, inputs_data.get("tools")),
        namespaces=_as_path(root, inputs_data.get("namespaces")),
        version_file=_as_path(root, inputs_data.get("version_file")),
    )

    output_data = _as_dict(data.get("output"))
    output_dir = _as_path(root, output_data.get("directory")) if output_data else None

    generation_data = _as_dict(data.get("generation"))
    generation = GenerationConfig(
        skip_ai=_as_bool(generation_data.get("skip_ai")) or False,
        namespaces=_as_str_list(generation_data.get("namespaces")),
    )

    return RefGenConfig(
        root=root,
        llm=llm,
        retry=retry,
        inputs=inputs,
        output_dir=output_dir,
        data_dir=_as_path(root, data.get("data_dir")),
        templates_dir=_as_path(root, data.get("templates_dir")),
        generation=generation,
    )


@dataclass(frozen=True)
class BrandMapping:
    """Polished display name and filename slug for a namespace."""

    brand_name: str
    slug: str
    short_name: str = ""


@dataclass(frozen=True)
class ResourceOverride:
    """Resource-type label (and optional operation phrases) for a command prefix."""

    resource_type: str
    operations: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class ReferenceData:
    """Read-only lookup tables shared by every component for one run."""

    brand_mappings: Mapping[str, BrandMapping]
    compound_words: Mapping[str, str]
    common_parameters: FrozenSet[str]
    resource_overrides: Mapping[str, ResourceOverride]

    @classmethod
    def create(
        cls,
        *,
        brand_mappings: Mapping[str, BrandMapping] | None = None,
        compound_words: Mapping[str, str] | None = None,
        common_parameters: Iterable[str] = (),
        resource_overrides: Mapping[str, ResourceOverride] | None = None,
    ) -> "ReferenceData":
        return cls(
            brand_mappings=MappingProxyType(dict(brand_mappings or {})),
            compound_words=MappingProxyType(dict(compound_words or {})),
            common_parameters=frozenset(_normalise_param_name(name) for name in common_parameters),
            resource_overrides=MappingProxyType(
                {" ".join(key.lower().split()): value for key, value in (resource_overrides or {}).items()}
            ),
        )

    def is_common_parameter(self, name: str) -> bool:
        return _normalise_param_name(name) in self.common_parameters


def load_reference_data(data_dir: Path | None = None) -> ReferenceData:
    """Load the brand, compound-word, common-parameter and override maps once."""
    directory = data_dir or DEFAULT_DATA_DIR

    brand_raw = _read_json_map(directory / BRAND_MAPPING_FILE, default={})
    compound_raw = _read_json_map(directory / COMPOUND_WORDS_FILE, default={})
    common_raw = _read_json_map(directory / COMMON_PARAMETERS_FILE, default=[])
    overrides_raw = _read_json_map(directory / RESOURCE_OVERRIDES_FILE, default={})

    data = ReferenceData.create(
        brand_mappings=_parse_brand_mappings(brand_raw),
        compound_words=_parse_compound_words(compound_raw),
        common_parameters=_parse_common_parameters(common_raw),
        resource_overrides=_parse_resource_overrides(overrides_raw),
    )
    _logger.debug(
        "Loaded %d brand mappings, %d compound words, %d common parameters, %d resource overrides from %s",
        len(data.brand_mappings),
        len(data.compound_words),
        len(data.common_parameters),
        len(data.resource_overrides),
        directory,
    )
    return data


def _read_json_map(path: Path, *, default: Any) -> Any:
    if not path.exists():
        _logger.warning("Reference data file not found at %s; using empty defaults", path)
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc


def _parse_brand_mappings(raw: Any) -> Dict[str, BrandMapping]:
    mappings: Dict[str, BrandMapping] = {}
    if isinstance(raw, dict):
        for identifier, entry in raw.items():
            entry_map = _as_dict(entry)
            brand_name = _as_str(entry_map.get("brandName"))
            slug = _as_str(entry_map.get("slug")) or _as_str(entry_map.get("fileName"))
            if not brand_name or not slug:
                raise ConfigError(f"Brand mapping for '{identifier}' needs brandName and slug")
            mappings[str(identifier)] = BrandMapping(
                brand_name=brand_name,
                slug=slug,
                short_name=_as_str(entry_map.get("shortName")) or "",
            )
        return mappings
    if isinstance(raw, list):
        # Extractor-era layout: [{brandName, mcpServerName, shortName, fileName}]
        for entry in raw:
            entry_map = _as_dict(entry)
            identifier = _as_str(entry_map.get("mcpServerName")) or _as_str(entry_map.get("identifier"))
            brand_name = _as_str(entry_map.get("brandName"))
            slug = _as_str(entry_map.get("fileName")) or _as_str(entry_map.get("slug"))
            if not identifier or not brand_name or not slug:
                raise ConfigError("Brand mapping entries need mcpServerName, brandName and fileName")
            mappings[identifier] = BrandMapping(
                brand_name=brand_name,
                slug=slug,
                short_name=_as_str(entry_map.get("shortName")) or "",
            )
        return mappings
    raise ConfigError(f"{BRAND_MAPPING_FILE} must contain an object or an array")


def _parse_compound_words(raw: Any) -> Dict[str, str]:
    if not isinstance(raw, dict):
        raise ConfigError(f"{COMPOUND_WORDS_FILE} must contain an object")
    return {str(key): str(value) for key, value in raw.items() if isinstance(value, str) and value}


def _parse_common_parameters(raw: Any) -> List[str]:
    if not isinstance(raw, list):
        raise ConfigError(f"{COMMON_PARAMETERS_FILE} must contain an array")
    names: List[str] = []
    for entry in raw:
        if isinstance(entry, str):
            names.append(entry)
        elif isinstance(entry, dict) and _as_str(entry.get("name")):
            names.append(str(entry["name"]))
    return names


def _parse_resource_overrides(raw: Any) -> Dict[str, ResourceOverride]:
    if not isinstance(raw, dict):
        raise ConfigError(f"{RESOURCE_OVERRIDES_FILE} must contain an object")
    overrides: Dict[str, ResourceOverride] = {}
    for prefix, entry in raw.items():
        entry_map = _as_dict(entry)
        resource_type = _as_str(entry_map.get("resourceType"))
        if not resource_type:
            raise ConfigError(f"Resource override '{prefix}' needs a resourceType")
        operations = {
            str(verb).lower(): str(phrase)
            for verb, phrase in _as_dict(entry_map.get("operations")).items()
            if isinstance(phrase, str)
        }
        overrides[str(prefix)] = ResourceOverride(
            resource_type=resource_type,
            operations=MappingProxyType(operations),
        )
    return overrides


def _normalise_param_name(name: str) -> str:
    return name.strip().lstrip("-").lower()


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_path(root: Path, value: Any) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    path = Path(text).expanduser()
    return path if path.is_absolute() else (root / path)


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []
