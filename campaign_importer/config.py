"""Configuration helpers for the campaign importer."""
from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from .merge import ReimportPolicy
from .metrics import DEFAULT_SYNONYMS, EventTypeSynonyms

LOGGER = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}

DEFAULT_EXCLUDED_CAMPAIGNS: FrozenSet[str] = frozenset(
    {"campanha 0", "campaign 0", "sent manually", "campaign sent manually"}
)

_KNOWN_KEYS = {
    "synonyms",
    "synonyms_version",
    "excluded_campaigns",
    "follow_up_count",
    "default_campaign_name",
    "default_profile_name",
    "lead_source",
    "reimport_policy",
}


@dataclass(frozen=True)
class ImportSettings:
    """Immutable knobs shared by every parser in one import run."""

    synonyms: EventTypeSynonyms = DEFAULT_SYNONYMS
    excluded_campaigns: FrozenSet[str] = DEFAULT_EXCLUDED_CAMPAIGNS
    follow_up_count: int = 3
    default_campaign_name: str = "Campanha Importada"
    default_profile_name: str = "Default"
    lead_source: str = "Kontax"
    reimport_policy: ReimportPolicy = ReimportPolicy.ACCUMULATE

    def is_excluded_campaign(self, campaign_name: str) -> bool:
        """Whether ``campaign_name`` contains an excluded entry as whole words."""

        name = campaign_name.strip().casefold()
        patterns = (rf"(?<!\w){re.escape(entry.casefold())}(?!\w)" for entry in self.excluded_campaigns if entry)
        return any(re.search(pattern, name) for pattern in patterns)


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Invalid JSON in '{file_path}': {exc}") from exc
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise ConfigurationError(
                "YAML configuration requires the 'pyyaml' package to be installed"
            ) from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in '{file_path}': {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping")
    return data


def settings_from_config(config: Optional[Mapping[str, Any]] = None) -> ImportSettings:
    """Build :class:`ImportSettings` from a loaded configuration mapping."""

    config = dict(config or {})
    for key in config:
        if key not in _KNOWN_KEYS:
            LOGGER.debug("Ignoring unknown configuration key %s", key)

    synonyms = DEFAULT_SYNONYMS
    if config.get("synonyms"):
        synonyms = _build_synonyms(config["synonyms"], config.get("synonyms_version"))

    excluded = DEFAULT_EXCLUDED_CAMPAIGNS
    if "excluded_campaigns" in config:
        excluded = frozenset(name.strip().casefold() for name in _as_strings("excluded_campaigns", config["excluded_campaigns"]))

    follow_up_count = config.get("follow_up_count", 3)
    if not isinstance(follow_up_count, int) or isinstance(follow_up_count, bool) or not 1 <= follow_up_count <= 3:
        raise ConfigurationError("'follow_up_count' must be an integer between 1 and 3")

    try:
        policy = ReimportPolicy(config.get("reimport_policy", ReimportPolicy.ACCUMULATE.value))
    except ValueError as exc:
        choices = ", ".join(item.value for item in ReimportPolicy)
        raise ConfigurationError(f"'reimport_policy' must be one of: {choices}") from exc

    defaults = ImportSettings()
    return ImportSettings(
        synonyms=synonyms,
        excluded_campaigns=excluded,
        follow_up_count=follow_up_count,
        default_campaign_name=str(config.get("default_campaign_name", defaults.default_campaign_name)),
        default_profile_name=str(config.get("default_profile_name", defaults.default_profile_name)),
        lead_source=str(config.get("lead_source", defaults.lead_source)),
        reimport_policy=policy,
    )


def _build_synonyms(table: Any, version: Any) -> EventTypeSynonyms:
    if not isinstance(table, Mapping):
        raise ConfigurationError("'synonyms' must map canonical event types to lists of labels")
    extra = {str(canonical): list(_as_strings(f"synonyms.{canonical}", labels)) for canonical, labels in table.items()}
    try:
        return DEFAULT_SYNONYMS.extended(extra, version=str(version) if version else None)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc


def _as_strings(name: str, value: Any) -> Iterable[str]:
    if isinstance(value, str) or not isinstance(value, Iterable):
        raise ConfigurationError(f"'{name}' must be a list of strings")
    return [str(item) for item in value]


__all__ = [
    "ConfigurationError",
    "DEFAULT_EXCLUDED_CAMPAIGNS",
    "ImportSettings",
    "load_configuration",
    "settings_from_config",
]
