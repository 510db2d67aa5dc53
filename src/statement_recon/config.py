"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union
import logging

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class SettingsModel(BaseModel):
    """
    Base for the persisted settings document.

    Attributes serialize to camelCase keys; unknown keys are rejected so the
    document round-trips without silently losing data.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )


class ExactRule(SettingsModel):
    """Case-insensitive, trimmed equality (numeric equality for numbers)."""

    type: Literal["exact"] = "exact"


class FuzzyRule(SettingsModel):
    """String similarity ratio (0-100) must reach the tolerance."""

    type: Literal["fuzzy"] = "fuzzy"
    tolerance: float = Field(ge=0, le=100)


class NumericDiffRule(SettingsModel):
    """Absolute numeric difference must not exceed max_diff."""

    type: Literal["numeric_diff"] = "numeric_diff"
    max_diff: float = Field(ge=0)


MatchingRule = Annotated[
    Union[ExactRule, FuzzyRule, NumericDiffRule], Field(discriminator="type")
]

# Rule kinds allowed per field data type
RULE_DATA_TYPES: dict[str, set[str]] = {
    "exact": {"string", "number"},
    "fuzzy": {"string"},
    "numeric_diff": {"number"},
}


class MatchingField(SettingsModel):
    """A named, typed attribute participating in record comparison."""

    id: str
    label: str = ""
    enabled: bool = True
    deletable: bool = True
    data_type: Literal["string", "number"] = "string"
    rule: MatchingRule = Field(default_factory=ExactRule)
    aliases: list[str] = Field(default_factory=list)

    @property
    def display_name(self) -> str:
        return self.label or self.id


class ColumnMapping(SettingsModel):
    """Per-source mapping of field id to spreadsheet column header."""

    own: dict[str, str] = Field(
        default_factory=dict, validation_alias=AliasChoices("own", "company")
    )
    counterparty: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("counterparty", "supplier"),
    )

    def for_source(self, source: str) -> dict[str, str]:
        """Return the header mapping for "own" or "counterparty"."""
        if source == "own":
            return self.own
        if source == "counterparty":
            return self.counterparty
        raise ValueError(f"Unknown record source: {source}")


class AggregationSettings(SettingsModel):
    """Collapse counterparty rows sharing a key into one summed row."""

    enabled: bool = False
    aggregation_key: str = ""
    aggregation_value_field: str = ""


class FilterRule(SettingsModel):
    """A pre-match filter applied to normalized records of both sides."""

    id: str
    field: str
    condition: Literal["equals", "contains", "greater_than", "less_than"]
    value: Union[str, float]


class ReconciliationSettings(SettingsModel):
    """The declarative configuration consumed by a reconciliation run."""

    matching_fields: list[MatchingField] = Field(default_factory=list)
    column_mapping: ColumnMapping = Field(default_factory=ColumnMapping)
    aggregation: AggregationSettings = Field(default_factory=AggregationSettings)
    filters: list[FilterRule] = Field(default_factory=list)
    amount_field: Optional[str] = None
    anchor_field: Optional[str] = None
    partial_match_threshold: float = Field(default=0.5, ge=0, le=1)
    empty_match_confidence: float = Field(default=0.5, ge=0, le=1)

    @property
    def enabled_fields(self) -> list[MatchingField]:
        return [f for f in self.matching_fields if f.enabled]

    def get_field(self, field_id: Optional[str]) -> Optional[MatchingField]:
        """Look up a matching field by id."""
        return next((f for f in self.matching_fields if f.id == field_id), None)


class InputConfig(BaseModel):
    """Configuration for spreadsheet reading."""

    encoding: str = "utf-8-sig"
    delimiter: str = ","
    sheet_name: Union[int, str] = 0


class ExcelOutputConfig(BaseModel):
    """Configuration for Excel output."""

    filename_template: str = "reconciliation_{date}.xlsx"


class SheetConfig(BaseModel):
    """Configuration for a report sheet."""

    enabled: bool = True
    name: str


class SheetsConfig(BaseModel):
    """Configuration for all report sheets."""

    summary: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Summary"))
    matched: SheetConfig = Field(default_factory=lambda: SheetConfig(name="Matched"))
    partial_match: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Partial Match")
    )
    missing_in_counterparty: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Missing in Counterparty")
    )
    missing_in_own: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Missing in Own")
    )
    diagnostics: SheetConfig = Field(
        default_factory=lambda: SheetConfig(name="Diagnostics")
    )


class OutputConfig(BaseModel):
    """Configuration for output."""

    excel: ExcelOutputConfig = Field(default_factory=ExcelOutputConfig)
    sheets: SheetsConfig = Field(default_factory=SheetsConfig)


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None
    max_bytes: int = Field(default=10 * 1024 * 1024, gt=0)
    backup_count: int = Field(default=5, ge=0)


class ReconConfig(BaseModel):
    """Main application configuration."""

    input: InputConfig = Field(default_factory=InputConfig)
    reconciliation: ReconciliationSettings = Field(
        default_factory=lambda: get_default_settings()
    )
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_settings_document() -> dict[str, Any]:
    """Return the default reconciliation settings as a JSON-style document."""
    return {
        "matchingFields": [
            {
                "id": "pnr",
                "label": "BNR/PNR",
                "enabled": True,
                "deletable": False,
                "dataType": "string",
                "rule": {"type": "exact"},
            },
            {
                "id": "ticketNumber",
                "label": "Ticket Number",
                "enabled": True,
                "deletable": False,
                "dataType": "string",
                "rule": {"type": "exact"},
            },
            {
                "id": "passengerName",
                "label": "Passenger Name",
                "enabled": True,
                "deletable": False,
                "dataType": "string",
                "rule": {"type": "fuzzy", "tolerance": 85},
            },
            {
                "id": "price",
                "label": "Price",
                "enabled": True,
                "deletable": False,
                "dataType": "number",
                "rule": {"type": "numeric_diff", "maxDiff": 1},
            },
        ],
        "columnMapping": {
            "own": {
                "pnr": "BNR",
                "ticketNumber": "Ticket",
                "passengerName": "الاسم",
                "price": "السعر",
            },
            "counterparty": {
                "pnr": "PNR",
                "ticketNumber": "Ticket Number",
                "passengerName": "Passenger Name",
                "price": "Price",
            },
        },
        "aggregation": {
            "enabled": False,
            "aggregationKey": "pnr",
            "aggregationValueField": "price",
        },
        "filters": [],
        "amountField": "price",
        "anchorField": None,
        "partialMatchThreshold": 0.5,
        "emptyMatchConfidence": 0.5,
    }


def get_default_settings() -> ReconciliationSettings:
    """Return the default reconciliation settings."""
    return ReconciliationSettings.model_validate(get_default_settings_document())


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "input": {
            "encoding": "utf-8-sig",
            "delimiter": ",",
            "sheet_name": 0,
        },
        "reconciliation": get_default_settings_document(),
        "output": {
            "excel": {
                "filename_template": "reconciliation_{date}.xlsx",
            },
            "sheets": {
                "summary": {"enabled": True, "name": "Summary"},
                "matched": {"enabled": True, "name": "Matched"},
                "partial_match": {"enabled": True, "name": "Partial Match"},
                "missing_in_counterparty": {
                    "enabled": True,
                    "name": "Missing in Counterparty",
                },
                "missing_in_own": {"enabled": True, "name": "Missing in Own"},
                "diagnostics": {"enabled": True, "name": "Diagnostics"},
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
            "max_bytes": 10 * 1024 * 1024,
            "backup_count": 5,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is malformed or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        user_config = _read_document(config_path)

        # Deep merge user config into defaults; the settings document is
        # replaced whole since it accepts both camelCase and snake_case keys
        settings_document = user_config.pop("reconciliation", None)
        config_dict = _deep_merge(config_dict, user_config)
        if settings_document is not None:
            config_dict["reconciliation"] = settings_document
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def load_settings(settings_path: Path) -> ReconciliationSettings:
    """
    Load a standalone settings document (JSON or YAML).

    Args:
        settings_path: Path to the settings document

    Returns:
        Parsed reconciliation settings
    """
    document = _read_document(settings_path)
    try:
        return ReconciliationSettings.model_validate(document)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings document: {e}") from e


def settings_from_json(text: str) -> ReconciliationSettings:
    """Parse a settings document from its JSON text."""
    try:
        return ReconciliationSettings.model_validate_json(text)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid settings document: {e}") from e


def settings_to_json(settings: ReconciliationSettings, indent: int = 2) -> str:
    """Serialize settings to the JSON document format."""
    return settings.model_dump_json(by_alias=True, indent=indent)


def validate_settings(settings: ReconciliationSettings) -> None:
    """
    Check settings for consistency before any matching runs.

    Args:
        settings: Settings to validate

    Raises:
        ConfigurationError: Naming the offending field where there is one
    """
    seen: set[str] = set()
    for field in settings.matching_fields:
        if field.id in seen:
            raise ConfigurationError(f"Duplicate matching field id '{field.id}'", field.id)
        seen.add(field.id)

        if field.data_type not in RULE_DATA_TYPES[field.rule.type]:
            raise ConfigurationError(
                f"Field '{field.id}': rule '{field.rule.type}' cannot be used "
                f"with data type '{field.data_type}'",
                field.id,
            )

    if not settings.enabled_fields:
        raise ConfigurationError("At least one matching field must be enabled")

    aggregation = settings.aggregation
    if aggregation.enabled:
        key_field = settings.get_field(aggregation.aggregation_key)
        if key_field is None:
            raise ConfigurationError(
                f"Aggregation key '{aggregation.aggregation_key}' is not a matching field",
                aggregation.aggregation_key or None,
            )
        value_field = settings.get_field(aggregation.aggregation_value_field)
        if value_field is None:
            raise ConfigurationError(
                f"Aggregation value field '{aggregation.aggregation_value_field}' "
                f"is not a matching field",
                aggregation.aggregation_value_field or None,
            )
        if value_field.data_type != "number":
            raise ConfigurationError(
                f"Aggregation value field '{value_field.id}' must be numeric",
                value_field.id,
            )

    if settings.amount_field and settings.get_field(settings.amount_field) is None:
        raise ConfigurationError(
            f"Amount field '{settings.amount_field}' is not a matching field",
            settings.amount_field,
        )

    if settings.anchor_field:
        anchor = settings.get_field(settings.anchor_field)
        if anchor is None or not anchor.enabled or anchor.rule.type != "exact":
            raise ConfigurationError(
                f"Anchor field '{settings.anchor_field}' must be an enabled exact-rule field",
                settings.anchor_field,
            )

    for rule in settings.filters:
        if settings.get_field(rule.field) is None:
            raise ConfigurationError(
                f"Filter '{rule.id}' references unknown field '{rule.field}'",
                rule.field,
            )


def _read_document(path: Path) -> dict[str, Any]:
    """Read a YAML or JSON file into a dictionary."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Cannot parse {path}: {e}") from e

    if not isinstance(document, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return document


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Statement Reconciliation Configuration
# Generated configuration file - customize as needed
# The "reconciliation" section, when present, replaces the default settings whole.

"""
    yaml_content += yaml.dump(
        config_dict, default_flow_style=False, sort_keys=False, allow_unicode=True
    )

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
