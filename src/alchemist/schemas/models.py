# src/alchemist/schemas/models.py
"""
@brief
Pydantic data models for the Data Alchemist validation engine.

@details
Defines the canonical model families:
    - Client / Worker / Task: typed entity rows with an `extras` side table
      for columns the schema does not know about
    - ValidationError: one structured finding produced by a validation pass
    - Rule: tagged union of the six scheduling rule variants
    - SearchFilter: structured filter consumed by the query engine
    - PrioritySettings: weighting profile stored in the workspace bundle
    - Config: runtime configuration (from config.yaml)

Entity models carry field types but no range constraints: rows arriving from
the parsing layer may be malformed, and reporting that is the validator's job.
Rule parameter models are lenient for the same reason (see validate_rule).
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Annotated, Any, ClassVar, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and data contracts.

    @details
    Forbids unknown fields and allows population by attribute name as well as
    by the camelCase / column aliases used on the wire.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Export raw enum values
    }


# ------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------
class EntityType(str, Enum):
    """Closed set of entity collections handled by the engine."""

    CLIENTS = "clients"
    WORKERS = "workers"
    TASKS = "tasks"


class ErrorType(str, Enum):
    """Tag carried by every ValidationError."""

    MISSING_COLUMN = "missingColumn"
    DUPLICATE_ID = "duplicateId"
    MALFORMED_LIST = "malformedList"
    OUT_OF_RANGE = "outOfRange"
    BROKEN_JSON = "brokenJson"
    UNKNOWN_REFERENCE = "unknownReference"
    CIRCULAR_DEPENDENCY = "circularDependency"
    CONFLICTING_RULES = "conflictingRules"
    SKILL_COVERAGE = "skillCoverage"


# ------------------------------------------------------------
# Entities
# ------------------------------------------------------------
class _EntityModel(BaseModel):
    """
    @brief
    Common base for Client, Worker and Task rows.

    @details
    Typed fields are addressed by their column name (alias) on input and
    output. Columns outside the schema are kept verbatim in `extras` so a row
    survives a from_record() / to_record() pass unchanged.
    """

    model_config = {"extra": "forbid", "populate_by_name": True}

    ENTITY_TYPE: ClassVar[EntityType]
    ID_FIELD: ClassVar[str]
    REQUIRED_COLUMNS: ClassVar[tuple[str, ...]]

    extras: dict[str, Any] = Field(
        default_factory=dict, description="Unrecognised columns, keyed by column name"
    )

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> _EntityModel:
        """
        @brief
        Build a typed entity from a raw parsed row.

        @details
        Known columns are validated into typed fields; every other column
        is moved into the `extras` side table.

        @params
            record : Mapping[str, Any]
                Row as delivered by the parsing layer.

        @returns
            Entity instance of the calling class.

        @raises
            pydantic.ValidationError
                If a required column is absent or cannot be coerced.
        """
        # (1) Split the row into schema columns and extras
        known = {f.alias or name for name, f in cls.model_fields.items() if name != "extras"}
        typed = {k: v for k, v in record.items() if k in known}
        extras = {k: v for k, v in record.items() if k not in known}

        # (2) Validate the typed part
        return cls.model_validate({**typed, "extras": extras})

    def to_record(self) -> dict[str, Any]:
        """Flatten back to a column-keyed row, extras included."""
        record = self.model_dump(by_alias=True, exclude={"extras"})
        record.update(self.extras)
        return record


class Client(_EntityModel):
    """
    @brief
    One row of clients data.

    @params
        client_id : str            (ClientID)
        client_name : str          (ClientName)
        priority_level : int       (PriorityLevel, 1-5)
        requested_task_ids : list  (RequestedTaskIDs)
        group_tag : str            (GroupTag)
        attributes_json : str      (AttributesJSON, JSON object encoded as text)
    """

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.CLIENTS
    ID_FIELD: ClassVar[str] = "ClientID"
    REQUIRED_COLUMNS: ClassVar[tuple[str, ...]] = (
        "ClientID",
        "ClientName",
        "PriorityLevel",
        "RequestedTaskIDs",
        "GroupTag",
        "AttributesJSON",
    )

    client_id: str = Field(..., alias="ClientID")
    client_name: str = Field(..., alias="ClientName")
    priority_level: int = Field(..., alias="PriorityLevel")
    requested_task_ids: list[str] = Field(..., alias="RequestedTaskIDs")
    group_tag: str = Field(..., alias="GroupTag")
    attributes_json: str | dict[str, Any] = Field(..., alias="AttributesJSON")


class Worker(_EntityModel):
    """One row of workers data."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.WORKERS
    ID_FIELD: ClassVar[str] = "WorkerID"
    REQUIRED_COLUMNS: ClassVar[tuple[str, ...]] = (
        "WorkerID",
        "Skills",
        "AvailableSlots",
        "MaxLoadPerPhase",
        "WorkerGroup",
        "QualificationLevel",
    )

    worker_id: str = Field(..., alias="WorkerID")
    skills: list[str] = Field(..., alias="Skills")
    available_slots: list[int] = Field(..., alias="AvailableSlots")
    max_load_per_phase: int = Field(..., alias="MaxLoadPerPhase")
    worker_group: str = Field(..., alias="WorkerGroup")
    qualification_level: int = Field(..., alias="QualificationLevel")


class Task(_EntityModel):
    """One row of tasks data."""

    ENTITY_TYPE: ClassVar[EntityType] = EntityType.TASKS
    ID_FIELD: ClassVar[str] = "TaskID"
    REQUIRED_COLUMNS: ClassVar[tuple[str, ...]] = (
        "TaskID",
        "Duration",
        "RequiredSkills",
        "PreferredPhases",
        "MaxConcurrent",
    )

    task_id: str = Field(..., alias="TaskID")
    duration: int = Field(..., alias="Duration")
    required_skills: list[str] = Field(..., alias="RequiredSkills")
    preferred_phases: list[int] = Field(..., alias="PreferredPhases")
    max_concurrent: int = Field(..., alias="MaxConcurrent")


ENTITY_MODELS: dict[EntityType, type[_EntityModel]] = {
    EntityType.CLIENTS: Client,
    EntityType.WORKERS: Worker,
    EntityType.TASKS: Task,
}

# Columns holding sequences; shared by the structural validator and the filter engine
LIST_FIELDS: frozenset[str] = frozenset(
    {"RequestedTaskIDs", "Skills", "AvailableSlots", "RequiredSkills", "PreferredPhases"}
)
NUMERIC_FIELDS: frozenset[str] = frozenset(
    {"PriorityLevel", "MaxLoadPerPhase", "QualificationLevel", "Duration", "MaxConcurrent"}
)


def as_record(entity: Any) -> Mapping[str, Any]:
    """Return a column-keyed view of a raw row or a typed entity ({} for anything else)."""
    if isinstance(entity, _EntityModel):
        return entity.to_record()
    if isinstance(entity, Mapping):
        return entity
    return {}


# ------------------------------------------------------------
# Validation output
# ------------------------------------------------------------
class ValidationError(_StrictBaseModel):
    """
    @brief
    A single structured validation finding.

    @details
    Pure output value: never stored as state, recomputed on every pass.
    row_index == -1 means the finding applies to the whole collection
    (missing columns, rule-level findings).
    """

    model_config = {**_StrictBaseModel.model_config, "frozen": True}

    entity_type: EntityType = Field(..., alias="entityType")
    row_index: int = Field(..., ge=-1, alias="rowIndex")
    field: str = Field(..., description="Offending column (comma-joined for missing columns)")
    error_type: ErrorType = Field(..., alias="errorType")
    message: str
    suggestion: str | None = None


# ------------------------------------------------------------
# Rules (tagged union, one parameter shape per variant)
# ------------------------------------------------------------
class _RuleParameters(BaseModel):
    """
    @brief
    Base for per-variant rule parameters.

    @details
    Fields default to "empty" values so a rule missing a parameter can still
    be constructed and then reported by validate_rule(). Extra keys produced
    by authoring tools are preserved for round trips.
    """

    model_config = {"extra": "allow", "populate_by_name": True}


class CoRunParameters(_RuleParameters):
    task_ids: list[str] = Field(default_factory=list, alias="taskIds")


class SlotRestrictionParameters(_RuleParameters):
    group: str = ""
    min_common_slots: int | None = Field(None, alias="minCommonSlots")


class LoadLimitParameters(_RuleParameters):
    worker_group: str = Field("", alias="workerGroup")
    max_slots_per_phase: int | None = Field(None, alias="maxSlotsPerPhase")


class PhaseWindowParameters(_RuleParameters):
    task_id: str = Field("", alias="taskId")
    allowed_phases: list[int] = Field(default_factory=list, alias="allowedPhases")


class PatternMatchParameters(_RuleParameters):
    pattern: str = ""
    target_field: str = Field("", alias="targetField")


class PriorityOverrideParameters(_RuleParameters):
    priority: int | None = None


class _RuleBase(_StrictBaseModel):
    id: str = Field(..., description="Rule identifier")
    description: str = ""
    priority: int = Field(5, ge=1, le=10, description="Rule priority (1-10)")


class CoRunRule(_RuleBase):
    type: Literal["coRun"] = "coRun"
    parameters: CoRunParameters = Field(default_factory=CoRunParameters)


class SlotRestrictionRule(_RuleBase):
    type: Literal["slotRestriction"] = "slotRestriction"
    parameters: SlotRestrictionParameters = Field(default_factory=SlotRestrictionParameters)


class LoadLimitRule(_RuleBase):
    type: Literal["loadLimit"] = "loadLimit"
    parameters: LoadLimitParameters = Field(default_factory=LoadLimitParameters)


class PhaseWindowRule(_RuleBase):
    type: Literal["phaseWindow"] = "phaseWindow"
    parameters: PhaseWindowParameters = Field(default_factory=PhaseWindowParameters)


class PatternMatchRule(_RuleBase):
    type: Literal["patternMatch"] = "patternMatch"
    parameters: PatternMatchParameters = Field(default_factory=PatternMatchParameters)


class PriorityOverrideRule(_RuleBase):
    type: Literal["priorityOverride"] = "priorityOverride"
    parameters: PriorityOverrideParameters = Field(default_factory=PriorityOverrideParameters)


Rule = Annotated[
    Union[
        CoRunRule,
        SlotRestrictionRule,
        LoadLimitRule,
        PhaseWindowRule,
        PatternMatchRule,
        PriorityOverrideRule,
    ],
    Field(discriminator="type"),
]

RULE_TYPES: tuple[str, ...] = (
    "coRun",
    "slotRestriction",
    "loadLimit",
    "phaseWindow",
    "patternMatch",
    "priorityOverride",
)

RULE_ADAPTER: TypeAdapter[Any] = TypeAdapter(Rule)
RULE_LIST_ADAPTER: TypeAdapter[Any] = TypeAdapter(list[Rule])


# ------------------------------------------------------------
# Search
# ------------------------------------------------------------
class SearchFilter(BaseModel):
    """
    @brief
    Structured filter: entity type selector plus field -> criterion map.

    @details
    entity_type is left untyped: filters come from an untrusted translator,
    and a missing, null or unknown type must reach apply_filter() to be
    reported as "Invalid entity type" rather than fail at parse time.
    """

    model_config = {"extra": "ignore", "populate_by_name": True}

    entity_type: Any = Field(None, alias="entityType")
    criteria: dict[str, Any] = Field(default_factory=dict)


# ------------------------------------------------------------
# Priority settings
# ------------------------------------------------------------
PresetName = Literal["maxFulfillment", "fairness", "minWorkload", "custom"]


class PriorityWeights(_StrictBaseModel):
    client_priority: int = Field(5, ge=0, le=10, alias="clientPriority")
    worker_utilization: int = Field(3, ge=0, le=10, alias="workerUtilization")
    task_completion: int = Field(4, ge=0, le=10, alias="taskCompletion")
    fairness_score: int = Field(3, ge=0, le=10, alias="fairnessScore")


PRESET_WEIGHTS: dict[str, dict[str, int]] = {
    "maxFulfillment": {
        "clientPriority": 8,
        "workerUtilization": 4,
        "taskCompletion": 7,
        "fairnessScore": 2,
    },
    "fairness": {
        "clientPriority": 5,
        "workerUtilization": 5,
        "taskCompletion": 5,
        "fairnessScore": 8,
    },
    "minWorkload": {
        "clientPriority": 3,
        "workerUtilization": 8,
        "taskCompletion": 4,
        "fairnessScore": 6,
    },
}


class PrioritySettings(_StrictBaseModel):
    """
    @brief
    Weighting profile exported together with data and rules.

    @details
    Not interpreted by the validation engine; carried in the workspace bundle
    for the downstream scheduler.
    """

    weights: PriorityWeights = Field(default_factory=PriorityWeights)
    rankings: list[str] = Field(
        default_factory=lambda: [
            "clientPriority",
            "taskCompletion",
            "workerUtilization",
            "fairnessScore",
        ]
    )
    selected_preset: PresetName = Field("custom", alias="selectedPreset")

    @classmethod
    def from_preset(cls, preset: str) -> PrioritySettings:
        """Settings with the weights of a named preset ("custom" keeps defaults)."""
        if preset == "custom":
            return cls(selected_preset="custom")
        if preset not in PRESET_WEIGHTS:
            raise ValueError(f"Unknown priority preset: {preset}")
        return cls(
            weights=PriorityWeights.model_validate(PRESET_WEIGHTS[preset]),
            selected_preset=preset,
        )


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(BaseModel):
    """
    @brief
    Controls behavior of the validation subsystem.

    @details
    parallel runs the three per-entity structural passes concurrently;
    the merged output is identical to the sequential run.
    """

    parallel: bool = False
    max_workers: int = Field(3, ge=1, description="Thread pool size for parallel passes")
    write_report: bool = True
    include_rule_checks: bool = Field(
        True, description="Append rule cycle/conflict findings to the validation report"
    )


class MetricsConfig(BaseModel):
    """Controls metrics persistence."""

    save_metrics: bool = True


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.

    @details
    Every field has a default, so Config() is a valid configuration.
    """

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        "INFO", description="Root logging level for scripts"
    )
    output_dir: str | None = "data/output"
    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig.model_construct)


__all__ = [
    "EntityType",
    "ErrorType",
    "Client",
    "Worker",
    "Task",
    "ENTITY_MODELS",
    "LIST_FIELDS",
    "NUMERIC_FIELDS",
    "as_record",
    "ValidationError",
    "CoRunParameters",
    "SlotRestrictionParameters",
    "LoadLimitParameters",
    "PhaseWindowParameters",
    "PatternMatchParameters",
    "PriorityOverrideParameters",
    "CoRunRule",
    "SlotRestrictionRule",
    "LoadLimitRule",
    "PhaseWindowRule",
    "PatternMatchRule",
    "PriorityOverrideRule",
    "Rule",
    "RULE_TYPES",
    "RULE_ADAPTER",
    "RULE_LIST_ADAPTER",
    "SearchFilter",
    "PriorityWeights",
    "PrioritySettings",
    "PRESET_WEIGHTS",
    "Config",
    "ValidationConfig",
    "MetricsConfig",
]
