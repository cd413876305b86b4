"""Pydantic schemas for API requests and responses."""

from datetime import datetime, time

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.automation.domain.models import (
    ActionType,
    ActuatorState,
    ConditionOperator,
    ExecutionStatus,
    ScheduleType,
)


# Rule definition schemas
class ConditionSchema(BaseModel):
    """Single threshold comparison."""

    model_config = ConfigDict(from_attributes=True)

    sensor_id: str = Field(..., min_length=1, max_length=255, description="Sensor compared by this condition")
    operator: ConditionOperator
    value: float
    value_max: float | None = Field(None, description="Upper bound, required for 'between'")
    condition_order: int = Field(0, ge=0)


class ConditionGroupSchema(BaseModel):
    """AND-combined conditions. Groups of a rule are OR-combined."""

    model_config = ConfigDict(from_attributes=True)

    group_order: int = Field(0, ge=0)
    conditions: list[ConditionSchema] = Field(..., min_length=1)


class ActionSchema(BaseModel):
    """Command issued to one actuator."""

    model_config = ConfigDict(from_attributes=True)

    actuator_id: str = Field(..., min_length=1, max_length=255)
    action_type: ActionType
    action_value: int | None = Field(None, ge=0, le=100, description="Required for 'set_value'")
    action_order: int = Field(0, ge=0)


class HysteresisSchema(BaseModel):
    """Dual-threshold debouncing."""

    model_config = ConfigDict(from_attributes=True)

    on_threshold: float
    off_threshold: float
    min_state_change_interval_seconds: int | None = Field(
        None, ge=10, description="Dwell time between state changes (defaults to the engine setting)"
    )


class ScheduleSchema(BaseModel):
    """Time-based trigger."""

    model_config = ConfigDict(from_attributes=True)

    schedule_type: ScheduleType
    time_of_day: time
    timezone: str = Field("UTC", max_length=50, description="IANA timezone name")
    days_of_week: list[int] | None = Field(None, description="0 = Sunday ... 6 = Saturday")
    cron_expression: str | None = Field(None, max_length=100)


class ScheduleResponse(ScheduleSchema):
    next_run_at: datetime | None = None
    last_run_at: datetime | None = None


class RuleCreate(BaseModel):
    """Schema for creating an automation rule."""

    owner_id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255, description="Rule name")
    description: str | None = Field(None, description="Rule description")
    priority: int = Field(0, ge=0, le=1000, description="Higher wins when several rules match")
    is_active: bool = True
    condition_groups: list[ConditionGroupSchema] = Field(default_factory=list)
    actions: list[ActionSchema] = Field(..., min_length=1)
    hysteresis: HysteresisSchema | None = None
    schedule: ScheduleSchema | None = None

    @model_validator(mode="after")
    def check_trigger(self) -> "RuleCreate":
        if not self.condition_groups and self.schedule is None:
            raise ValueError("A rule needs at least one condition group or a schedule")
        return self


class RuleUpdate(BaseModel):
    """
    Schema for updating a rule.

    Omitted fields are left untouched. ``condition_groups``, ``actions`` and
    ``schedule`` replace the current ones wholesale. An explicit ``null`` for
    ``hysteresis``, ``schedule`` or ``description`` removes it.
    """

    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    priority: int | None = Field(None, ge=0, le=1000)
    is_active: bool | None = None
    condition_groups: list[ConditionGroupSchema] | None = None
    actions: list[ActionSchema] | None = Field(None, min_length=1)
    hysteresis: HysteresisSchema | None = None
    schedule: ScheduleSchema | None = None


class RuleStateResponse(BaseModel):
    """Runtime state of a rule."""

    model_config = ConfigDict(from_attributes=True)

    current_state: ActuatorState
    last_state_change_at: datetime | None
    trigger_count: int
    last_triggered_at: datetime | None


class RuleResponse(BaseModel):
    """Schema for a complete rule aggregate."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: str
    name: str
    description: str | None
    priority: int
    is_active: bool
    created_at: datetime
    condition_groups: list[ConditionGroupSchema]
    actions: list[ActionSchema]
    hysteresis: HysteresisSchema | None
    schedule: ScheduleResponse | None
    state: RuleStateResponse


class RuleListResponse(BaseModel):
    rules: list[RuleResponse]
    total: int


# Execution history schemas
class ExecutionLogResponse(BaseModel):
    """Schema for one execution log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    rule_id: int
    sensor_id: str | None
    sensor_value: float | None
    executed_at: datetime
    command_id: str | None
    execution_status: ExecutionStatus
    error_message: str | None


class ExecutionHistoryResponse(BaseModel):
    entries: list[ExecutionLogResponse]
    total: int


class RetentionResult(BaseModel):
    """Outcome of an execution log cleanup."""

    expired_deleted: int
    overflow_deleted: int


# Sensor schemas
class SensorCreate(BaseModel):
    """Schema for registering a sensor."""

    sensor_id: str = Field(..., min_length=1, max_length=255, description="External sensor identifier")
    owner_id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=500)
    unit: str | None = Field(None, max_length=100)


class SensorResponse(BaseModel):
    """Schema for sensor response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    sensor_id: str
    owner_id: str
    name: str
    unit: str | None
    created_at: datetime
    updated_at: datetime


# Reading schemas
class ReadingCreate(BaseModel):
    """Schema for ingesting a sensor reading."""

    value: float
    timestamp: datetime | None = Field(None, description="Measurement time (defaults to now)")


class ReadingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sensor_id: str
    value: float
    recorded_at: datetime


class CommandResponse(BaseModel):
    """Command submitted by a fired rule."""

    actuator_id: str
    command_type: ActionType
    value: int | None
    command_id: str | None
    error: str | None


class EvaluationResponse(BaseModel):
    """What the engine did with a reading."""

    reading: ReadingResponse
    owner_id: str | None
    matched_rule_ids: list[int]
    selected_rule_id: int | None
    fired: bool
    state_transition: str | None = None
    skipped_reason: str | None = None
    error: str | None = None
    commands: list[CommandResponse] = Field(default_factory=list)
