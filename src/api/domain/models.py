"""Domain models for API layer."""

from datetime import datetime, time

import sqlalchemy
from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, ForeignKey, Integer, String, Text, Time
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class AutomationRule(Base):
    """Sensor-to-actuator automation rule with priority-based conflict resolution."""

    __tablename__ = "automation_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)  # 0-1000, higher wins
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    # Hysteresis
    on_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    off_threshold: Mapped[float | None] = mapped_column(Float, nullable=True)
    min_state_change_interval_seconds: Mapped[int] = mapped_column(Integer, default=60, nullable=False)
    current_actuator_state: Mapped[str] = mapped_column(String(20), default="unknown", nullable=False)
    last_state_change_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Counters
    trigger_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    last_triggered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    # Relationships
    condition_groups: Mapped[list["RuleConditionGroup"]] = relationship(
        "RuleConditionGroup",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="RuleConditionGroup.group_order",
    )
    actions: Mapped[list["RuleAction"]] = relationship(
        "RuleAction", back_populates="rule", cascade="all, delete-orphan", order_by="RuleAction.action_order"
    )
    schedule: Mapped["ScheduleRule | None"] = relationship(
        "ScheduleRule", back_populates="rule", cascade="all, delete-orphan", uselist=False
    )
    execution_logs: Mapped[list["RuleExecutionLog"]] = relationship(
        "RuleExecutionLog", back_populates="rule", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        sqlalchemy.CheckConstraint("priority >= 0 AND priority <= 1000", name="ck_rule_priority_range"),
        sqlalchemy.CheckConstraint(
            "(on_threshold IS NULL AND off_threshold IS NULL) OR (on_threshold IS NOT NULL AND off_threshold IS NOT NULL)",
            name="ck_rule_hysteresis_both_or_neither",
        ),
        sqlalchemy.CheckConstraint("min_state_change_interval_seconds >= 10", name="ck_rule_min_interval"),
        sqlalchemy.Index("ix_rules_owner_active_priority", "owner_id", "is_active", "priority"),
    )


class RuleConditionGroup(Base):
    """Group of AND-combined conditions (groups are ORed together)."""

    __tablename__ = "rule_condition_groups"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    group_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    rule: Mapped["AutomationRule"] = relationship("AutomationRule", back_populates="condition_groups")
    conditions: Mapped[list["RuleCondition"]] = relationship(
        "RuleCondition",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="RuleCondition.condition_order",
    )

    __table_args__ = (sqlalchemy.UniqueConstraint("rule_id", "group_order", name="uq_group_rule_order"),)


class RuleCondition(Base):
    """Single sensor condition (operator + threshold)."""

    __tablename__ = "rule_conditions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rule_condition_groups.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sensor_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    operator: Mapped[str] = mapped_column(String(20), nullable=False)  # gt, lt, gte, lte, eq, neq, between
    value: Mapped[float] = mapped_column(Float, nullable=False)
    value_max: Mapped[float | None] = mapped_column(Float, nullable=True)  # Required for 'between'
    condition_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    group: Mapped["RuleConditionGroup"] = relationship("RuleConditionGroup", back_populates="conditions")

    __table_args__ = (
        sqlalchemy.UniqueConstraint("group_id", "condition_order", name="uq_condition_group_order"),
        sqlalchemy.CheckConstraint(
            "(operator = 'between' AND value_max IS NOT NULL AND value_max > value) OR (operator != 'between')",
            name="ck_condition_between_requires_value_max",
        ),
    )


class RuleAction(Base):
    """Action executed when a rule fires."""

    __tablename__ = "rule_actions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False, index=True
    )
    actuator_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    action_type: Mapped[str] = mapped_column(String(20), nullable=False)  # on, off, set_value
    action_value: Mapped[int | None] = mapped_column(Integer, nullable=True)  # 0-100, required for set_value
    action_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    rule: Mapped["AutomationRule"] = relationship("AutomationRule", back_populates="actions")

    __table_args__ = (
        sqlalchemy.UniqueConstraint("rule_id", "actuator_id", name="uq_action_rule_actuator"),
        sqlalchemy.CheckConstraint(
            "action_value IS NULL OR (action_value >= 0 AND action_value <= 100)", name="ck_action_value_range"
        ),
    )


class ScheduleRule(Base):
    """Time-based schedule of an automation rule."""

    __tablename__ = "schedule_rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    schedule_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)  # once, daily, weekly, cron
    time_of_day: Mapped[time] = mapped_column(Time, nullable=False)
    days_of_week: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)  # 0 = Sunday
    cron_expression: Mapped[str | None] = mapped_column(String(100), nullable=True)
    timezone: Mapped[str] = mapped_column(String(50), default="UTC", nullable=False)
    next_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    last_run_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    rule: Mapped["AutomationRule"] = relationship("AutomationRule", back_populates="schedule")


class RuleExecutionLog(Base):
    """Historical record of rule executions (append-only)."""

    __tablename__ = "rule_execution_logs"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    rule_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("automation_rules.id", ondelete="CASCADE"), nullable=False
    )
    sensor_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sensor_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    executed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    command_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    execution_status: Mapped[str] = mapped_column(String(20), nullable=False)  # success, failed, skipped
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    rule: Mapped["AutomationRule"] = relationship("AutomationRule", back_populates="execution_logs")

    __table_args__ = (
        sqlalchemy.Index("ix_execution_logs_rule_time", "rule_id", "executed_at"),
        sqlalchemy.Index("ix_execution_logs_time", "executed_at"),
    )


class DeviceCommand(Base):
    """Actuator command waiting for the device command-delivery subsystem."""

    __tablename__ = "device_commands"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    actuator_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    command_type: Mapped[str] = mapped_column(String(20), nullable=False)
    value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False, index=True)
    rule_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("automation_rules.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Sensor(Base):
    """Sensor registry entry mapping a sensor to its owner."""

    __tablename__ = "sensors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sensor_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True, index=True)
    owner_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


class SensorReading(Base):
    """Raw sensor reading."""

    __tablename__ = "sensor_readings"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    sensor_id: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (sqlalchemy.Index("ix_sensor_readings_sensor_time", "sensor_id", "recorded_at"),)
