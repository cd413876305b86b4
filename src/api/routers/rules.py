"""API routes for automation rule configuration."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.application.rule_service import RuleService
from src.api.domain.exceptions import ResourceNotFoundException
from src.api.domain.schemas import (
    ExecutionHistoryResponse,
    RuleCreate,
    RuleListResponse,
    RuleResponse,
    RuleUpdate,
)
from src.api.infrastructure.container import get_container
from src.api.infrastructure.database import get_db
from src.automation.domain.exceptions import RuleConfigurationError
from src.config import AppConfig

# Load configuration
_app_config = AppConfig()

router = APIRouter(prefix="/rules", tags=["rules"])


def get_rule_service() -> RuleService:
    """Get rule service dependency."""
    return get_container().rule_service()


def _invalid_rule(e: RuleConfigurationError) -> HTTPException:
    return HTTPException(status_code=422, detail={"message": "Invalid rule", "errors": e.errors})


@router.post("", response_model=RuleResponse, status_code=201)
async def create_rule(
    data: RuleCreate,
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    """
    Create an automation rule.

    A rule needs at least one condition group or a schedule, and at least one
    action. Condition groups are ORed; conditions inside a group are ANDed.
    """
    try:
        return await service.create_rule(session, data)
    except RuleConfigurationError as e:
        raise _invalid_rule(e)


@router.get("", response_model=RuleListResponse)
async def list_rules(
    owner_id: str,
    active_only: bool = False,
    limit: int = Query(_app_config.query.default_limit, ge=1, le=_app_config.query.max_limit),
    offset: int = Query(_app_config.query.default_offset, ge=0),
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    """Get all rules of an owner, highest priority first."""
    return await service.list_rules(session, owner_id, active_only=active_only, limit=limit, offset=offset)


@router.get("/{rule_id}", response_model=RuleResponse)
async def get_rule(
    rule_id: int,
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    """Get a rule with its conditions, actions, schedule and runtime state."""
    try:
        return await service.get_rule(session, rule_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.patch("/{rule_id}", response_model=RuleResponse)
async def update_rule(
    rule_id: int,
    data: RuleUpdate,
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    """Update a rule. Conditions, actions and schedule are replaced wholesale when given."""
    try:
        return await service.update_rule(session, rule_id, data)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
    except RuleConfigurationError as e:
        raise _invalid_rule(e)


@router.post("/{rule_id}/activate", response_model=RuleResponse)
async def activate_rule(
    rule_id: int,
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    try:
        return await service.set_active(session, rule_id, True)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.post("/{rule_id}/deactivate", response_model=RuleResponse)
async def deactivate_rule(
    rule_id: int,
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    try:
        return await service.set_active(session, rule_id, False)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)


@router.delete("/{rule_id}", status_code=204)
async def delete_rule(
    rule_id: int,
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    """Delete a rule together with its execution history."""
    try:
        await service.delete_rule(session, rule_id)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
    return Response(status_code=204)


@router.get("/{rule_id}/executions", response_model=ExecutionHistoryResponse)
async def get_rule_executions(
    rule_id: int,
    limit: int = Query(_app_config.query.default_limit, ge=1, le=_app_config.query.max_limit),
    offset: int = Query(_app_config.query.default_offset, ge=0),
    session: AsyncSession = Depends(get_db),
    service: RuleService = Depends(get_rule_service),
):
    """Get the execution history of a rule, newest first."""
    try:
        return await service.get_history(session, rule_id, limit=limit, offset=offset)
    except ResourceNotFoundException as e:
        raise HTTPException(status_code=404, detail=e.message)
