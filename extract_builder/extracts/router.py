# extract_builder/extracts/router.py
"""API routers for extracts and the criteria builder."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from extract_builder.catalog.dao import CatalogDAO
from extract_builder.catalog.router import get_catalog_dao
from extract_builder.core.dependencies import CurrentUserDep, SessionDep, SettingsDep, get_statement_runner
from extract_builder.extracts.criteria import append_step, finalize_steps, remove_step
from extract_builder.extracts.dao import ExtractDAO
from extract_builder.extracts.executor import PaginatedExecutor
from extract_builder.extracts.schemas import (
    AppendStepRequest,
    CriteriaChain,
    CriteriaUpdate,
    CriteriaUpdateResult,
    ExecuteRequest,
    ExecuteResponse,
    ExecutionLogRead,
    ExportRequest,
    ExtractConfigRead,
    ExtractConfigUpdate,
    ExtractCreate,
    ExtractRead,
    ExtractSummary,
    ExtractUpdate,
    RemoveStepRequest,
)
from extract_builder.extracts.service import ExtractService

router = APIRouter(prefix="/extracts", tags=["extracts"])
criteria_router = APIRouter(prefix="/criteria", tags=["criteria"])


# Dependency functions
def get_extract_dao(db: SessionDep) -> ExtractDAO:
    return ExtractDAO(db)


def get_executor(settings: SettingsDep, runner=Depends(get_statement_runner)) -> PaginatedExecutor:
    return PaginatedExecutor(
        runner,
        timeout_seconds=settings.query_timeout_seconds,
        retry_attempts=settings.store_retry_attempts,
    )


def get_extract_service(
    settings: SettingsDep,
    extract_dao: ExtractDAO = Depends(get_extract_dao),
    catalog_dao: CatalogDAO = Depends(get_catalog_dao),
    executor: PaginatedExecutor = Depends(get_executor),
) -> ExtractService:
    return ExtractService(extract_dao, catalog_dao, settings, executor)


# ===== EXTRACT DEFINITION ENDPOINTS =====


@router.get("", response_model=List[ExtractSummary])
async def list_extracts(
    user_id: CurrentUserDep,
    search: Optional[str] = Query(None, description="Case-insensitive name filter"),
    service: ExtractService = Depends(get_extract_service),
) -> List[ExtractSummary]:
    """Get extracts visible to the current user."""
    return await service.list_extracts(user_id, search)


@router.post("", response_model=ExtractRead, status_code=201)
async def create_extract(
    extract_data: ExtractCreate,
    user_id: CurrentUserDep,
    service: ExtractService = Depends(get_extract_service),
) -> ExtractRead:
    """Create a new extract definition."""
    return await service.create_extract(extract_data, user_id)


@router.get("/{extract_id}", response_model=ExtractRead)
async def get_extract(
    extract_id: int, user_id: CurrentUserDep, service: ExtractService = Depends(get_extract_service)
) -> ExtractRead:
    """Get a specific extract definition by ID."""
    return await service.get_extract(extract_id, user_id)


@router.patch("/{extract_id}", response_model=ExtractRead)
async def update_extract(
    extract_id: int,
    extract_data: ExtractUpdate,
    user_id: CurrentUserDep,
    service: ExtractService = Depends(get_extract_service),
) -> ExtractRead:
    """Update an existing extract definition."""
    return await service.update_extract(extract_id, extract_data, user_id)


@router.put("/{extract_id}/criteria", response_model=CriteriaUpdateResult)
async def save_criteria(
    extract_id: int,
    criteria_data: CriteriaUpdate,
    user_id: CurrentUserDep,
    service: ExtractService = Depends(get_extract_service),
) -> CriteriaUpdateResult:
    """Replace the criteria and regenerate the extract statement."""
    return await service.save_criteria(extract_id, criteria_data, user_id)


# ===== EXECUTION ENDPOINTS =====


@router.post("/{extract_id}/execute", response_model=ExecuteResponse)
async def execute_extract(
    extract_id: int,
    user_id: CurrentUserDep,
    request: ExecuteRequest = ExecuteRequest(),
    service: ExtractService = Depends(get_extract_service),
) -> ExecuteResponse:
    """Run one page of the extract's sample."""
    return await service.execute(extract_id, request, user_id)


@router.get("/{extract_id}/execution-logs", response_model=List[ExecutionLogRead])
async def get_execution_logs(
    extract_id: int,
    user_id: CurrentUserDep,
    limit: int = Query(50, ge=1, le=500),
    service: ExtractService = Depends(get_extract_service),
) -> List[ExecutionLogRead]:
    """Get recent test runs of an extract."""
    return await service.get_execution_logs(extract_id, user_id, limit)


@router.post("/{extract_id}/export")
async def export_extract(
    extract_id: int,
    user_id: CurrentUserDep,
    request: ExportRequest = ExportRequest(),
    service: ExtractService = Depends(get_extract_service),
) -> Response:
    """Export the extract sample as delimited text or XLSX."""
    export_file = await service.export(extract_id, request, user_id)
    return Response(
        content=export_file.content,
        media_type=export_file.media_type,
        headers={"Content-Disposition": f"attachment; filename={export_file.filename}"},
    )


# ===== CONFIG ENDPOINTS =====


@router.get("/{extract_id}/config", response_model=ExtractConfigRead)
async def get_extract_config(
    extract_id: int, user_id: CurrentUserDep, service: ExtractService = Depends(get_extract_service)
) -> ExtractConfigRead:
    """Get the delivery configuration of an extract."""
    return await service.get_config(extract_id, user_id)


@router.post("/{extract_id}/config", response_model=ExtractConfigRead)
async def save_extract_config(
    extract_id: int,
    config_data: ExtractConfigUpdate,
    user_id: CurrentUserDep,
    service: ExtractService = Depends(get_extract_service),
) -> ExtractConfigRead:
    """Create or update the delivery configuration of an extract."""
    return await service.save_config(extract_id, config_data, user_id)


# ===== CRITERIA BUILDER ENDPOINTS =====


@criteria_router.post("/append", response_model=CriteriaChain)
def append_criteria_step(request: AppendStepRequest) -> CriteriaChain:
    """Insert an empty row after ``index`` joined by ``connector``."""
    return CriteriaChain(steps=append_step(request.steps, request.index, request.connector))


@criteria_router.post("/remove", response_model=CriteriaChain)
def remove_criteria_step(request: RemoveStepRequest) -> CriteriaChain:
    return CriteriaChain(steps=remove_step(request.steps, request.index))


@criteria_router.post("/finalize", response_model=CriteriaChain)
def finalize_criteria(request: CriteriaChain) -> CriteriaChain:
    """Renumber rows and repair connectors before saving."""
    return CriteriaChain(steps=finalize_steps(request.steps))
