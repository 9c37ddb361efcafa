# extract_builder/catalog/router.py
"""API router for catalog reference data."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from extract_builder.catalog.cache import CatalogCache
from extract_builder.catalog.dao import CatalogDAO
from extract_builder.catalog.schemas import (
    CriteriaFieldRead,
    CriteriaValueRead,
    DelimiterRead,
    LineOfBusinessRead,
    OperatorRead,
    OptionRead,
    SelectFieldRead,
    SubLineOfBusinessRead,
)
from extract_builder.catalog.service import CatalogService
from extract_builder.core.dependencies import SessionDep, get_catalog_cache

router = APIRouter(tags=["catalog"])


# ===== DEPENDENCY INJECTION =====

def get_catalog_dao(session: SessionDep) -> CatalogDAO:
    """Get CatalogDAO instance."""
    return CatalogDAO(session)


def get_catalog_service(
    catalog_dao: CatalogDAO = Depends(get_catalog_dao),
    cache: CatalogCache = Depends(get_catalog_cache),
) -> CatalogService:
    """Get CatalogService instance."""
    return CatalogService(catalog_dao, cache)


# ===== LINES OF BUSINESS =====

@router.get("/lines-of-business", response_model=List[LineOfBusinessRead])
def get_lines_of_business(service: CatalogService = Depends(get_catalog_service)) -> List[LineOfBusinessRead]:
    """Get all lines of business."""
    return service.get_lines_of_business()


@router.get("/lines-of-business/{lob_id}/sub-lines", response_model=List[SubLineOfBusinessRead])
def get_sub_lines_of_business(
    lob_id: int, service: CatalogService = Depends(get_catalog_service)
) -> List[SubLineOfBusinessRead]:
    """Get the sub-lines of a line of business."""
    return service.get_sub_lines_of_business(lob_id)


# ===== FIELDS AND OPERATORS =====

@router.get("/lookup-fields/{lob_id}", response_model=List[SelectFieldRead])
def get_select_fields(lob_id: int, service: CatalogService = Depends(get_catalog_service)) -> List[SelectFieldRead]:
    """Get the output fields selectable for a line of business."""
    return service.get_select_fields(lob_id)


@router.get("/lookup-criteria-fields/{lob_id}", response_model=List[CriteriaFieldRead])
def get_criteria_fields(
    lob_id: int, service: CatalogService = Depends(get_catalog_service)
) -> List[CriteriaFieldRead]:
    """Get the fields users may filter on for a line of business."""
    return service.get_criteria_fields(lob_id)


@router.get("/lookup-criteria-values/{field_id}", response_model=List[CriteriaValueRead])
def get_criteria_values(
    field_id: int, service: CatalogService = Depends(get_catalog_service)
) -> List[CriteriaValueRead]:
    """Get enumerated values for a criteria field."""
    return service.get_criteria_values(field_id)


@router.get("/operators", response_model=List[OperatorRead])
def get_operators(
    field_name: Optional[str] = Query(None, description="Internal name of the criteria field"),
    lob_id: Optional[int] = Query(None, description="Line of business the field belongs to"),
    service: CatalogService = Depends(get_catalog_service),
) -> List[OperatorRead]:
    """Get operators applicable to a criteria field's type."""
    return service.get_operators(field_name, lob_id)


# ===== DELIVERY OPTIONS =====

@router.get("/file-formats", response_model=List[OptionRead])
def get_file_formats(service: CatalogService = Depends(get_catalog_service)) -> List[OptionRead]:
    return service.get_file_formats()


@router.get("/file-delimiters", response_model=List[DelimiterRead])
def get_file_delimiters(service: CatalogService = Depends(get_catalog_service)) -> List[DelimiterRead]:
    return service.get_file_delimiters()


@router.get("/sftp-servers", response_model=List[OptionRead])
def get_sftp_servers(service: CatalogService = Depends(get_catalog_service)) -> List[OptionRead]:
    return service.get_sftp_servers()


@router.get("/schedule-parameters", response_model=List[OptionRead])
def get_schedule_parameters(service: CatalogService = Depends(get_catalog_service)) -> List[OptionRead]:
    return service.get_schedule_parameters()
