"""Pydantic schemas for the extracts module."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from extract_builder.extracts.criteria import Connector, CriteriaStep


# ===== DEFINITION SCHEMAS =====


class ExtractBase(BaseModel):
    """Base schema for extract definitions."""

    name: str
    description: Optional[str] = None
    is_public: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Extract name cannot be empty")
        return v.strip()


class ExtractCreate(ExtractBase):
    lob_id: int
    sub_lob_id: Optional[int] = None
    selected_fields: List[int] = []  # Catalog select-field ids in display order
    criteria_rows: List[CriteriaStep] = []


class ExtractUpdate(BaseModel):
    """Edit flow payload; omitted fields are left untouched."""

    name: Optional[str] = None
    description: Optional[str] = None
    sub_lob_id: Optional[int] = None
    is_public: Optional[bool] = None
    selected_fields: Optional[List[int]] = None
    criteria_rows: Optional[List[CriteriaStep]] = None
    version: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Extract name cannot be empty")
        return v.strip() if v else v


class CriteriaUpdate(BaseModel):
    """Compile-and-persist payload."""

    criteria_rows: List[CriteriaStep]
    selected_fields: Optional[List[int]] = None
    version: Optional[int] = None


class CriteriaUpdateResult(BaseModel):
    success: bool
    query_statement: str
    version: int


class SelectedFieldRead(BaseModel):
    field_id: int
    display_order: int

    model_config = ConfigDict(from_attributes=True)


class CriteriaRowRead(BaseModel):
    group_order: int
    row_order: int
    field_id: int
    operator_id: int
    value: str
    connector: Optional[Connector] = None


class ExtractRead(ExtractBase):
    id: int
    extract_code: str
    lob_id: int
    sub_lob_id: Optional[int] = None
    created_by: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    query_statement: Optional[str] = None
    version: int
    selected_fields: List[SelectedFieldRead] = []
    criteria_rows: List[CriteriaRowRead] = []

    model_config = ConfigDict(from_attributes=True)


class ExtractSummary(BaseModel):
    """Row of the extract list."""

    id: int
    extract_code: str
    name: str
    description: Optional[str] = None
    lob_name: Optional[str] = None
    sub_lob_name: Optional[str] = None
    is_public: bool
    created_by: str
    created_at: Optional[datetime] = None


# ===== EXECUTION SCHEMAS =====


class ExecuteRequest(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=1000)


class ExecuteResponse(BaseModel):
    extract_id: int
    extract_name: str
    columns: List[str]
    rows: List[Dict[str, Optional[str]]]
    total_count: int
    current_page: int
    page_size: int
    has_more: bool


class ExecutionLogRead(BaseModel):
    id: int
    extract_id: int
    executed_by: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None
    row_count: Optional[int] = None
    total_count: Optional[int] = None
    execution_time_ms: Optional[float] = None
    success: bool
    error_message: Optional[str] = None
    executed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ===== CONFIG AND EXPORT SCHEMAS =====


class ExtractConfigBase(BaseModel):
    """Scheduling and delivery settings."""

    file_format_id: Optional[int] = None
    file_delimiter_id: Optional[int] = None
    schedule_parameter_id: Optional[int] = None
    report_runtimes: Optional[str] = None
    sftp_server_id: Optional[int] = None
    sftp_path: Optional[str] = None
    email_dl_list: Optional[str] = None


class ExtractConfigUpdate(ExtractConfigBase):
    pass


class ExtractConfigRead(ExtractConfigBase):
    extract_id: int
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ExportRequest(BaseModel):
    """Either a catalog delimiter id or a literal delimiter; comma when neither is given."""

    delimiter_id: Optional[int] = None
    delimiter: Optional[str] = None
    file_format: Optional[str] = None

    @field_validator("delimiter")
    @classmethod
    def validate_delimiter(cls, v):
        if v is not None and len(v) != 1:
            raise ValueError("Delimiter must be a single character")
        return v


# ===== CRITERIA BUILDER SCHEMAS =====


class CriteriaChain(BaseModel):
    steps: List[CriteriaStep]


class AppendStepRequest(CriteriaChain):
    index: int
    connector: Connector


class RemoveStepRequest(CriteriaChain):
    index: int
