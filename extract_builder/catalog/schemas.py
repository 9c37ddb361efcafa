"""Pydantic schemas for catalog reference data."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class LineOfBusinessRead(BaseModel):
    id: int
    name: str
    prefix: str
    source_sys_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class SubLineOfBusinessRead(BaseModel):
    id: int
    lob_id: int
    name: str
    prefix: str

    model_config = ConfigDict(from_attributes=True)


class SelectFieldRead(BaseModel):
    """Selectable output field; the internal column name stays server-side."""

    id: int
    name: str
    lob_id: int


class CriteriaFieldRead(BaseModel):
    id: int
    field_name: str
    display_name: str
    field_type: str

    model_config = ConfigDict(from_attributes=True)


class CriteriaValueRead(BaseModel):
    value: str


class OperatorRead(BaseModel):
    id: int
    field_type: str
    operator_symbol: str

    model_config = ConfigDict(from_attributes=True)


class OptionRead(BaseModel):
    """Generic dropdown option (file formats, SFTP servers, schedule parameters)."""

    id: int
    name: str
    description: Optional[str] = None


class DelimiterRead(BaseModel):
    id: int
    name: str
    value: str
