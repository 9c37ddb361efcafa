# extract_builder/catalog/dao.py
"""Data Access Objects for catalog reference data."""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from extract_builder.catalog.models import (
    FileDelimiter,
    FileFormat,
    LineOfBusiness,
    LookupCriteriaField,
    LookupCriteriaValue,
    LookupSelectField,
    Operator,
    ScheduleParameter,
    SftpServer,
    SubLineOfBusiness,
)
from extract_builder.core.base_dao import BaseDAO


class CatalogDAO:
    """Read access to every catalog table."""

    def __init__(self, db_session: Session):
        self.db = db_session
        self.lines_of_business = BaseDAO(LineOfBusiness, db_session)
        self.sub_lines_of_business = BaseDAO(SubLineOfBusiness, db_session)
        self.file_formats = BaseDAO(FileFormat, db_session)
        self.file_delimiters = BaseDAO(FileDelimiter, db_session)
        self.sftp_servers = BaseDAO(SftpServer, db_session)
        self.schedule_parameters = BaseDAO(ScheduleParameter, db_session)

    # ===== LINES OF BUSINESS =====

    def get_lines_of_business(self) -> List[LineOfBusiness]:
        return self.lines_of_business.get_all(limit=1000, order_by="name")

    def get_line_of_business(self, lob_id: int) -> Optional[LineOfBusiness]:
        return self.lines_of_business.get_by_id(lob_id)

    def get_sub_lines_of_business(self, lob_id: int) -> List[SubLineOfBusiness]:
        return self.sub_lines_of_business.get_all_by_field("lob_id", lob_id, order_by="name")

    def get_sub_line_of_business(self, sub_lob_id: int) -> Optional[SubLineOfBusiness]:
        return self.sub_lines_of_business.get_by_id(sub_lob_id)

    # ===== FIELDS =====

    def get_select_fields(self, lob_id: int) -> List[LookupSelectField]:
        stmt = select(LookupSelectField).where(LookupSelectField.lob_id == lob_id).order_by(LookupSelectField.id)
        return list(self.db.execute(stmt).scalars().all())

    def get_criteria_fields(self, lob_id: int) -> List[LookupCriteriaField]:
        stmt = (
            select(LookupCriteriaField)
            .where(LookupCriteriaField.lob_id == lob_id)
            .order_by(LookupCriteriaField.display_name)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_criteria_values(self, field_id: int) -> List[LookupCriteriaValue]:
        stmt = (
            select(LookupCriteriaValue)
            .where(LookupCriteriaValue.field_id == field_id)
            .order_by(LookupCriteriaValue.field_value)
        )
        return list(self.db.execute(stmt).scalars().all())

    # Uncached by-id lookups used while compiling, so dangling references are seen immediately

    def get_select_fields_by_ids(self, field_ids: Iterable[int]) -> Dict[int, LookupSelectField]:
        ids = set(field_ids)
        if not ids:
            return {}
        stmt = select(LookupSelectField).where(LookupSelectField.id.in_(ids))
        return {field.id: field for field in self.db.execute(stmt).scalars().all()}

    def get_criteria_fields_by_ids(self, field_ids: Iterable[int]) -> Dict[int, LookupCriteriaField]:
        ids = set(field_ids)
        if not ids:
            return {}
        stmt = select(LookupCriteriaField).where(LookupCriteriaField.id.in_(ids))
        return {field.id: field for field in self.db.execute(stmt).scalars().all()}

    # ===== OPERATORS =====

    def get_operators_for_type(self, field_type: str) -> List[Operator]:
        stmt = select(Operator).where(Operator.field_type == field_type).order_by(Operator.id)
        return list(self.db.execute(stmt).scalars().all())

    def get_operators_by_ids(self, operator_ids: Iterable[int]) -> Dict[int, Operator]:
        ids = set(operator_ids)
        if not ids:
            return {}
        stmt = select(Operator).where(Operator.id.in_(ids))
        return {operator.id: operator for operator in self.db.execute(stmt).scalars().all()}

    # ===== DELIVERY OPTIONS =====

    def get_file_formats(self) -> List[FileFormat]:
        return self.file_formats.get_all(limit=1000, order_by="format_name")

    def get_file_delimiters(self) -> List[FileDelimiter]:
        return self.file_delimiters.get_all(limit=1000, order_by="delimiter_name")

    def get_file_delimiter(self, delimiter_id: int) -> Optional[FileDelimiter]:
        return self.file_delimiters.get_by_id(delimiter_id)

    def get_file_format(self, format_id: int) -> Optional[FileFormat]:
        return self.file_formats.get_by_id(format_id)

    def get_sftp_servers(self) -> List[SftpServer]:
        return self.sftp_servers.get_all(limit=1000, order_by="server_name")

    def get_schedule_parameters(self) -> List[ScheduleParameter]:
        return self.schedule_parameters.get_all(limit=1000, order_by="frequency")
