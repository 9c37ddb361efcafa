# extract_builder/catalog/service.py
"""Service layer for catalog lookups, served through a TTL cache."""

import logging
from typing import List, Optional

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

logger = logging.getLogger(__name__)


class CatalogService:
    """Read-mostly vocabulary the compiler and UI draw from.

    Results are converted to schemas before caching so no ORM instance outlives its session.
    """

    def __init__(self, catalog_dao: CatalogDAO, cache: CatalogCache):
        self.dao = catalog_dao
        self.cache = cache

    def get_lines_of_business(self) -> List[LineOfBusinessRead]:
        return self.cache.get_or_load(
            ("lines_of_business",),
            lambda: [LineOfBusinessRead.model_validate(lob) for lob in self.dao.get_lines_of_business()],
        )

    def get_sub_lines_of_business(self, lob_id: int) -> List[SubLineOfBusinessRead]:
        return self.cache.get_or_load(
            ("sub_lines_of_business", lob_id),
            lambda: [SubLineOfBusinessRead.model_validate(sub) for sub in self.dao.get_sub_lines_of_business(lob_id)],
        )

    def get_select_fields(self, lob_id: int) -> List[SelectFieldRead]:
        return self.cache.get_or_load(
            ("select_fields", lob_id),
            lambda: [
                SelectFieldRead(id=field.id, name=field.display_name, lob_id=field.lob_id)
                for field in self.dao.get_select_fields(lob_id)
            ],
        )

    def get_criteria_fields(self, lob_id: int) -> List[CriteriaFieldRead]:
        return self.cache.get_or_load(
            ("criteria_fields", lob_id),
            lambda: [CriteriaFieldRead.model_validate(field) for field in self.dao.get_criteria_fields(lob_id)],
        )

    def get_criteria_values(self, field_id: int) -> List[CriteriaValueRead]:
        """Enumerated values for a field; an empty list means free text."""
        return self.cache.get_or_load(
            ("criteria_values", field_id),
            lambda: [CriteriaValueRead(value=value.field_value) for value in self.dao.get_criteria_values(field_id)],
        )

    def get_operators(self, field_name: Optional[str], lob_id: Optional[int]) -> List[OperatorRead]:
        """Operators applicable to the named field's type."""
        if not field_name or lob_id is None:
            return []

        # Resolved through the cached field list so unknown names never add cache entries
        field = next((f for f in self.get_criteria_fields(lob_id) if f.field_name == field_name), None)
        if field is None:
            logger.info(f"No criteria field {field_name!r} for LOB {lob_id}")
            return []
        return self.get_operators_for_type(field.field_type)

    def get_operators_for_type(self, field_type: str) -> List[OperatorRead]:
        return self.cache.get_or_load(
            ("operators_for_type", field_type),
            lambda: [OperatorRead.model_validate(op) for op in self.dao.get_operators_for_type(field_type)],
        )

    # ===== DELIVERY OPTIONS =====

    def get_file_formats(self) -> List[OptionRead]:
        return self.cache.get_or_load(
            ("file_formats",),
            lambda: [
                OptionRead(id=fmt.id, name=fmt.format_name, description=fmt.description)
                for fmt in self.dao.get_file_formats()
            ],
        )

    def get_file_delimiters(self) -> List[DelimiterRead]:
        return self.cache.get_or_load(
            ("file_delimiters",),
            lambda: [
                DelimiterRead(id=d.id, name=d.delimiter_name, value=d.delimiter_value)
                for d in self.dao.get_file_delimiters()
            ],
        )

    def get_sftp_servers(self) -> List[OptionRead]:
        return self.cache.get_or_load(
            ("sftp_servers",),
            lambda: [
                OptionRead(id=server.id, name=server.server_name, description=server.description)
                for server in self.dao.get_sftp_servers()
            ],
        )

    def get_schedule_parameters(self) -> List[OptionRead]:
        return self.cache.get_or_load(
            ("schedule_parameters",),
            lambda: [OptionRead(id=param.id, name=param.frequency) for param in self.dao.get_schedule_parameters()],
        )
