# extract_builder/extracts/dao.py
"""Data Access Objects for extract definitions."""

from typing import Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import desc, func, or_, select
from sqlalchemy.orm import Session, selectinload

from extract_builder.catalog.models import LineOfBusiness, SubLineOfBusiness
from extract_builder.extracts.criteria import CriteriaStep
from extract_builder.extracts.models import (
    CriteriaGroup,
    CriteriaRow,
    Extract,
    ExtractConfig,
    ExtractExecutionLog,
    ExtractField,
)


def _visible_to(user_id: str):
    return or_(Extract.is_public == True, Extract.created_by == user_id)  # noqa: E712


class ExtractDAO:
    """DAO for Extract operations. Callers own commit and rollback."""

    def __init__(self, db_session: Session):
        self.db = db_session

    def get_visible(self, extract_id: int, user_id: str) -> Optional[Extract]:
        """Get an extract the user may see, with fields and criteria loaded."""
        stmt = (
            select(Extract)
            .options(
                selectinload(Extract.selected_fields),
                selectinload(Extract.criteria_groups).selectinload(CriteriaGroup.rows),
            )
            .where(Extract.id == extract_id, _visible_to(user_id))
        )
        return self.db.execute(stmt).scalars().first()

    def list_visible(self, user_id: str, search: Optional[str] = None) -> List[Tuple[Extract, Optional[str], Optional[str]]]:
        """Visible extracts newest first, with their LOB and sub-LOB names."""
        stmt = (
            select(Extract, LineOfBusiness.name, SubLineOfBusiness.name)
            .outerjoin(LineOfBusiness, LineOfBusiness.id == Extract.lob_id)
            .outerjoin(SubLineOfBusiness, SubLineOfBusiness.id == Extract.sub_lob_id)
            .where(_visible_to(user_id))
        )
        if search:
            stmt = stmt.where(func.upper(Extract.name).like(f"%{search.upper()}%"))
        stmt = stmt.order_by(desc(Extract.created_at), desc(Extract.id))
        return [tuple(row) for row in self.db.execute(stmt).all()]

    def add(self, extract: Extract) -> Extract:
        self.db.add(extract)
        self.db.flush()  # Get the extract ID
        return extract

    # ===== WHOLESALE REPLACEMENT =====

    def replace_fields(self, extract: Extract, field_ids: Sequence[int]) -> None:
        """Drop every selected field and insert the new ones in order."""
        extract.selected_fields = [
            ExtractField(field_id=field_id, display_order=position)
            for position, field_id in enumerate(field_ids, start=1)
        ]

    def replace_criteria(self, extract: Extract, steps: Iterable[CriteriaStep]) -> None:
        """Drop every criteria group and row and insert one group per step."""
        groups = []
        for step in steps:
            row = CriteriaRow(
                extract_id=extract.id,
                field_id=step.field_id,
                operator_id=step.operator_id,
                value=step.value,
                row_order=step.order,
            )
            groups.append(
                CriteriaGroup(
                    group_order=step.order,
                    connector=step.connector.value if step.connector else None,
                    rows=[row],
                )
            )
        extract.criteria_groups = groups

    # ===== CONFIG =====

    def get_config(self, extract_id: int) -> Optional[ExtractConfig]:
        stmt = select(ExtractConfig).where(ExtractConfig.extract_id == extract_id)
        return self.db.execute(stmt).scalars().first()

    def upsert_config(self, extract_id: int, values: dict) -> ExtractConfig:
        config = self.get_config(extract_id)
        if config is None:
            config = ExtractConfig(extract_id=extract_id)
            self.db.add(config)
        for key, value in values.items():
            setattr(config, key, value)
        self.db.flush()
        return config

    # ===== EXECUTION LOGS =====

    def add_execution_log(self, execution_log: ExtractExecutionLog) -> ExtractExecutionLog:
        self.db.add(execution_log)
        self.db.commit()
        self.db.refresh(execution_log)
        return execution_log

    def get_execution_logs(self, extract_id: int, limit: int = 50) -> List[ExtractExecutionLog]:
        """Execution logs for an extract, most recent first."""
        stmt = (
            select(ExtractExecutionLog)
            .where(ExtractExecutionLog.extract_id == extract_id)
            .order_by(desc(ExtractExecutionLog.executed_at), desc(ExtractExecutionLog.id))
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    # ===== TRANSACTION =====

    def commit(self) -> None:
        self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
