# extract_builder/logging/dao.py
"""Data Access Object for request logs."""

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import String, cast, desc, func, or_, select
from sqlalchemy.orm import Session

from extract_builder.core.base_dao import BaseDAO
from extract_builder.logging.models import Log


class LogDAO(BaseDAO[Log]):
    """DAO for Log operations using BaseDAO."""

    def __init__(self, db_session: Session):
        super().__init__(Log, db_session)

    def _filtered(
        self,
        query,
        hours: int,
        status_min: Optional[int] = None,
        status_max: Optional[int] = None,
        search: Optional[str] = None,
    ):
        time_threshold = datetime.now() - timedelta(hours=hours)
        query = query.where(self.model.timestamp >= time_threshold)

        if status_min is not None:
            query = query.where(self.model.status_code >= status_min)
        if status_max is not None:
            query = query.where(self.model.status_code <= status_max)

        if search:
            search_term = f"%{search}%"
            query = query.where(
                or_(
                    self.model.path.ilike(search_term),
                    self.model.method.ilike(search_term),
                    self.model.error_kind.ilike(search_term),
                    cast(self.model.status_code, String).ilike(search_term),
                )
            )
        return query

    def get_logs_with_filters(
        self,
        limit: int = 50,
        offset: int = 0,
        hours: int = 24,
        status_min: Optional[int] = None,
        status_max: Optional[int] = None,
        search: Optional[str] = None,
    ) -> List[Log]:
        """Get logs newest first within the time window."""
        query = self._filtered(select(self.model), hours, status_min, status_max, search)
        query = query.order_by(desc(self.model.timestamp)).offset(offset).limit(limit)
        return list(self.db.execute(query).scalars().all())

    def count_logs_with_filters(
        self,
        hours: int = 24,
        status_min: Optional[int] = None,
        status_max: Optional[int] = None,
        search: Optional[str] = None,
    ) -> int:
        query = self._filtered(select(func.count()).select_from(self.model), hours, status_min, status_max, search)
        return self.db.execute(query).scalar_one()

    def get_error_logs(self, hours: int = 24, limit: int = 100) -> List[Log]:
        """Get 4xx and 5xx logs."""
        return self.get_logs_with_filters(limit=limit, hours=hours, status_min=400)

    def create_log(self, **log_data) -> Log:
        if "timestamp" not in log_data:
            log_data["timestamp"] = datetime.now()
        return self.create(**log_data)
