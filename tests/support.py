"""In-memory stand-ins shared by unit and functional tests."""

import re
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional


class InMemoryStatementRunner:
    """Stands in for the membership warehouse.

    Applies the ``rownum <=N`` ceiling found in the statement, answers count
    queries with the capped size and page queries with the ``min_row``/``max_row``
    window, adding an ``RNUM`` column like the real paging query does.
    """

    _CEILING = re.compile(r"rownum <=(\d+)")

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        delay: float = 0.0,
        error: Optional[Exception] = None,
        failures: Optional[int] = None,
    ):
        self.rows = rows
        self.delay = delay
        self.error = error
        # raise ``error`` on only the first N calls; None means every call
        self.failures = failures
        self.calls: List[str] = []

    def fetch_all(self, sql: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append(sql)
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None and (self.failures is None or len(self.calls) <= self.failures):
            raise self.error

        ceiling = self._CEILING.search(sql)
        sample = self.rows[: int(ceiling.group(1))] if ceiling else list(self.rows)

        if "COUNT(*)" in sql:
            return [{"total_count": len(sample)}]

        window = sample[params["min_row"]: params["max_row"]]
        return [dict(row, RNUM=params["min_row"] + i + 1) for i, row in enumerate(window)]


def make_member_rows(count: int) -> List[Dict[str, Any]]:
    return [
        {
            "Member Name": f"Member {i:02d}",
            "Effective Date": date(2024, 1, 1) + timedelta(days=i),
            "Plan Code": None if i % 10 == 0 else f"PLN{i % 3}",
        }
        for i in range(1, count + 1)
    ]


