# extract_builder/extracts/criteria.py
"""Criteria chain maintenance: append, remove and finalize steps.

A step is one criteria group holding exactly one row. Steps form an ordered
chain; each step's connector joins it to the step after it, so the last step
never carries one. All operations return a new list and leave the input alone.
"""

from enum import Enum
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from extract_builder.core.exceptions import ValidationFailure

DEFAULT_CONNECTOR = "AND"


class Connector(str, Enum):
    AND = "AND"
    OR = "OR"


class CriteriaStep(BaseModel):
    """A condition plus the connector to the next condition."""

    field_id: Optional[int] = None
    operator_id: Optional[int] = None
    value: Optional[str] = None
    connector: Optional[Connector] = None
    order: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    @field_validator("connector", mode="before")
    @classmethod
    def normalize_connector(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            return v or None
        return v


def _copy(steps: Sequence[CriteriaStep]) -> List[CriteriaStep]:
    return [step.model_copy() for step in steps]


def _check_index(steps: Sequence[CriteriaStep], index: int) -> None:
    if index < 0 or index >= len(steps):
        raise ValidationFailure(f"Criteria index {index} is out of range for {len(steps)} criteria rows")


def append_step(steps: Sequence[CriteriaStep], index: int, connector) -> List[CriteriaStep]:
    """Insert an empty step right after ``index`` and join them with ``connector``."""
    _check_index(steps, index)
    if not isinstance(connector, Connector):
        try:
            connector = Connector(str(connector).strip().upper())
        except ValueError as e:
            raise ValidationFailure(f"Connector must be AND or OR, got {connector!r}") from e

    result = _copy(steps)
    result[index].connector = connector
    result.insert(index + 1, CriteriaStep())
    return result


def remove_step(steps: Sequence[CriteriaStep], index: int) -> List[CriteriaStep]:
    """Remove the step at ``index`` keeping the chain connected.

    A middle step hands its connector to its predecessor; removing the last
    step leaves the new last step without a connector.
    """
    if len(steps) <= 1:
        raise ValidationFailure("At least one criteria row must remain")
    _check_index(steps, index)

    result = _copy(steps)
    removed = result.pop(index)
    if 0 < index < len(steps) - 1:
        result[index - 1].connector = removed.connector
    result[-1].connector = None
    return result


def finalize_steps(steps: Sequence[CriteriaStep]) -> List[CriteriaStep]:
    """Validate and normalize a chain before it is compiled or stored.

    Orders are renumbered 1..N, a missing connector on a non-last step
    becomes AND and the last step's connector is cleared.
    """
    result = _copy(steps)
    for position, step in enumerate(result, start=1):
        missing = [
            name
            for name, value in (("field", step.field_id), ("operator", step.operator_id), ("value", step.value))
            if value is None or (isinstance(value, str) and not value.strip())
        ]
        if missing:
            raise ValidationFailure(f"Criteria row {position} is missing: {', '.join(missing)}")

        step.order = position
        if position == len(result):
            step.connector = None
        elif step.connector is None:
            step.connector = Connector(DEFAULT_CONNECTOR)
    return result
