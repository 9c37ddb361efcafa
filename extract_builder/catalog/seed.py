# extract_builder/catalog/seed.py
"""Reference data for local development and tests."""

from typing import Dict

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

SELECT_FIELDS = [
    ("M.MEMBER_ID", "Member ID"),
    ("M.MEMBER_NAME", "Member Name"),
    ("M.DATE_OF_BIRTH", "Date of Birth"),
    ("MC.PLAN_CODE", "Plan Code"),
    ("MC.EFF_DATE", "Effective Date"),
]

CRITERIA_FIELDS = [
    ("MC.STATUS", "Coverage Status", "VARCHAR"),
    ("M.LAST_NAME", "Last Name", "VARCHAR"),
    ("MC.EFF_DATE", "Effective Date", "DATE"),
    ("M.AGE", "Age", "NUMBER"),
]

OPERATORS = {
    "VARCHAR": ["=", "!=", "LIKE"],
    "DATE": ["=", ">", "<", ">=", "<="],
    "NUMBER": ["=", "!=", ">", "<", ">=", "<="],
}

DELIMITERS = [("Comma", ","), ("Pipe", "|"), ("Tab", "\t")]


def seed_catalog(session: Session) -> Dict[str, int]:
    """Insert one line of business with its catalog; a no-op when one already exists."""
    existing = session.execute(select(LineOfBusiness)).scalars().first()
    if existing is not None:
        sub_lob = session.execute(
            select(SubLineOfBusiness).where(SubLineOfBusiness.lob_id == existing.id)
        ).scalars().first()
        return {"lob_id": existing.id, "sub_lob_id": sub_lob.id if sub_lob else None}

    lob = LineOfBusiness(name="Commercial", prefix="COM", source_sys_id="2001")
    session.add(lob)
    session.flush()

    sub_lob = SubLineOfBusiness(lob_id=lob.id, name="Large Group", prefix="LG")
    session.add(sub_lob)

    for field_name, display_name in SELECT_FIELDS:
        session.add(LookupSelectField(lob_id=lob.id, field_name=field_name, display_name=display_name))

    for field_name, display_name, field_type in CRITERIA_FIELDS:
        field = LookupCriteriaField(lob_id=lob.id, field_name=field_name, display_name=display_name, field_type=field_type)
        if field_name == "MC.STATUS":
            field.values = [LookupCriteriaValue(field_value=v) for v in ("ACTIVE", "TERMED", "PENDING")]
        session.add(field)

    for field_type, symbols in OPERATORS.items():
        for symbol in symbols:
            session.add(Operator(field_type=field_type, operator_symbol=symbol))

    session.add_all([FileFormat(format_name=name, description=desc) for name, desc in (
        ("CSV", "Delimited text"),
        ("TXT", "Plain text"),
        ("XLSX", "Excel workbook"),
    )])
    session.add_all([FileDelimiter(delimiter_name=name, delimiter_value=value) for name, value in DELIMITERS])
    session.add_all([
        SftpServer(server_name="sftp-prod-01", description="Production drop box"),
        SftpServer(server_name="sftp-test-01", description="Vendor test drop box"),
    ])
    session.add_all([ScheduleParameter(frequency=f) for f in ("Daily", "Weekly", "Monthly")])

    session.commit()
    return {"lob_id": lob.id, "sub_lob_id": sub_lob.id}
