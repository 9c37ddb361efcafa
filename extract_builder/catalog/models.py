# extract_builder/catalog/models.py
"""Read-only reference data: lines of business, lookup fields, operators and delivery options."""

from sqlalchemy import Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from extract_builder.core.database import Base


class LineOfBusiness(Base):
    """Top-level tenant/category dimension scoping fields and data."""

    __tablename__ = "lines_of_business"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    prefix = Column(String, nullable=False)  # Leading segment of generated extract codes
    source_sys_id = Column(String, nullable=True)

    sub_lines = relationship("SubLineOfBusiness", back_populates="line_of_business")


class SubLineOfBusiness(Base):
    __tablename__ = "sub_lines_of_business"

    id = Column(Integer, primary_key=True, index=True)
    lob_id = Column(Integer, ForeignKey("lines_of_business.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    prefix = Column(String, nullable=False)

    line_of_business = relationship("LineOfBusiness", back_populates="sub_lines")


class LookupSelectField(Base):
    """A column users may pick for the extract output."""

    __tablename__ = "lookup_select_fields"

    id = Column(Integer, primary_key=True, index=True)
    lob_id = Column(Integer, ForeignKey("lines_of_business.id"), nullable=False, index=True)
    field_name = Column(String, nullable=False)  # Internal column expression, e.g. M.MEMBER_NAME
    display_name = Column(String, nullable=False)  # Used as the SELECT alias


class LookupCriteriaField(Base):
    """A column users may filter on; its type drives operators and literal rendering."""

    __tablename__ = "lookup_criteria_fields"

    id = Column(Integer, primary_key=True, index=True)
    lob_id = Column(Integer, ForeignKey("lines_of_business.id"), nullable=False, index=True)
    field_name = Column(String, nullable=False)
    display_name = Column(String, nullable=False)
    field_type = Column(String, nullable=False)  # VARCHAR, DATE, NUMBER, ...

    values = relationship("LookupCriteriaValue", back_populates="field", cascade="all, delete-orphan")


class LookupCriteriaValue(Base):
    """Enumerated legal value for a criteria field (drives a picklist instead of free text)."""

    __tablename__ = "lookup_criteria_values"

    id = Column(Integer, primary_key=True, index=True)
    field_id = Column(Integer, ForeignKey("lookup_criteria_fields.id"), nullable=False, index=True)
    field_value = Column(String, nullable=False)

    field = relationship("LookupCriteriaField", back_populates="values")


class Operator(Base):
    """Comparison operator; scoped to a field type, not to a field."""

    __tablename__ = "operators"

    id = Column(Integer, primary_key=True, index=True)
    field_type = Column(String, nullable=False, index=True)
    operator_symbol = Column(String, nullable=False)


# ===== DELIVERY OPTIONS =====


class FileFormat(Base):
    __tablename__ = "file_formats"

    id = Column(Integer, primary_key=True, index=True)
    format_name = Column(String, nullable=False)
    description = Column(String, nullable=True)


class FileDelimiter(Base):
    __tablename__ = "file_delimiters"

    id = Column(Integer, primary_key=True, index=True)
    delimiter_name = Column(String, nullable=False)
    delimiter_value = Column(String, nullable=False)


class SftpServer(Base):
    __tablename__ = "sftp_servers"

    id = Column(Integer, primary_key=True, index=True)
    server_name = Column(String, nullable=False)
    description = Column(String, nullable=True)


class ScheduleParameter(Base):
    __tablename__ = "schedule_parameters"

    id = Column(Integer, primary_key=True, index=True)
    frequency = Column(String, nullable=False)
