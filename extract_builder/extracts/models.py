# extract_builder/extracts/models.py
"""Extract definitions: selected fields, criteria chain, delivery config and test-run history."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from extract_builder.core.database import Base


class Extract(Base):
    """User-defined eligibility extract."""

    __tablename__ = "extracts"

    id = Column(Integer, primary_key=True, index=True)
    extract_code = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False, index=True)
    description = Column(Text, nullable=True)
    lob_id = Column(Integer, ForeignKey("lines_of_business.id"), nullable=False)
    sub_lob_id = Column(Integer, ForeignKey("sub_lines_of_business.id"), nullable=True)
    created_by = Column(String, nullable=False)
    is_public = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Null until the first criteria save
    query_statement = Column(Text, nullable=True)

    # Bumped on every UPDATE of this row; stale writers fail at flush
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    selected_fields = relationship(
        "ExtractField",
        back_populates="extract",
        cascade="all, delete-orphan",
        order_by="ExtractField.display_order",
    )
    criteria_groups = relationship(
        "CriteriaGroup",
        back_populates="extract",
        cascade="all, delete-orphan",
        order_by="CriteriaGroup.group_order",
    )
    config = relationship("ExtractConfig", back_populates="extract", uselist=False, cascade="all, delete-orphan")
    execution_logs = relationship("ExtractExecutionLog", back_populates="extract", cascade="all, delete-orphan")

    __mapper_args__ = {"version_id_col": version}


class ExtractField(Base):
    """Output column of an extract, in display order."""

    __tablename__ = "extract_fields"

    id = Column(Integer, primary_key=True, index=True)
    extract_id = Column(Integer, ForeignKey("extracts.id"), nullable=False, index=True)
    field_id = Column(Integer, ForeignKey("lookup_select_fields.id"), nullable=False)
    display_order = Column(Integer, nullable=False)  # 1-based, contiguous

    extract = relationship("Extract", back_populates="selected_fields")


class CriteriaGroup(Base):
    """One link in the WHERE chain; its connector joins it to the next group."""

    __tablename__ = "criteria_groups"

    id = Column(Integer, primary_key=True, index=True)
    extract_id = Column(Integer, ForeignKey("extracts.id"), nullable=False, index=True)
    group_order = Column(Integer, nullable=False)
    connector = Column(String, nullable=True)  # AND / OR, null on the last group

    extract = relationship("Extract", back_populates="criteria_groups")
    rows = relationship(
        "CriteriaRow",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="CriteriaRow.row_order",
    )


class CriteriaRow(Base):
    """A single field/operator/value condition."""

    __tablename__ = "criteria_rows"

    id = Column(Integer, primary_key=True, index=True)
    extract_id = Column(Integer, ForeignKey("extracts.id"), nullable=False, index=True)
    group_id = Column(Integer, ForeignKey("criteria_groups.id"), nullable=False)
    field_id = Column(Integer, ForeignKey("lookup_criteria_fields.id"), nullable=False)
    operator_id = Column(Integer, ForeignKey("operators.id"), nullable=False)
    value = Column(String, nullable=False)
    row_order = Column(Integer, nullable=False)  # 1-based across the whole extract

    group = relationship("CriteriaGroup", back_populates="rows")


class ExtractConfig(Base):
    """Scheduling and delivery settings; at most one per extract."""

    __tablename__ = "extract_configs"

    id = Column(Integer, primary_key=True, index=True)
    extract_id = Column(Integer, ForeignKey("extracts.id"), nullable=False, unique=True)
    file_format_id = Column(Integer, ForeignKey("file_formats.id"), nullable=True)
    file_delimiter_id = Column(Integer, ForeignKey("file_delimiters.id"), nullable=True)
    schedule_parameter_id = Column(Integer, ForeignKey("schedule_parameters.id"), nullable=True)
    report_runtimes = Column(String, nullable=True)
    sftp_server_id = Column(Integer, ForeignKey("sftp_servers.id"), nullable=True)
    sftp_path = Column(String, nullable=True)
    email_dl_list = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.now)
    updated_at = Column(DateTime, default=datetime.now, onupdate=datetime.now)

    extract = relationship("Extract", back_populates="config")


class ExtractExecutionLog(Base):
    """Execution log for extract test runs."""

    __tablename__ = "extract_execution_logs"

    id = Column(Integer, primary_key=True, index=True)
    extract_id = Column(Integer, ForeignKey("extracts.id"), nullable=False, index=True)
    executed_by = Column(String, nullable=True)
    page = Column(Integer, nullable=True)
    page_size = Column(Integer, nullable=True)
    row_count = Column(Integer, nullable=True)
    total_count = Column(Integer, nullable=True)
    execution_time_ms = Column(Float, nullable=True)
    success = Column(Boolean, nullable=False)
    error_message = Column(Text, nullable=True)
    executed_at = Column(DateTime, default=datetime.now, index=True)

    extract = relationship("Extract", back_populates="execution_logs")
