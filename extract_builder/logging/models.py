"""Database models for the logging module."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, Integer, String

from extract_builder.core.database import Base


class Log(Base):
    """API request/response log, also used for handled and unhandled errors."""

    __tablename__ = "log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)
    method = Column(String, nullable=False)
    path = Column(String, nullable=False)
    status_code = Column(Integer, nullable=False)
    error_kind = Column(String, nullable=True)  # Machine-readable kind of a domain error
    client_ip = Column(String, nullable=True)
    request_headers = Column(String, nullable=True)
    request_body = Column(String, nullable=True)
    response_body = Column(String, nullable=True)
    processing_time = Column(Float, nullable=True)  # milliseconds
    user_agent = Column(String, nullable=True)
    username = Column(String, nullable=True)
    hostname = Column(String, nullable=True)
    application_id = Column(String, nullable=True)
