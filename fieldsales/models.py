"""
Persisted row shapes for the SQL backend sync

Columns are named after the entity fields so a field dict produced by
``model_dump(mode="json")`` maps straight onto a row. Dates and times are kept
as ISO strings, the same shape the entities serialise to.
"""

from sqlalchemy import JSON, Boolean, Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


class ClientRecord(Base):
    __tablename__ = "clients"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    contact_person = Column(String(255), nullable=False)
    contact_role = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    email = Column(String(255), nullable=True)
    address = Column(String(500), nullable=True)
    area = Column(String(50), nullable=True)
    category = Column(String(100), nullable=True)
    classification = Column(String(20), nullable=False, default="cold")
    prospecting_count = Column(Integer, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    last_visit = Column(String(10), nullable=True)  # YYYY-MM-DD
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class VisitRecord(Base):
    __tablename__ = "visits"

    id = Column(String(36), primary_key=True)
    # Lookup only, visits outlive deleted clients
    client_id = Column(String(36), nullable=False, index=True)
    scheduled_date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    scheduled_time = Column(String(8), nullable=False)  # HH:MM:SS
    type = Column(String(20), nullable=False)
    # Status workflow: scheduled → completed | cancelled (terminal)
    status = Column(String(20), nullable=False, default="scheduled", index=True)
    notes = Column(Text, nullable=True)
    planned_services = Column(JSON, nullable=True)
    opportunities = Column(JSON, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class TaskRecord(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True)
    title = Column(String(255), nullable=False)
    due_date = Column(String(10), nullable=False)  # YYYY-MM-DD
    priority = Column(String(10), nullable=False, default="medium")
    completed = Column(Boolean, nullable=False, default=False)
    related_client_id = Column(String(36), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
