# pulse_analytics/models/tenant.py
from sqlalchemy import Column, Integer, String, JSON
from sqlalchemy.dialects.postgresql import JSONB

from pulse_analytics.db.base_class import Base

# Module types answers are collected for; "all" and "pulse" are scope tokens.
PARENT = "parent"
STUDENT = "student"
EMPLOYEE = "employee"
PULSE_MODULES = (PARENT, STUDENT, EMPLOYEE)
ALL = "all"
ALL_PULSE = "pulse"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    client_type_id = Column(Integer, nullable=False, index=True, default=1)  # benchmark peer group
    # descriptive fields used by the benchmark school filter, e.g. {"school_type": "Private"}
    profile = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)
