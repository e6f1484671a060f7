from sqlalchemy import (
    Column, Integer, String, JSON, Text,
    DateTime, Index, UniqueConstraint, func,
)
from mgnrega_api.database import Base


class District(Base):
    __tablename__ = "districts"

    district_code = Column(String(20), primary_key=True)
    district_name = Column(String(200), nullable=False)


class MgnregaRecord(Base):
    __tablename__ = "mgnrega_records"

    id            = Column(Integer, primary_key=True)
    district_code = Column(String(20), nullable=False)
    district_name = Column(String(200), nullable=True)
    state_code    = Column(String(20), nullable=True)
    state_name    = Column(String(100), nullable=True)
    fin_year      = Column(String(20), nullable=False)
    month         = Column(String(20), nullable=False)
    payload       = Column(JSON, nullable=False)       # upstream record, verbatim
    created_at    = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        UniqueConstraint("district_code", "fin_year", "month", name="uq_record_period"),
        Index("ix_record_district_created", "district_code", "created_at"),
        Index("ix_record_state", "state_name"),
    )


class MetadataEntry(Base):
    __tablename__ = "metadata"

    key   = Column(String(100), primary_key=True)
    value = Column(Text, nullable=True)
