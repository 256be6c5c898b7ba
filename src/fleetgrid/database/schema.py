from sqlalchemy import (
    Column,
    Index,
    Integer,
    LargeBinary,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Vehicle(Base):
    __tablename__ = "vehicles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    license_number = Column(String(10), nullable=False, index=True)
    brand = Column(String(20), nullable=False, index=True)
    model = Column(String(30), nullable=True)
    registration_date = Column(String, nullable=True)  # ISO 8601 date string
    mileage = Column(Integer, nullable=False)
    tank = Column(String, nullable=False, default="Full")
    client_id = Column(Integer, nullable=True)
    last_updated = Column(String, nullable=False, index=True)  # ISO 8601 string

    # Version token, replaced on every write. Compared for equality only.
    row_version = Column(LargeBinary(16), nullable=False)

    # Audit metadata (acting user tokens are opaque strings)
    created_by = Column(String, nullable=True)
    created_on = Column(String, nullable=True)
    modified_by = Column(String, nullable=True)
    modified_on = Column(String, nullable=True)


class VehicleAudit(Base):
    """One row per committed create/modify/delete."""
    __tablename__ = "vehicle_audits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    vehicle_id = Column(Integer, nullable=False, index=True)
    event_time_utc = Column(String, nullable=False)
    user = Column(String, nullable=False)
    action = Column(String, nullable=False)  # Created | Modified | Deleted
    changes = Column(Text, nullable=False)  # JSON

    __table_args__ = (
        Index("idx_vehicle_audits_vehicle_time", "vehicle_id", "event_time_utc"),
    )


def create_all(engine) -> None:
    Base.metadata.create_all(engine)
