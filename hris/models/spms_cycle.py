from sqlalchemy import Column, Integer, String, Date, Boolean, DateTime
from sqlalchemy.sql import func
from hris.database import Base

class SPMSCycle(Base):
    """A rating period (usually a semester) that performance forms belong to."""
    __tablename__ = "spms_cycles"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    def __repr__(self):
        return f"<SPMSCycle {self.name} active={self.is_active}>"
