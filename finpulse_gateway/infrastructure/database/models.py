"""SQLAlchemy ORM models for the durable history backend"""

from sqlalchemy import JSON, Column, Date, DateTime, Float, Integer, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class AssessmentReportRecord(Base):
    """Saved report: input snapshot plus the assessment it produced"""

    __tablename__ = "assessment_report"

    # seq gives newest-first ordering independent of clock resolution
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(Text, nullable=False, unique=True)
    user_id = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    financial_data = Column(JSON, nullable=False)
    assessment = Column(JSON, nullable=False)


class LoginSessionRecord(Base):
    """Login audit entry"""

    __tablename__ = "login_session"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False)
    ip = Column(Text, nullable=True)


class DailySalesRecord(Base):
    """One sales figure per user per calendar day"""

    __tablename__ = "daily_sales_entry"
    __table_args__ = (UniqueConstraint("user_id", "sale_date", name="uq_sales_user_date"),)

    seq = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Text, nullable=False, index=True)
    sale_date = Column(Date, nullable=False)
    amount = Column(Float, nullable=False)
