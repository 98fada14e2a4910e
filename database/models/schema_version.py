"""Модель версии схемы"""
from sqlalchemy import Column, Integer, DateTime
from sqlalchemy.sql import func
from database.connection import Base


class SchemaVersion(Base):
    """Одна строка с номером версии схемы БД"""
    __tablename__ = "schema_version"

    id = Column(Integer, primary_key=True)
    version = Column(Integer, nullable=False)
    applied_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
