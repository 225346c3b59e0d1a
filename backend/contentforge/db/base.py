"""SQLAlchemy declarative base shared by the table models."""
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass
