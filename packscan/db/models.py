from datetime import datetime
from uuid import uuid4

from sqlalchemy import Column, DateTime, JSON, String, Text

from .database import Base


def _new_id() -> str:
    return str(uuid4())


class SavedAnalysis(Base):
    __tablename__ = "saved_analyses"

    id = Column(String(36), primary_key=True, default=_new_id)
    user_id = Column(String(255), nullable=False, index=True)
    image_path = Column(String(512), nullable=False)
    materials = Column(JSON, nullable=False, default=list)
    overall_analysis = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
