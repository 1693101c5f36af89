# backend/models/note.py
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON
from db import Base
from models.task_list import utcnow


class FreeFormNote(Base):
    __tablename__ = "free_form_note"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    content = Column(Text, default="")
    blocks = Column(JSON, default=list)  # editor blocks, stored as sent by the client
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
