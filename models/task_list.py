# backend/models/task_list.py
from sqlalchemy import Column, String, Integer, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from db import Base


def utcnow():
    # Naive UTC so values compare the same after a SQLite round trip
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Task(Base):
    __tablename__ = "task"

    id = Column(Integer, primary_key=True, index=True)
    task_list_id = Column(Integer, ForeignKey("task_list.id", ondelete="CASCADE"), index=True, nullable=False)
    text = Column(String, nullable=False)
    completed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    task_list = relationship("TaskList", back_populates="tasks")


class TaskList(Base):
    __tablename__ = "task_list"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, index=True, nullable=False)
    title = Column(String, nullable=False)
    video_url = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    started_at = Column(DateTime, nullable=True)  # first task toggle
    completed_at = Column(DateTime, nullable=True)  # set once, never cleared

    tasks = relationship("Task", back_populates="task_list", cascade="all, delete-orphan", order_by=Task.id)

    @property
    def is_fully_completed(self) -> bool:
        return len(self.tasks) > 0 and all(task.completed for task in self.tasks)
