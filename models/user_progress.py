# backend/models/user_progress.py

from sqlalchemy import Column, String, Integer, DateTime, func
from db import Base
from logic.leveling import INITIAL_PROGRESS, UserProgress


class ProgressRecord(Base):
    __tablename__ = "user_progress"

    user_id = Column(String, primary_key=True, index=True)
    level = Column(Integer, default=INITIAL_PROGRESS.level, nullable=False)
    experience = Column(Integer, default=INITIAL_PROGRESS.experience, nullable=False)
    experience_to_next = Column(Integer, default=INITIAL_PROGRESS.experience_to_next, nullable=False)
    completed_task_lists = Column(Integer, default=INITIAL_PROGRESS.completed_task_lists, nullable=False)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @classmethod
    def initial(cls, user_id: str) -> "ProgressRecord":
        record = cls(user_id=user_id)
        record.store(INITIAL_PROGRESS)
        return record

    def to_progress(self) -> UserProgress:
        return UserProgress(
            level=self.level,
            experience=self.experience,
            experience_to_next=self.experience_to_next,
            completed_task_lists=self.completed_task_lists,
        )

    def store(self, progress: UserProgress) -> None:
        self.level = progress.level
        self.experience = progress.experience
        self.experience_to_next = progress.experience_to_next
        self.completed_task_lists = progress.completed_task_lists
