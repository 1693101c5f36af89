# setup_db.py
from db import Base, engine
from models.user_progress import ProgressRecord
from models.task_list import Task, TaskList
from models.note import FreeFormNote
print('🗑️ Dropping tables...')
Base.metadata.drop_all(bind=engine)
print("📦 Creating tables...")
Base.metadata.create_all(bind=engine)
print("✅ Done.")
