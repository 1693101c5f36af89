#backend/main.py
import os
import csv
import io
import logging
from dataclasses import replace
from typing import Annotated, Any, Dict, List, Optional
from fastapi import FastAPI, Depends, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field, StringConstraints
from db import SessionLocal
from logic import leveling
from logic.task_parser import parse_assistant_reply, describe_created_list
from models.user_progress import ProgressRecord
from models.task_list import Task, TaskList, utcnow
from models.note import FreeFormNote

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("MINDNOTES_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]


# --------- App Setup ---------
app = FastAPI(title="Mind Notes API")

# Allow the web client / extension shell
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(leveling.InvalidArgument)
async def invalid_argument_handler(request: Request, exc: leveling.InvalidArgument):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# --------- DB Dependency ---------
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --------- Pydantic Models ---------
# Surrounding whitespace is stripped before the emptiness check
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class TaskListInput(BaseModel):
    user_id: NonBlankStr = Field(..., examples=["anon_001"])
    title: NonBlankStr = Field(..., examples=["Morning routine"])
    tasks: List[str] = Field(..., min_length=1, examples=[["Stretch", "Drink water"]])
    video_url: Optional[str] = Field(None, examples=["https://www.youtube.com/watch?v=abc123"])


class AssistantReplyInput(BaseModel):
    user_id: NonBlankStr = Field(..., examples=["anon_001"])
    prompt: str = Field("", examples=["Plan my study session"])
    reply: str = Field(..., examples=["TITLE: Study\nTASKS:\n1. Read chapter 1\n2. Take notes"])


class NoteInput(BaseModel):
    user_id: NonBlankStr = Field(..., examples=["anon_001"])
    title: NonBlankStr = Field(..., examples=["Ideas"])
    content: str = Field("", examples=["Some thoughts"])
    blocks: Optional[List[Dict[str, Any]]] = Field(None, examples=[[{"id": "b1", "type": "text", "content": "Hi"}]])


class NoteUpdate(BaseModel):
    title: NonBlankStr
    content: str = ""
    blocks: Optional[List[Dict[str, Any]]] = None


# --------- Serializers ---------
def _isoformat(value):
    return value.isoformat() if value else None


def serialize_progress(progress: leveling.UserProgress) -> Dict[str, Any]:
    if progress.experience_to_next > 0:
        percentage = progress.experience % 100
    else:
        percentage = 100
    return {
        "level": progress.level,
        "experience": progress.experience,
        "experience_to_next": progress.experience_to_next,
        "completed_task_lists": progress.completed_task_lists,
        "progress_percentage": percentage,
    }


def serialize_task_list(task_list: TaskList) -> Dict[str, Any]:
    return {
        "id": task_list.id,
        "user_id": task_list.user_id,
        "title": task_list.title,
        "video_url": task_list.video_url,
        "created_at": _isoformat(task_list.created_at),
        "started_at": _isoformat(task_list.started_at),
        "completed_at": _isoformat(task_list.completed_at),
        "tasks": [
            {
                "id": task.id,
                "text": task.text,
                "completed": task.completed,
                "created_at": _isoformat(task.created_at),
            }
            for task in task_list.tasks
        ],
    }


def serialize_note(note: FreeFormNote) -> Dict[str, Any]:
    return {
        "id": note.id,
        "user_id": note.user_id,
        "title": note.title,
        "content": note.content,
        "blocks": note.blocks or [],
        "created_at": _isoformat(note.created_at),
        "updated_at": _isoformat(note.updated_at),
    }


# --------- Store Helpers ---------
def progress_exists(db: Session, user_id: str) -> bool:
    return db.query(ProgressRecord.user_id).filter_by(user_id=user_id).first() is not None


def ensure_progress(db: Session, user_id: str) -> None:
    """
    Create the user's progress row in its own transaction if it is missing.

    Must run before any row is locked: the commit here releases locks.
    """
    if progress_exists(db, user_id):
        return
    db.add(ProgressRecord.initial(user_id))
    try:
        db.commit()
    except IntegrityError:
        # Created by a concurrent request
        db.rollback()
        logger.debug("Progress row for %s already created", user_id)


def lock_progress(db: Session, user_id: str) -> ProgressRecord:
    return (
        db.query(ProgressRecord)
        .filter_by(user_id=user_id)
        .populate_existing()
        .with_for_update()
        .one()
    )


def get_task_list_or_404(db: Session, list_id: int, lock: bool = False) -> TaskList:
    query = db.query(TaskList).filter_by(id=list_id)
    if lock:
        query = query.populate_existing().with_for_update()
    task_list = query.first()
    if task_list is None:
        raise HTTPException(status_code=404, detail=f"Task list {list_id} not found")
    return task_list


def lock_task_list(db: Session, list_id: int) -> TaskList:
    """
    Lock a task list for a change that may complete it.

    The owner's progress row exists afterwards, so completion only updates it.
    Task list is locked before progress on every path.
    """
    task_list = get_task_list_or_404(db, list_id)
    ensure_progress(db, task_list.user_id)
    return get_task_list_or_404(db, list_id, lock=True)


def get_task_or_404(task_list: TaskList, task_id: int) -> Task:
    task = next((t for t in task_list.tasks if t.id == task_id), None)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found in list {task_list.id}")
    return task


def complete_if_done(db: Session, task_list: TaskList) -> Optional[Dict[str, Any]]:
    if task_list.is_fully_completed and task_list.completed_at is None:
        return complete_task_list(db, task_list)
    return None


def create_task_list(db: Session, user_id: str, title: str, task_texts: List[str], video_url: Optional[str] = None) -> TaskList:
    task_list = TaskList(user_id=user_id, title=title, video_url=video_url or None)
    task_list.tasks = [Task(text=text) for text in task_texts]
    db.add(task_list)
    db.commit()
    db.refresh(task_list)
    return task_list


def complete_task_list(db: Session, task_list: TaskList) -> Dict[str, Any]:
    """
    Award the completion reward for a fully checked task list.

    Progress, the completion counter and completed_at change in the caller's
    transaction; nothing is committed here. Callers hold the task list lock
    (see lock_task_list), which also guarantees the progress row exists.
    """
    now = utcnow()
    minutes = leveling.elapsed_minutes(task_list.started_at or task_list.created_at, now)
    xp_gained = leveling.reward_for_completion(len(task_list.tasks), minutes)

    record = lock_progress(db, task_list.user_id)
    previous = record.to_progress()
    updated = leveling.apply_experience(previous, xp_gained)
    updated = replace(updated, completed_task_lists=updated.completed_task_lists + 1)
    record.store(updated)
    task_list.completed_at = now

    leveled_up = updated.level > previous.level
    logger.info(
        "Task list %s completed by %s in %d min: +%d XP (level %d -> %d)",
        task_list.id, task_list.user_id, minutes, xp_gained, previous.level, updated.level,
    )

    return {
        "completion_time_minutes": minutes,
        "xp_gained": xp_gained,
        "leveled_up": leveled_up,
        "progress": serialize_progress(updated),
    }


# --------- Progress Endpoints ---------
@app.get("/progress/{user_id}")
def get_progress(user_id: str, db: Session = Depends(get_db)):
    record = db.query(ProgressRecord).filter_by(user_id=user_id).first()
    progress = record.to_progress() if record else leveling.INITIAL_PROGRESS
    return {"user_id": user_id, "progress": serialize_progress(progress)}


# --------- Task List Endpoints ---------
@app.post("/task-lists", status_code=201)
def post_task_list(data: TaskListInput, db: Session = Depends(get_db)):
    task_texts = [text.strip() for text in data.tasks if text.strip()]
    if not task_texts:
        raise HTTPException(status_code=422, detail="A task list needs at least one non-empty task")

    task_list = create_task_list(db, data.user_id, data.title, task_texts, data.video_url)
    return {"task_list": serialize_task_list(task_list)}


@app.get("/task-lists")
def get_task_lists(user_id: str, db: Session = Depends(get_db)):
    task_lists = (
        db.query(TaskList)
        .filter_by(user_id=user_id)
        .order_by(TaskList.id.desc())
        .all()
    )
    return {"task_lists": [serialize_task_list(t) for t in task_lists]}


@app.post("/task-lists/{list_id}/tasks/{task_id}/toggle")
def toggle_task(list_id: int, task_id: int, db: Session = Depends(get_db)):
    task_list = lock_task_list(db, list_id)
    task = get_task_or_404(task_list, task_id)

    if task_list.started_at is None:
        task_list.started_at = utcnow()
    task.completed = not task.completed

    completion = complete_if_done(db, task_list)

    db.commit()
    db.refresh(task_list)

    return {"task_list": serialize_task_list(task_list), "completion": completion}


@app.delete("/task-lists/{list_id}/tasks/{task_id}")
def delete_task(list_id: int, task_id: int, db: Session = Depends(get_db)):
    task_list = lock_task_list(db, list_id)
    task = get_task_or_404(task_list, task_id)

    # Removing the last unchecked task completes the list
    task_list.tasks.remove(task)
    completion = complete_if_done(db, task_list)

    db.commit()
    db.refresh(task_list)
    return {"task_list": serialize_task_list(task_list), "completion": completion}


@app.delete("/task-lists/{list_id}")
def delete_task_list(list_id: int, db: Session = Depends(get_db)):
    task_list = get_task_list_or_404(db, list_id)
    db.delete(task_list)
    db.commit()
    return {"status": "deleted", "id": list_id}


@app.post("/task-lists/from-reply")
def task_list_from_reply(data: AssistantReplyInput, db: Session = Depends(get_db)):
    """
    Turn an assistant chat reply into a task list when it contains one.
    Replies without a list are echoed back unchanged.
    """
    parsed = parse_assistant_reply(data.reply, data.prompt)
    if parsed is None:
        return {"created": False, "message": data.reply, "task_list": None}

    task_list = create_task_list(db, data.user_id, parsed.title, parsed.tasks, parsed.video_url)
    logger.info("Created task list %s from assistant reply (%d tasks)", task_list.id, len(parsed.tasks))
    return {
        "created": True,
        "message": describe_created_list(parsed),
        "task_list": serialize_task_list(task_list),
    }


# --------- Note Endpoints ---------
@app.post("/notes", status_code=201)
def post_note(data: NoteInput, db: Session = Depends(get_db)):
    note = FreeFormNote(
        user_id=data.user_id,
        title=data.title,
        content=data.content,
        blocks=data.blocks or [],
    )
    db.add(note)
    db.commit()
    db.refresh(note)
    return {"note": serialize_note(note)}


@app.get("/notes")
def get_notes(user_id: str, db: Session = Depends(get_db)):
    notes = (
        db.query(FreeFormNote)
        .filter_by(user_id=user_id)
        .order_by(FreeFormNote.id.desc())
        .all()
    )
    return {"notes": [serialize_note(n) for n in notes]}


@app.put("/notes/{note_id}")
def put_note(note_id: int, data: NoteUpdate, db: Session = Depends(get_db)):
    note = db.query(FreeFormNote).filter_by(id=note_id).first()
    if note is None:
        raise HTTPException(status_code=404, detail=f"Note {note_id} not found")

    note.title = data.title
    note.content = data.content
    if data.blocks is not None:
        note.blocks = data.blocks
    note.updated_at = utcnow()
    db.commit()
    db.refresh(note)
    return {"note": serialize_note(note)}


@app.delete("/notes/{note_id}")
def delete_note(note_id: int, db: Session = Depends(get_db)):
    note = db.query(FreeFormNote).filter_by(id=note_id).first()
    if note is None:
        raise HTTPException(status_code=404, detail=f"Note {note_id} not found")

    db.delete(note)
    db.commit()
    return {"status": "deleted", "id": note_id}


# --------- Admin: Export Progress ---------
@app.get("/admin/export/csv")
def export_progress_csv(db: Session = Depends(get_db)):
    records = db.query(ProgressRecord).order_by(ProgressRecord.user_id).all()

    # Create in-memory CSV file
    output = io.StringIO()
    writer = csv.writer(output)

    # Header
    writer.writerow([
        "user_id", "level", "experience",
        "experience_to_next", "completed_task_lists", "last_updated"
    ])

    # Rows
    for r in records:
        writer.writerow([
            r.user_id,
            r.level,
            r.experience,
            r.experience_to_next,
            r.completed_task_lists,
            _isoformat(r.last_updated),
        ])

    output.seek(0)
    return StreamingResponse(
        output,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=user_progress.csv"}
    )
