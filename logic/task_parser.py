# backend/logic/task_parser.py

import re
from dataclasses import dataclass, field
from typing import List, Optional

DEFAULT_TITLE = "Generated Tasks"
MAX_PROMPT_TITLE_LENGTH = 50

# TITLE / VIDEO / TASKS block, with the Portuguese labels the assistant is prompted with
STRUCTURED_REPLY = re.compile(
    r"(?:TITLE|T[IÍ]TULO):\s*(.+?)(?:\r?\n)"
    r"(?:VIDEO:\s*(.+?)(?:\r?\n))?"
    r"(?:TASKS|TAREFAS):\s*((?:\d+\.\s*.+(?:\n|\r\n?)*)+)",
    re.IGNORECASE,
)
NUMBERED_LIST = re.compile(r"(?:\n|^)(\d+\.\s*.+(?:\n\d+\.\s*.+)*)")
ITEM_MARKER = re.compile(r"\d+\.\s*")


@dataclass
class ParsedTaskList:
    title: str
    tasks: List[str] = field(default_factory=list)
    video_url: Optional[str] = None


def split_numbered_items(text: str) -> List[str]:
    items = []
    for chunk in ITEM_MARKER.split(text):
        item = chunk.strip().replace("\r", "").replace("\n", "")
        if item:
            items.append(item)
    return items


def parse_assistant_reply(reply: str, prompt: str = "") -> Optional[ParsedTaskList]:
    """
    Extract a task list from an assistant reply.

    The structured TITLE/VIDEO/TASKS form wins. Failing that, any numbered list
    of at least two items becomes a task list titled after the prompt. Plain
    chat text yields None.
    """
    match = STRUCTURED_REPLY.search(reply)
    if match:
        tasks = split_numbered_items(match.group(3))
        if tasks:
            video_url = match.group(2).strip() if match.group(2) else None
            return ParsedTaskList(title=match.group(1).strip(), tasks=tasks, video_url=video_url or None)
        return None

    match = NUMBERED_LIST.search(reply)
    if match:
        tasks = split_numbered_items(match.group(1))
        if len(tasks) >= 2:
            prompt = prompt.strip()
            if not prompt or len(prompt) > MAX_PROMPT_TITLE_LENGTH:
                title = DEFAULT_TITLE
            else:
                title = prompt
            return ParsedTaskList(title=title, tasks=tasks)

    return None


def describe_created_list(parsed: ParsedTaskList) -> str:
    video = " and attached a relevant video" if parsed.video_url else ""
    return f'Created task list: "{parsed.title}" with {len(parsed.tasks)} tasks{video} for you'
