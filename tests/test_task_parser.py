"""Tests for turning assistant replies into task lists."""

from logic.task_parser import (
    DEFAULT_TITLE,
    ParsedTaskList,
    describe_created_list,
    parse_assistant_reply,
    split_numbered_items,
)


class TestStructuredReply:
    def test_title_and_tasks(self):
        reply = "TITLE: Learn Python\nTASKS:\n1. Install Python\n2. Read the tutorial\n3. Write a script"

        parsed = parse_assistant_reply(reply)

        assert parsed == ParsedTaskList(
            title="Learn Python",
            tasks=["Install Python", "Read the tutorial", "Write a script"],
            video_url=None,
        )

    def test_video_line(self):
        reply = (
            "TITLE: Guitar basics\n"
            "VIDEO: https://www.youtube.com/watch?v=abc123\n"
            "TASKS:\n"
            "1. Tune the guitar\n"
            "2. Learn three chords\n"
        )

        parsed = parse_assistant_reply(reply)

        assert parsed.title == "Guitar basics"
        assert parsed.video_url == "https://www.youtube.com/watch?v=abc123"
        assert parsed.tasks == ["Tune the guitar", "Learn three chords"]

    def test_crlf_line_endings(self):
        reply = "TITLE: Chores\r\nTASKS:\r\n1. Dishes\r\n2. Laundry\r\n"

        parsed = parse_assistant_reply(reply)

        assert parsed.title == "Chores"
        assert parsed.tasks == ["Dishes", "Laundry"]

    def test_labels_are_case_insensitive(self):
        parsed = parse_assistant_reply("title: Run\ntasks:\n1. Warm up")

        assert parsed.title == "Run"
        assert parsed.tasks == ["Warm up"]

    def test_portuguese_labels(self):
        reply = "TITULO: Estudar\nTAREFAS:\n1. Ler o capítulo\n2. Fazer exercícios"

        parsed = parse_assistant_reply(reply)

        assert parsed.title == "Estudar"
        assert parsed.tasks == ["Ler o capítulo", "Fazer exercícios"]

    def test_prompt_ignored_for_structured_title(self):
        parsed = parse_assistant_reply("TITLE: Trip\nTASKS:\n1. Pack", prompt="help me travel")

        assert parsed.title == "Trip"


class TestFallbackNumberedList:
    def test_uses_short_prompt_as_title(self):
        reply = "Here is a plan:\n1. Buy flour\n2. Bake bread"

        parsed = parse_assistant_reply(reply, prompt="Bake bread at home")

        assert parsed.title == "Bake bread at home"
        assert parsed.tasks == ["Buy flour", "Bake bread"]
        assert parsed.video_url is None

    def test_long_prompt_uses_default_title(self):
        prompt = "x" * 51

        parsed = parse_assistant_reply("1. One\n2. Two", prompt=prompt)

        assert parsed.title == DEFAULT_TITLE

    def test_needs_two_items(self):
        assert parse_assistant_reply("Try this:\n1. Just one thing", prompt="tip") is None


class TestPlainReply:
    def test_chat_text_is_not_a_list(self):
        assert parse_assistant_reply("Sure, happy to help with anything else!") is None

    def test_empty_reply(self):
        assert parse_assistant_reply("") is None


class TestHelpers:
    def test_split_numbered_items_drops_blanks(self):
        assert split_numbered_items("1. a\n2.   \n3. c\n") == ["a", "c"]

    def test_describe_created_list(self):
        parsed = ParsedTaskList(title="Trip", tasks=["Pack", "Book"])

        assert describe_created_list(parsed) == 'Created task list: "Trip" with 2 tasks for you'

    def test_describe_created_list_with_video(self):
        parsed = ParsedTaskList(title="Trip", tasks=["Pack"], video_url="https://youtu.be/x")

        assert "attached a relevant video" in describe_created_list(parsed)
