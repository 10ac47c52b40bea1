"""Tests for context assembly and unmasked context injection."""

import pytest

from llm.context import (
    ConversationTurn,
    build_classifier_input,
    build_final_prompt,
    clean_message_content,
    extract_message_content,
    extract_user_prompt,
    inject_context,
)
from privacy import extract_masked_tokens, mask, unmask


@pytest.fixture
def history():
    return [
        {"role": "user", "content": "Please create training for Jane Doe"},
        {"role": "assistant", "content": "Done, the training for Jane Doe is ready."},
    ]


# ── Classifier input ──────────────────────────────────────────

class TestBuildClassifierInput:
    def test_without_history_uses_masked_message(self):
        result = build_classifier_input([], "Send a phishing email to jane@x.com")
        assert result.text == result.masked_prompt
        assert "jane@x.com" not in result.text
        assert result.text.startswith("Send a phishing email to [EMAIL-")

    def test_end_to_end_scenario(self, history):
        current = "Now send Jane Doe a phishing email at jane@x.com"
        result = build_classifier_input(history, current)

        assert "Jane Doe" not in result.text
        assert "jane@x.com" not in result.text

        tokens = set(extract_masked_tokens(result.text))
        assert len([t for t in tokens if t.startswith("[USER-")]) == 1
        assert len([t for t in tokens if t.startswith("[EMAIL-")]) == 1

        assert unmask(result.masked_prompt, result.mapping) == current

    def test_name_from_introduction_shares_token_with_current_message(self):
        history = [
            {"role": "user", "content": "My name is Jane Doe"},
            {"role": "assistant", "content": "Hi Jane"},
        ]
        current = "Create training for Jane Doe at jane@x.com"
        result = build_classifier_input(history, current)

        assert "Jane Doe" not in result.text
        assert "jane@x.com" not in result.text

        tokens = set(extract_masked_tokens(result.text))
        assert len([t for t in tokens if t.startswith("[USER-")]) == 1
        assert len([t for t in tokens if t.startswith("[EMAIL-")]) == 1
        assert len(result.mapping) == 2

        assert unmask(result.masked_prompt, result.mapping) == current

    def test_string_history_turns_are_user_messages(self):
        result = build_classifier_input(["My name is Jane Doe", "Hi Jane"], "Create training for Jane Doe")
        lines = result.text.splitlines()
        assert lines[1].startswith("User: My name is [USER-")
        assert lines[2] == "User: Hi Jane"
        assert "Jane Doe" not in result.text

    def test_unsupported_history_turn(self):
        with pytest.raises(ValueError):
            build_classifier_input([42], "hello")

    def test_history_rendering(self, history):
        result = build_classifier_input(history, "thanks")
        lines = result.text.splitlines()
        assert lines[0] == "CONVERSATION HISTORY"
        assert lines[1].startswith("User: Please create training for [USER-")
        assert lines[2].startswith("Assistant: Done, the training for [USER-")
        assert lines[-2:] == ["CURRENT MESSAGE", "thanks"]
        assert result.masked_prompt == "thanks"

    def test_history_window(self):
        turns = [ConversationTurn(role="user", content=f"message {i}") for i in range(15)]
        result = build_classifier_input(turns, "current", window=10)
        assert "message 4" not in result.text
        assert "message 5" in result.text
        assert "message 14" in result.text

    def test_custom_masker_is_used(self):
        from privacy import MaskingConfig, PIIMasker
        masker = PIIMasker(MaskingConfig(mask_emails=False))
        result = build_classifier_input(None, "mail jane@x.com", masker=masker)
        assert result.text == "mail jane@x.com"
        assert result.mapping == {}


# ── Context injection ─────────────────────────────────────────

class TestInjectContext:
    def test_unmasks_and_prepends(self):
        masked = mask("Create training for Jane Doe")
        (token,) = masked.mapping

        prompt = inject_context("Do it", f"Assign the course to {token}", masked.mapping)

        assert prompt == "[CONTEXT FROM ORCHESTRATOR: Assign the course to Jane Doe]\n\nDo it"

    @pytest.mark.parametrize("task_context", [None, "", "   "])
    def test_empty_context_is_noop(self, task_context):
        assert inject_context("Do it", task_context, {}) == "Do it"

    def test_unknown_tokens_are_left_alone(self):
        prompt = inject_context("Do it", "Ping [USER-DEADBEEF]", {})
        assert prompt == "[CONTEXT FROM ORCHESTRATOR: Ping [USER-DEADBEEF]]\n\nDo it"


class TestBuildFinalPrompt:
    def test_no_override(self):
        assert build_final_prompt("hello") == "hello"

    def test_provider_and_model(self):
        assert build_final_prompt("hello", "WORKERS_AI", "gpt-oss-120b") == (
            "[Use this model: WORKERS_AI - gpt-oss-120b]\n\nhello"
        )

    def test_provider_only(self):
        assert build_final_prompt("hello", "OPENAI") == "[Use this model provider: OPENAI]\n\nhello"

    def test_model_only_is_ignored(self):
        assert build_final_prompt("hello", None, "gpt-4o") == "hello"


# ── Message helpers ───────────────────────────────────────────

class TestMessageHelpers:
    def test_string_content(self):
        assert extract_message_content({"role": "user", "content": "hi"}) == "hi"

    def test_content_parts(self):
        message = {"content": [{"type": "text", "text": "look"}, {"type": "image", "url": "x"}]}
        assert extract_message_content(message) == "look [Image]"

    def test_ai_sdk_parts(self):
        message = {"parts": [{"type": "text", "text": "a"}, {"type": "step-start"}, {"type": "text", "text": "b"}]}
        assert extract_message_content(message) == "a  b"

    def test_tool_invocation(self):
        assert extract_message_content({"role": "assistant", "tool_calls": [{}]}) == "[Tool Execution Result]"

    def test_object_content(self):
        assert extract_message_content({"content": {"text": "inner"}}) == "inner"
        assert extract_message_content({"content": {"value": 1}}) == '{"value": 1}'

    def test_empty_message(self):
        assert extract_message_content({"role": "user"}) == "[Empty Message]"

    def test_extract_user_prompt(self):
        messages = [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "reply"},
            {"role": "user", "parts": [{"type": "text", "text": "second"}, {"type": "text", "text": "part"}]},
        ]
        assert extract_user_prompt(messages) == "second\npart"
        assert extract_user_prompt([{"role": "assistant", "content": "x"}]) is None
        assert extract_user_prompt([]) is None


class TestCleanMessageContent:
    def test_ui_signal_becomes_note(self):
        assert clean_message_content("::ui:canvas_open::{\"id\": 1}::/ui:canvas_open::") == "[Training Created]"
        assert clean_message_content("Done ::ui:phishing_assigned::abc") == "[Phishing Simulation Assigned to User]"

    def test_unknown_ui_signal_is_stripped(self):
        assert clean_message_content("Working on it ::ui:progress::50%") == "Working on it"

    def test_long_url_is_shortened(self):
        text = "see https://example.com/trainings/abcdefghijklmnop done"
        assert clean_message_content(text) == "see [URL: abcdefghijklmnop...] done"

    def test_short_url(self):
        assert clean_message_content("at https://x.io/a") == "at [URL]"

    def test_whitespace_collapsed(self):
        assert clean_message_content("a \n\n  b\t") == "a b"

    def test_empty(self):
        assert clean_message_content(None) == ""
