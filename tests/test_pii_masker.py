"""Tests for PII masking and unmasking."""

import hashlib
import re

import pytest

from privacy import (
    MaskingConfig,
    PIICategory,
    PIIMasker,
    contains_pii,
    extract_masked_tokens,
    mask,
    unmask,
)

TOKEN_RE = re.compile(r"^\[(USER|EMAIL|PHONE)-[0-9A-F]{8}\]$")


@pytest.fixture
def masker():
    return PIIMasker()


# ── Round trip ────────────────────────────────────────────────

class TestRoundTrip:
    @pytest.mark.parametrize("text", [
        "",
        "No personal data in here.",
        "Send the report to Jane Doe at jane@x.com or +1 555-123-4567",
        "Create training for Jane Doe\nJane Doe asked twice. jane@x.com, Jane@X.com",
        "- Ali Veli\n- Ayşe Yılmaz\nThanks!",
        "Assign to John Smith (john.smith@corp.io) and call 555.123.4567",
    ])
    def test_unmask_restores_original(self, masker, text):
        result = masker.mask(text)
        assert masker.unmask(result.masked_text, result.mapping) == text

    def test_no_pii_is_noop(self, masker):
        result = masker.mask("Create a phishing simulation about invoices")
        assert result.is_noop
        assert result.masked_text == "Create a phishing simulation about invoices"

    def test_literal_token_in_input_survives(self, masker):
        existing = "[USER-" + hashlib.sha256(b"jane doe").hexdigest()[:8].upper() + "]"
        text = f"Old note {existing} - now create training for Jane Doe"

        result = masker.mask(text)

        assert existing not in result.mapping
        assert masker.unmask(result.masked_text, result.mapping) == text

    def test_case_variants_get_distinct_tokens(self, masker):
        text = "Jane@X.com and jane@x.com"
        result = masker.mask(text)
        assert len(result.mapping) == 2
        assert masker.unmask(result.masked_text, result.mapping) == text


# ── Token format ──────────────────────────────────────────────

class TestTokens:
    def test_email_token_format(self, masker):
        result = masker.mask("Contact jane@x.com today")
        (token,) = result.mapping
        assert TOKEN_RE.match(token)
        assert token.startswith("[EMAIL-")
        assert result.mapping[token].category == PIICategory.EMAIL
        assert result.mapping[token].original_value == "jane@x.com"

    def test_token_id_is_hash_of_normalized_value(self, masker):
        result = masker.mask("Contact jane@x.com today")
        expected = "[EMAIL-" + hashlib.sha256(b"jane@x.com").hexdigest()[:8].upper() + "]"
        assert expected in result.mapping

    def test_repeated_value_shares_token(self, masker):
        result = masker.mask("Email jane@x.com and cc jane@x.com")
        assert len(result.mapping) == 1
        (token,) = result.mapping
        assert result.masked_text.count(token) == 2

    def test_phone_detected(self, masker):
        result = masker.mask("Call me at 555-123-4567 please")
        (token,) = result.mapping
        assert token.startswith("[PHONE-")
        assert "555-123-4567" not in result.masked_text

    def test_international_phone(self, masker):
        result = masker.mask("Reach him on +1 555 123 4567")
        assert result.count(PIICategory.PHONE) == 1
        assert "4567" not in result.masked_text

    def test_short_numbers_are_not_phones(self, masker):
        assert masker.mask("Order 12345 shipped in 2024").is_noop


# ── Name heuristics ───────────────────────────────────────────

class TestNameDetection:
    def test_deny_list_suppresses_match(self, masker):
        result = masker.mask("Create Phishing Training")
        assert result.masked_text == "Create Phishing Training"
        assert result.mapping == {}

    def test_introducer_promotes_name(self, masker):
        result = masker.mask("Create a training for Jane Doe")
        assert "Jane Doe" not in result.masked_text
        assert result.count(PIICategory.NAME) == 1
        assert next(iter(result.mapping)).startswith("[USER-")

    def test_action_verb_target_promotes_name(self, masker):
        result = masker.mask("please assign Jane Doe the new module")
        assert "Jane Doe" not in result.masked_text

    def test_line_start_is_not_masked(self, masker):
        assert masker.mask("Jane Doe needs a refresher").is_noop

    def test_ambiguous_candidate_stays_unmasked(self, masker):
        assert masker.mask("I met Jane Doe yesterday").is_noop

    def test_bullet_promotes_name(self, masker):
        result = masker.mask("Participants:\n- Jane Doe\n- John Smith")
        assert result.count(PIICategory.NAME) == 2

    def test_colon_label_promotes_name(self, masker):
        result = masker.mask("Assignee: Jane Doe")
        assert result.masked_text.startswith("Assignee: [USER-")

    def test_structural_label_does_not_promote(self, masker):
        assert masker.mask("User: Jane Doe").is_noop

    def test_greeting_is_peeled_and_not_promoted(self, masker):
        assert masker.mask("Assistant: Hi Jane Doe").is_noop

    def test_name_next_to_email_is_masked(self, masker):
        result = masker.mask("Jane Doe jane@x.com")
        assert result.count(PIICategory.NAME) == 1
        assert result.count(PIICategory.EMAIL) == 1

    def test_promoted_value_is_masked_everywhere(self, masker):
        text = "Jane Doe asked for it.\nPlease assign Jane Doe the course."
        result = masker.mask(text)
        assert "Jane Doe" not in result.masked_text
        assert len(result.mapping) == 1

    def test_promoted_value_does_not_split_longer_word(self, masker):
        text = "Create training for Jane Doe. Also Jane Doeson signed up."
        result = masker.mask(text)
        assert "Jane Doe." not in result.masked_text
        assert "Jane Doeson" in result.masked_text
        assert "]son" not in result.masked_text
        assert result.count(PIICategory.NAME) == 1
        assert unmask(result.masked_text, result.mapping) == text

    def test_turkish_name_after_colon(self, masker):
        result = masker.mask("Eğitim oluştur: Ayşe Yılmaz")
        assert "Ayşe Yılmaz" not in result.masked_text
        assert result.count(PIICategory.NAME) == 1


# ── Configuration ─────────────────────────────────────────────

class TestMaskingConfig:
    def test_category_switch(self):
        masker = PIIMasker(MaskingConfig(mask_emails=False))
        assert masker.mask("Contact jane@x.com").is_noop

    def test_extra_deny_terms(self):
        text = "Send training to Acme Corp"
        assert not PIIMasker().mask(text).is_noop

        masker = PIIMasker(MaskingConfig().with_additions(deny_terms=["acme"]))
        assert masker.mask(text).is_noop

    def test_extra_introducers(self):
        text = "Escalate via Jane Doe"
        assert PIIMasker().mask(text).is_noop

        masker = PIIMasker(MaskingConfig().with_additions(introducers=["via"]))
        assert masker.mask(text).count(PIICategory.NAME) == 1


# ── Helpers ───────────────────────────────────────────────────

class TestHelpers:
    def test_unmask_leaves_unknown_tokens(self):
        assert unmask("Hi [USER-DEADBEEF]", {}) == "Hi [USER-DEADBEEF]"

    def test_unmask_accepts_plain_strings(self):
        assert unmask("Hi [USER-DEADBEEF]", {"[USER-DEADBEEF]": "Jane"}) == "Hi Jane"

    def test_extract_masked_tokens(self):
        result = mask("Email jane@x.com and call 555-123-4567")
        tokens = extract_masked_tokens(result.masked_text)
        assert len(tokens) == 2
        assert all(TOKEN_RE.match(t) for t in tokens)

    def test_contains_pii(self):
        assert contains_pii("mail me at jane@x.com")
        assert not contains_pii("create a ransomware course")
