"""
PII Masking for the Intent Router.

Replaces emails, phone numbers and person names with stable pseudonymous
tokens before text reaches the routing classifier, and restores them
afterwards. A mapping is request-scoped: it is produced by one mask() call,
consumed by unmask() for the same request, and then dropped.

Name detection is a tunable heuristic, not a grammar. The word lists it uses
live in MaskingConfig so they can be extended from settings.
"""

import hashlib
import logging
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Pattern, Set, Tuple, Union

logger = logging.getLogger(__name__)


class PIICategory(Enum):
    """Kinds of PII the masker detects."""
    NAME = "name"
    EMAIL = "email"
    PHONE = "phone"

    @property
    def prefix(self) -> str:
        """Token prefix used in the replacement text."""
        return _TOKEN_PREFIXES[self]


_TOKEN_PREFIXES = {
    PIICategory.NAME: "USER",
    PIICategory.EMAIL: "EMAIL",
    PIICategory.PHONE: "PHONE",
}


@dataclass(frozen=True)
class PIIToken:
    """One masked value."""
    category: PIICategory
    token: str
    original_value: str


@dataclass
class MaskingResult:
    """Masked text plus the mapping needed to reverse it."""
    masked_text: str
    mapping: Dict[str, PIIToken] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        """True when no PII was found (the text is unchanged)."""
        return not self.mapping

    def count(self, category: PIICategory) -> int:
        return sum(1 for t in self.mapping.values() if t.category == category)


# ── Default word lists ────────────────────────────────────────────

DEFAULT_DENY_TERMS = (
    # English domain / security vocabulary
    "training", "prevention", "attack", "injection", "course", "simulation",
    "awareness", "protection", "security", "phishing", "smishing", "vishing",
    "deepfake", "ransomware", "malware", "password", "policy", "policies",
    "module", "content", "landing", "video", "compliance", "cyber",
    "information", "engineering", "quiz", "template", "campaign",
    # Turkish
    "eğitim", "kurs", "saldırı", "güvenlik", "önleme", "koruma",
    "simülasyon", "politika", "içerik", "modül",
)

DEFAULT_INTRODUCERS = (
    "for", "to", "by", "from", "with", "named", "called",
    # Turkish
    "için", "kullanıcı", "kişi", "ad", "isim",
    # Spanish / Portuguese
    "para", "por", "de",
    # French
    "pour", "par",
    # German
    "für", "von", "an",
)

DEFAULT_ACTION_VERBS = (
    "create", "build", "make", "generate", "assign", "send", "give",
    "upload", "draft", "write", "prepare",
    "oluştur", "yap", "gönder", "ver", "hazırla", "ata",
)

DEFAULT_ARTIFACT_NOUNS = (
    "training", "course", "education", "module", "content", "quiz",
    "phishing email", "phishing simulation", "simulation", "draft email",
    "landing page", "email", "sms", "call", "video",
    "eğitim", "kurs", "içerik", "modül",
)

DEFAULT_LEADING_STOPWORDS = (
    "hi", "hello", "hey", "dear", "thanks", "thank", "please", "my", "our",
    "your", "the", "this", "that", "these", "those", "a", "an", "i", "we",
    "you", "yes", "no", "ok", "okay", "sure", "great", "good", "also",
    "merhaba", "selam", "sayın", "lütfen",
)

DEFAULT_STRUCTURAL_LABELS = (
    "user", "assistant", "system", "role", "content", "message",
)


def _casefold_set(words: Iterable[str]) -> FrozenSet[str]:
    return frozenset(w.strip().casefold() for w in words if w and w.strip())


@dataclass(frozen=True)
class MaskingConfig:
    """
    Tunable knobs for the masker.

    deny_terms match as word prefixes so inflected forms ("Eğitimi",
    "Saldırısı") are covered. The other lists match whole words.
    """
    mask_names: bool = True
    mask_emails: bool = True
    mask_phones: bool = True
    deny_terms: FrozenSet[str] = _casefold_set(DEFAULT_DENY_TERMS)
    introducers: FrozenSet[str] = _casefold_set(DEFAULT_INTRODUCERS)
    action_verbs: FrozenSet[str] = _casefold_set(DEFAULT_ACTION_VERBS)
    artifact_nouns: FrozenSet[str] = _casefold_set(DEFAULT_ARTIFACT_NOUNS)
    leading_stopwords: FrozenSet[str] = _casefold_set(DEFAULT_LEADING_STOPWORDS)
    structural_labels: FrozenSet[str] = _casefold_set(DEFAULT_STRUCTURAL_LABELS)
    # Max characters between a name and an email for them to count as adjacent
    email_window: int = 25
    # Characters of left context inspected for introducers / verbs
    context_window: int = 40

    def with_additions(
        self,
        deny_terms: Iterable[str] = (),
        introducers: Iterable[str] = (),
    ) -> "MaskingConfig":
        """Return a copy with extra deny terms and introducers."""
        return replace(
            self,
            deny_terms=self.deny_terms | _casefold_set(deny_terms),
            introducers=self.introducers | _casefold_set(introducers),
        )

    @classmethod
    def from_settings(cls, settings) -> "MaskingConfig":
        return cls().with_additions(
            deny_terms=settings.pii_extra_deny_terms_list,
            introducers=settings.pii_extra_introducers_list,
        )


# ── Patterns ──────────────────────────────────────────────────────

EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

PHONE_PATTERN = re.compile(
    r"(?<![\w+])"
    r"(?:\+?\d{1,3}[-. ]?)?"
    r"(?:\(\d{2,4}\)[-. ]?|\d{3}[-. ]?)"
    r"\d{3}[-. ]?"
    r"(?:\d{4}|\d{2}[-. ]?\d{2})"
    r"(?!\w)"
)

_UPPER = "A-ZÀ-ÖØ-ÞĞİŞ"
_LOWER = "a-zß-öø-ÿğış"
_NAME_WORD = rf"[{_UPPER}][{_LOWER}]+(?:-[{_UPPER}][{_LOWER}]+)?"

NAME_PATTERN = re.compile(rf"(?<!\w)({_NAME_WORD}(?:[ \t]+{_NAME_WORD})+)(?!\w)")

TOKEN_PATTERN = re.compile(r"\[(USER|EMAIL|PHONE)-([0-9A-F]{8})\]")

_BULLET_PATTERN = re.compile(r"[ \t]*[-*•–—][ \t]*")
_OPEN_PAREN_PATTERN = re.compile(r"\([ \t]*$")
_COLON_PATTERN = re.compile(r"(\w+)?[ \t]*:[ \t]*$")
_WORD_SPLIT = re.compile(r"[ \t]+")


def _hash_id(seed: str) -> str:
    """Fixed-width token id for a normalized value."""
    return hashlib.sha256(seed.encode("utf-8")).hexdigest()[:8].upper()


def _alternation(phrases: Iterable[str]) -> str:
    parts = sorted(
        (r"[ \t]+".join(re.escape(w) for w in p.split()) for p in phrases),
        key=len,
        reverse=True,
    )
    return "|".join(parts)


class _NameVerdict(Enum):
    MASK = "mask"
    DENY = "deny_list"
    AT_START = "line_start"
    AMBIGUOUS = "ambiguous"


@dataclass
class _Span:
    start: int
    end: int
    category: PIICategory
    value: str


class _TokenAllocator:
    """Hands out tokens for one mask() call."""

    def __init__(self, source_text: str):
        self._source_text = source_text
        self._by_value: Dict[Tuple[PIICategory, str], str] = {}
        self.mapping: Dict[str, PIIToken] = {}

    def token_for(self, category: PIICategory, value: str) -> str:
        key = (category, value)
        if key in self._by_value:
            return self._by_value[key]

        normalized = value.strip().casefold()
        salt = 0
        while True:
            seed = normalized if salt == 0 else f"{normalized}#{salt}"
            token = f"[{category.prefix}-{_hash_id(seed)}]"
            # A token must map to exactly one surface value and must not
            # already appear in the input, or unmask() could not be exact.
            if token not in self.mapping and token not in self._source_text:
                break
            salt += 1

        self.mapping[token] = PIIToken(category=category, token=token, original_value=value)
        self._by_value[key] = token
        return token


class PIIMasker:
    """
    Detects and masks PII in free text.

    Detection order is emails, then phones, then names; an earlier
    category's span wins over a later overlapping one. Every occurrence of
    a detected value is masked, not only the occurrence that triggered
    detection.
    """

    def __init__(self, config: Optional[MaskingConfig] = None):
        self.config = config or MaskingConfig()
        c = self.config

        self._peel_words = (
            c.introducers
            | c.action_verbs
            | c.leading_stopwords
            | frozenset(n for n in c.artifact_nouns if " " not in n)
        )
        self._introducer_re = self._compile_suffix(rf"\b(?:{_alternation(c.introducers)})[ \t]+$")
        verbs = _alternation(c.action_verbs)
        nouns = _alternation(c.artifact_nouns)
        self._target_re = self._compile_suffix(
            rf"\b(?:{verbs})(?:[ \t]+(?:a|an|the))?(?:[ \t]+(?:{nouns}))?[ \t]+$"
        )

    @staticmethod
    def _compile_suffix(pattern: str) -> Optional[Pattern]:
        # Empty alternations would match everywhere
        if "(?:)" in pattern:
            return None
        return re.compile(pattern, re.IGNORECASE)

    # ── Public API ────────────────────────────────────────────────

    def mask(self, text: str) -> MaskingResult:
        """
        Mask PII in text.

        Returns:
            MaskingResult whose mapping reverses the masking via unmask().
        """
        if not text:
            return MaskingResult(masked_text=text or "")

        spans: List[_Span] = []
        if self.config.mask_emails:
            self._add_spans(spans, self._regex_values(EMAIL_PATTERN, text), text, PIICategory.EMAIL)
        if self.config.mask_phones:
            self._add_spans(spans, self._regex_values(PHONE_PATTERN, text), text, PIICategory.PHONE)
        if self.config.mask_names:
            emails = [s for s in spans if s.category == PIICategory.EMAIL]
            names = self._confirmed_names(text, spans, emails)
            self._add_spans(spans, names, text, PIICategory.NAME)

        if not spans:
            return MaskingResult(masked_text=text)

        spans.sort(key=lambda s: s.start)
        allocator = _TokenAllocator(text)
        parts: List[str] = []
        cursor = 0
        for span in spans:
            parts.append(text[cursor:span.start])
            parts.append(allocator.token_for(span.category, span.value))
            cursor = span.end
        parts.append(text[cursor:])

        result = MaskingResult(masked_text="".join(parts), mapping=allocator.mapping)
        logger.info(
            f"PII masking applied: {len(result.mapping)} identifiers "
            f"(names={result.count(PIICategory.NAME)}, "
            f"emails={result.count(PIICategory.EMAIL)}, "
            f"phones={result.count(PIICategory.PHONE)})"
        )
        return result

    @staticmethod
    def unmask(text: str, mapping: Mapping[str, Union[PIIToken, str]]) -> str:
        """
        Restore original values for every token in mapping.

        Tokens that are not in mapping are left untouched.
        """
        if not text or not mapping:
            return text

        pattern = re.compile("|".join(re.escape(t) for t in sorted(mapping, key=len, reverse=True)))

        def _restore(match) -> str:
            entry = mapping[match.group(0)]
            return entry.original_value if isinstance(entry, PIIToken) else entry

        return pattern.sub(_restore, text)

    # ── Span collection ───────────────────────────────────────────

    @staticmethod
    def _regex_values(pattern: Pattern, text: str) -> List[str]:
        return [m.group(0) for m in pattern.finditer(text)]

    @staticmethod
    def _add_spans(
        spans: List[_Span], values: Iterable[str], text: str, category: PIICategory
    ) -> None:
        """Add a span for every occurrence of every value that is still free."""
        for value in sorted(set(values), key=len, reverse=True):
            pattern = re.escape(value)
            # Names only match as whole words so "Jane Doe" never splits "Jane Doeson"
            if category == PIICategory.NAME:
                pattern = rf"(?<!\w){pattern}(?!\w)"
            for m in re.finditer(pattern, text):
                start, end = m.start(), m.end()
                if any(start < s.end and s.start < end for s in spans):
                    continue
                spans.append(_Span(start, end, category, value))

    # ── Name heuristics ───────────────────────────────────────────

    def _confirmed_names(self, text: str, taken: List[_Span], emails: List[_Span]) -> Set[str]:
        confirmed: Set[str] = set()
        for m in NAME_PATTERN.finditer(text):
            candidate = self._peel(text, m.start(), m.group(1))
            if candidate is None:
                continue
            start, value = candidate
            end = start + len(value)
            if any(start < s.end and s.start < end for s in taken):
                continue

            verdict = self._judge_name(text, start, end, value, emails)
            if verdict is _NameVerdict.MASK:
                confirmed.add(value)
            else:
                logger.debug(f"Name candidate skipped ({verdict.value})")
        return confirmed

    def _peel(self, text: str, start: int, run: str) -> Optional[Tuple[int, str]]:
        """
        Strip non-name words off both ends of a capitalized run.

        Returns:
            (start offset, candidate) or None when fewer than two words remain.
        """
        words = _WORD_SPLIT.split(run)
        offsets = []
        pos = start
        for w in words:
            pos = text.index(w, pos)
            offsets.append(pos)
            pos += len(w)

        lo, hi = 0, len(words)
        while lo < hi and (words[lo].casefold() in self._peel_words or self._is_denied(words[lo])):
            lo += 1
        while hi > lo and self._is_trailing_noise(words[hi - 1]):
            hi -= 1

        if hi - lo < 2:
            return None
        cand_start = offsets[lo]
        cand_end = offsets[hi - 1] + len(words[hi - 1])
        return cand_start, text[cand_start:cand_end]

    def _is_denied(self, word: str) -> bool:
        folded = word.casefold()
        return any(folded.startswith(term) for term in self.config.deny_terms)

    def _is_trailing_noise(self, word: str) -> bool:
        folded = word.casefold()
        return folded in self.config.artifact_nouns or self._is_denied(word)

    def _judge_name(
        self, text: str, start: int, end: int, value: str, emails: List[_Span]
    ) -> _NameVerdict:
        if any(self._is_denied(w) for w in _WORD_SPLIT.split(value)):
            return _NameVerdict.DENY

        line_prefix = text[:start].rsplit("\n", 1)[-1]
        before = text[max(0, start - self.config.context_window):start]

        if self._is_promoted(text, start, end, before, line_prefix, emails):
            return _NameVerdict.MASK
        if not line_prefix.strip():
            return _NameVerdict.AT_START
        return _NameVerdict.AMBIGUOUS

    def _is_promoted(
        self,
        text: str,
        start: int,
        end: int,
        before: str,
        line_prefix: str,
        emails: List[_Span],
    ) -> bool:
        if self._introducer_re and self._introducer_re.search(before):
            return True
        if self._target_re and self._target_re.search(before):
            return True
        if _BULLET_PATTERN.fullmatch(line_prefix) or _OPEN_PAREN_PATTERN.search(before):
            return True

        colon = _COLON_PATTERN.search(before)
        if colon:
            label = (colon.group(1) or "").casefold()
            if label not in self.config.structural_labels:
                return True

        return self._near_email(text, start, end, emails)

    def _near_email(self, text: str, start: int, end: int, emails: List[_Span]) -> bool:
        window = self.config.email_window
        for span in emails:
            if 0 <= span.start - end <= window:
                gap = text[end:span.start]
            elif 0 <= start - span.end <= window:
                gap = text[span.end:start]
            else:
                continue
            if "\n" not in gap:
                return True
        return False


# ── Module-level helpers ──────────────────────────────────────────

_default_masker = PIIMasker()


def mask(text: str, masker: Optional[PIIMasker] = None) -> MaskingResult:
    """Mask PII with the default (or given) masker."""
    return (masker or _default_masker).mask(text)


def unmask(text: str, mapping: Mapping[str, Union[PIIToken, str]]) -> str:
    """Reverse mask() for the given mapping."""
    return PIIMasker.unmask(text, mapping)


def extract_masked_tokens(text: str) -> List[str]:
    """List the PII tokens that appear in text, in order of appearance."""
    return [m.group(0) for m in TOKEN_PATTERN.finditer(text or "")]


def contains_pii(text: str, masker: Optional[PIIMasker] = None) -> bool:
    """Quick check used by tests and guards."""
    return not mask(text, masker).is_noop
