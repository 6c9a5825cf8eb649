import re
from typing import Optional

LANGUAGES = ("fi", "en")
HANDLE_RE = re.compile(r"[a-z0-9_]{5,32}")

_YES = {
    "en": {"yes", "y"},
    "fi": {"kyllä", "kylla", "k", "joo", "yes", "y"},
}
_NO = {
    "en": {"no", "n"},
    "fi": {"ei", "e", "no", "n"},
}
_CANCEL_AVEC = {
    "en": {"none", "no", "cancel", "remove"},
    "fi": {"ei", "peru", "peruuta", "poista"},
}
_SKIP = {"skip", "ohita"}


def normalize_language(text: str) -> Optional[str]:
    lang = (text or "").strip().lower()
    return lang if lang in LANGUAGES else None


def looks_like_real_name(text: str) -> bool:
    parts = (text or "").split()
    if len(parts) < 2:
        return False
    for part in parts:
        if len(part) < 2:
            return False
        if not all(ch.isalpha() or ch in "-'" for ch in part):
            return False
    return True


def normalize_name(text: str) -> str:
    """Capitalize each name part: 'ANNA-mARIA o'neil' -> "Anna-Maria O'neil"."""
    tokens = []
    for token in (text or "").split():
        chars = list(token)
        for i, ch in enumerate(chars):
            if not ch.isalpha():
                continue
            if i == 0 or chars[i - 1] == "-":
                chars[i] = ch.upper()
            else:
                chars[i] = ch.lower()
        tokens.append("".join(chars))
    return " ".join(tokens)


def normalize_handle(text: str) -> Optional[str]:
    handle = (text or "").strip()
    if handle.startswith("@"):
        handle = handle[1:]
    handle = handle.lower()
    if not HANDLE_RE.fullmatch(handle):
        return None
    return handle


def parse_yes_no(lang: str, text: str) -> Optional[bool]:
    value = (text or "").strip().lower()
    lang = lang if lang in _YES else "en"
    if value in _YES[lang]:
        return True
    if value in _NO[lang]:
        return False
    return None


def is_cancel_avec(lang: str, text: str) -> bool:
    value = (text or "").strip().lower()
    return value in _CANCEL_AVEC.get(lang, _CANCEL_AVEC["en"])


def is_skip(text: str) -> bool:
    return (text or "").strip().lower() in _SKIP


def clean_handle(text) -> Optional[str]:
    """Strip one leading '@' and lower-case, without checking the format."""
    if not text or not str(text).strip():
        return None
    handle = str(text).strip()
    if handle.startswith("@"):
        handle = handle[1:]
    return handle.lower() or None
