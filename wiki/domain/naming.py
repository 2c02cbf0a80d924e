import re

_WHITESPACE = re.compile(r"\s+")
_TAG = re.compile(r"<[^>]*>")
_ANGLE = re.compile(r"[<>]")

# Splits "GettingStarted2FAQ" style input into words before joining with hyphens.
_KEBAB_WORD = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]+[0-9]*|\b)|[A-Z]?[a-z]+[0-9]*|[A-Z]|[0-9]+")


def normalize_page_name(name: str) -> str:
    """Canonical stored/lookup form of a page name.

    Rules:
    - surrounding whitespace trimmed
    - every run of internal whitespace becomes a single hyphen
    - lower-cased
    - markup stripped (tags and any stray angle brackets)

    The transform is idempotent.
    """

    value = _WHITESPACE.sub("-", name.strip()).lower()
    value = _TAG.sub("", value)
    return _ANGLE.sub("", value)


def same_page_name(a: str, b: str) -> bool:
    return a.casefold() == b.casefold()


def to_kebab_case(text: str) -> str:
    return "-".join(_KEBAB_WORD.findall(text)).lower()
