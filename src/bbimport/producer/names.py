"""Sort name derivation for aliases."""

from __future__ import annotations

from bbimport.producer.reference_data import SORT_NAME_ARTICLES, SORT_NAME_SUFFIXES


def _strip_dots(word: str) -> str:
    return word.replace(".", "")


def sort_name(name: str) -> str:
    """Return the sort name for ``name``.

    Leading articles move to the end (``The Stories`` -> ``Stories, The``),
    otherwise the name is treated as a person's name and reordered to
    ``Last, Others`` keeping suffixes such as ``Jr.`` with the last name.

    Examples:
        >>> sort_name("Martin Luther King Jr.")
        'King Jr., Martin Luther'
        >>> sort_name("Homer")
        'Homer'
    """

    trimmed = name.strip()
    if not trimmed:
        return ""

    words = trimmed.replace(",", "").split(" ")
    if len(words) == 1:
        return trimmed

    first_word = _strip_dots(words[0])
    if first_word.lower() in SORT_NAME_ARTICLES:
        return f"{' '.join(words[1:])}, {first_word}"

    is_suffix = [_strip_dots(word).lower() in SORT_NAME_SUFFIXES for word in words]
    # everything after the last non-suffix word is a suffix
    last_regular = max((index for index, flag in enumerate(is_suffix) if not flag), default=-1)
    suffix_words = words[last_regular + 1:]
    words = words[: last_regular + 1]
    if not words:
        return trimmed

    last_name = words.pop()
    if suffix_words:
        last_name = f"{last_name} {' '.join(suffix_words)}"
    if not words:
        return last_name
    return f"{last_name}, {' '.join(words)}"


__all__ = ["sort_name"]
