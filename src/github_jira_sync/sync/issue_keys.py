"""Jira issue key extraction."""

import re

ISSUE_KEY_PATTERN = re.compile(r"\b[A-Z][A-Z0-9]+-\d+\b")


def extract_issue_keys(*texts: str | None) -> list[str]:
    """Issue keys referenced in the given texts, in order of first appearance.

    >>> extract_issue_keys("JRA-1 fix", "see JRA-1 and OPS-22")
    ['JRA-1', 'OPS-22']
    """
    keys: dict[str, None] = {}
    for text in texts:
        if text:
            keys.update(dict.fromkeys(ISSUE_KEY_PATTERN.findall(text)))
    return list(keys)
