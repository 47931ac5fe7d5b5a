"""Classify runrep stderr lines as failures.

runrep has no structured error channel, so any stderr line containing one of
these keywords (case-insensitive) counts as a failure. Exit status is ignored.
"""

ERROR_KEYWORDS = ("error", "failed", "exception", "error running", "failure")


def classify(line: str | None) -> str | None:
    """Return the first keyword found in `line`, or None."""
    if line is None or not line.strip():
        return None
    lowered = line.lower()
    for keyword in ERROR_KEYWORDS:
        if keyword in lowered:
            return keyword
    return None


def is_error_line(line: str | None) -> bool:
    return classify(line) is not None
