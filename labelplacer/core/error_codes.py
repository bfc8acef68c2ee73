"""
Structured failure codes for label placement.
Tasks carry the user-facing message in failure_reason; the key is kept for reports.
"""

# Known failure keys
NO_CANDIDATES_IN_WINDOW = "no_candidates_in_window"
ALL_CANDIDATES_COLLIDE = "all_candidates_collide"
RUN_FAILED = "run_failed"

# User-facing messages (short, actionable)
USER_MESSAGES: dict[str, str] = {
    NO_CANDIDATES_IN_WINDOW: "No valid candidate position inside the search area. Try a larger search range factor.",
    ALL_CANDIDATES_COLLIDE: "All {count} candidate positions collide with existing obstacles.",
    RUN_FAILED: "Run failed. Check the drawing and inputs.",
}


def user_message(error_key: str | None, fallback: str = "Something went wrong.", **fmt: object) -> str:
    """Return a user-facing message for the given error key, formatted with fmt."""
    if not error_key:
        return fallback
    template = USER_MESSAGES.get(error_key)
    if template is None:
        return fallback
    return template.format(**fmt) if fmt else template
