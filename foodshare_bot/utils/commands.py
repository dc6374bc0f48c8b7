import shlex


def parse_changes(user_input: str) -> dict[str, str]:
    """Parse ``key=value`` pairs, e.g. ``quantity=12 location_text='Gate 2'``.

    Values stay strings; the lifecycle edit converts and validates them.
    """
    try:
        parts = shlex.split(user_input)
    except ValueError as e:
        # unbalanced quotes
        raise ValueError(f"Could not read the changes: {e}") from e
    if not parts:
        raise ValueError("No changes given. Use key=value, e.g. quantity=12")

    changes: dict[str, str] = {}
    for part in parts:
        if "=" not in part:
            raise ValueError(f"Bad argument: {part}. Use key=value.")
        key, value = part.split("=", 1)
        if not key or not value:
            raise ValueError(f"Bad argument: {part}. Use key=value.")
        changes[key] = value
    return changes
