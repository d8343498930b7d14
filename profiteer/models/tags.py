"""
Tag Normalization

Rules, applied in this order:
1. Trim leading and trailing whitespace
2. Lowercase
3. Drop blank tags
4. Drop the reserved "untagged" placeholder
5. Drop duplicates, keeping the first occurrence

"Food", " food " and "FOOD" are the same tag.
"""

RESERVED_UNTAGGED = "untagged"


def normalize_tag(tag: str) -> str:
    """Trim and lowercase a single tag."""
    return tag.strip().lower()


def normalize_tags(tags: list[str]) -> list[str]:
    """Normalize a list of tags, preserving first-seen order."""
    seen: set[str] = set()
    result = []
    for tag in tags:
        normalized = normalize_tag(tag)
        if not normalized or normalized == RESERVED_UNTAGGED:
            continue
        if normalized in seen:
            continue
        seen.add(normalized)
        result.append(normalized)
    return result


def parse_tag_input(raw: str) -> list[str]:
    """
    Parse comma-separated user input into normalized tags.

    parse_tag_input(" Food , travel , Shopping, shopping ")
    -> ["food", "travel", "shopping"]
    """
    return normalize_tags(raw.split(","))
