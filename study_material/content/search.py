from typing import Iterable, List

SEARCHABLE_FIELDS = ("title", "content", "problemStatement", "solution")


def matches(item: dict, query: str) -> bool:
    needle = query.lower()
    for field in SEARCHABLE_FIELDS:
        value = item.get(field)
        if isinstance(value, str) and needle in value.lower():
            return True
    return any(needle in tag.lower() for tag in item.get("tags") or [] if isinstance(tag, str))


def search_contents(items: Iterable[dict], query: str) -> List[dict]:
    """Case-insensitive substring scan; a blank query matches nothing"""
    if not query or not query.strip():
        return []
    return [item for item in items if matches(item, query)]
