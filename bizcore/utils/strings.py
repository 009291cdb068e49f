from typing import Iterable, List


def str2bool(v):
  return v.lower() in ("yes", "true", "t", "1")


def split_keywords(value) -> List[str]:
    """Accept either a list of keywords or the legacy comma-separated string form."""
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[str] = value.split(",")
    else:
        items = value
    return [item.strip() for item in items if item and item.strip()]


def truncate(text, length: int):
    if text is None:
        return None
    return text if len(text) <= length else text[:length]
