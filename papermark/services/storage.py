"""Storage URLs — turns stored file keys into URLs a viewer can fetch."""

from papermark.config import get_settings


def resolve_file_url(key: str | None) -> str | None:
    """Absolute URLs pass through; storage keys are joined to storage_base_url."""
    if not key:
        return None
    if key.startswith(("https://", "http://")):
        return key
    base = get_settings().storage_base_url.rstrip("/")
    return f"{base}/{key.lstrip('/')}"
