"""View Payload — decides what content and watermark data a recorded view returns.

Invariants:
    - Paged versions return pages and report file_type "pdf"
    - Unpaged versions return the file only for directly viewable types (or sheets)
    - The visitor's IP is exposed only when the watermark text uses {{ipAddress}}
"""

from papermark.core.domain_types import DIRECT_FILE_TYPES, DocumentType

IP_ADDRESS_PLACEHOLDER = "{{ipAddress}}"


def content_fields(
    *,
    has_pages: bool,
    pages: list[dict] | None,
    version_type: str | None,
    file_url: str | None,
) -> dict:
    if has_pages:
        return {"pages": pages or [], "file": None, "file_type": "pdf"}
    exposes_file = version_type in DIRECT_FILE_TYPES or version_type == DocumentType.SHEET
    return {
        "pages": None,
        "file": file_url if exposes_file else None,
        "file_type": version_type,
    }


def watermark_fields(
    enable_watermark: bool, watermark_config: dict | None, ip_address: str | None,
) -> dict:
    if not enable_watermark or not watermark_config:
        return {"watermark_config": None, "ip_address": None}
    uses_ip = IP_ADDRESS_PLACEHOLDER in str(watermark_config.get("text", ""))
    return {
        "watermark_config": watermark_config,
        "ip_address": ip_address if uses_ip else None,
    }


def custom_field_responses(
    definitions: list[dict] | None, submitted: dict[str, str] | None,
) -> list[dict] | None:
    """Align submitted answers with the link's field definitions; blanks for missing."""
    if not definitions or submitted is None:
        return None
    return [
        {
            "identifier": d["identifier"],
            "label": d.get("label", d["identifier"]),
            "response": submitted.get(d["identifier"], "") or "",
        }
        for d in definitions
    ]
