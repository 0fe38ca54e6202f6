"""Pure helpers for user-edited text regions.

Regions live in client state; the server only receives them to compose
final text or to erase them from the image.
"""

from dataclasses import replace

from textextract.ocr.models import TextRegion


def reading_order(regions: list[TextRegion]) -> list[TextRegion]:
    """Sort regions top-to-bottom, then left-to-right.

    Regions whose vertical centers fall within half a line height of each
    other are treated as the same row.
    """
    ordered = sorted(regions, key=lambda r: (r.y, r.x))
    rows: list[list[TextRegion]] = []
    for region in ordered:
        center = region.y + region.height / 2
        if rows:
            anchor = rows[-1][0]
            anchor_center = anchor.y + anchor.height / 2
            if abs(center - anchor_center) <= max(anchor.height, 1) / 2:
                rows[-1].append(region)
                continue
        rows.append([region])
    return [region for row in rows for region in sorted(row, key=lambda r: r.x)]


def compose_text(regions: list[TextRegion]) -> str:
    """Join visible, non-deleted regions into the final text."""
    kept = [r for r in regions if r.is_visible and not r.is_deleted]
    return "\n".join(r.text for r in reading_order(kept) if r.text.strip())


def edit_region(region: TextRegion, text: str) -> TextRegion:
    return replace(region, text=text, is_edited=text != region.original_text)


def toggle_visibility(region: TextRegion) -> TextRegion:
    return replace(region, is_visible=not region.is_visible)


def delete_region(region: TextRegion) -> TextRegion:
    return replace(region, is_deleted=True, is_visible=False)
