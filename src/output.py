"""Local persistence of review output."""

from __future__ import annotations

from pathlib import Path


def review_output_filename(pull_request_id: int) -> str:
    """Return the file name used for a saved review."""
    return f"pull_request_{pull_request_id}_review.md"


def write_review_output(pull_request_id: int, text: str, *, output_dir: Path) -> Path:
    """Write review text verbatim and return the written path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / review_output_filename(pull_request_id)
    output_path.write_text(text, encoding="utf-8")
    return output_path
