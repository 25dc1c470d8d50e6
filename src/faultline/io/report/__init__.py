"""Failure report renderers: JSON, HTML fragment, plain-text log."""

from .renderer import DELIMITER, as_sequence, to_entry_text, to_html, to_json, to_log_text

__all__ = ["DELIMITER", "as_sequence", "to_entry_text", "to_html", "to_json", "to_log_text"]
