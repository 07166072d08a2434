"""Reduces HTML markup in record values to plain text."""

from __future__ import annotations

from typing import Any

from bs4 import BeautifulSoup


def looks_like_html(text: str) -> bool:
    return "<" in text and ">" in text


def html_to_text(text: str) -> str:
    """Strip tags and collapse whitespace."""
    soup = BeautifulSoup(text, "html.parser")
    return " ".join(soup.get_text(separator=" ").split())


def clean_html_value(value: Any) -> Any:
    """Recursively replace HTML-bearing strings with their text content."""
    if isinstance(value, str):
        return html_to_text(value) if looks_like_html(value) else value
    if isinstance(value, list):
        return [clean_html_value(item) for item in value]
    if isinstance(value, dict):
        return {key: clean_html_value(item) for key, item in value.items()}
    return value
