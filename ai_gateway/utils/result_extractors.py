"""Ordered result-location extractors for upstream responses.

The upstream is inconsistent about where it puts generated images, so
each known shape gets its own small extractor and the shapes are tried
in a fixed order.  Adding support for a new shape means adding one
function and one entry to the relevant tuple.

Known shapes:
    ``{"output_images": ["<url>", ...]}``
    ``{"results": [{"url": "<url>"}, ...]}``
    ``{"images": [{"url": "<url>"}, ...]}``
    ``{"data": [{"url": "<url>"}, ...]}``  (synchronous submit only)
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

Extractor = Callable[[Mapping[str, Any]], str | None]


def _first_item(payload: Mapping[str, Any], key: str) -> object:
    items = payload.get(key)
    if isinstance(items, list) and items:
        return items[0]
    return None


def _url_of(item: object) -> str | None:
    if isinstance(item, str) and item:
        return item
    if isinstance(item, Mapping):
        url = item.get("url")
        if isinstance(url, str) and url:
            return url
    return None


def from_output_images(payload: Mapping[str, Any]) -> str | None:
    """``output_images[0]``: a bare URL string (or an object with ``url``)."""
    return _url_of(_first_item(payload, "output_images"))


def from_results(payload: Mapping[str, Any]) -> str | None:
    """``results[0].url``."""
    return _url_of(_first_item(payload, "results"))


def from_images(payload: Mapping[str, Any]) -> str | None:
    """``images[0].url``."""
    return _url_of(_first_item(payload, "images"))


def from_data(payload: Mapping[str, Any]) -> str | None:
    """``data[0].url``: the OpenAI-style synchronous response."""
    return _url_of(_first_item(payload, "data"))


TASK_RESULT_EXTRACTORS: tuple[Extractor, ...] = (
    from_output_images,
    from_results,
    from_images,
)
"""Order in which a SUCCEEDED poll response is searched."""

SUBMIT_RESULT_EXTRACTORS: tuple[Extractor, ...] = (
    from_data,
    from_output_images,
    from_images,
)
"""Order in which a synchronous submit response is searched."""


def extract_result_url(
    payload: Mapping[str, Any],
    extractors: Sequence[Extractor] = TASK_RESULT_EXTRACTORS,
) -> str | None:
    """Return the first result URL any of *extractors* finds, else ``None``."""
    for extractor in extractors:
        url = extractor(payload)
        if url:
            return url
    return None
