"""Tests for the ordered result-location extractors."""

from __future__ import annotations

from ai_gateway.utils.result_extractors import (
    SUBMIT_RESULT_EXTRACTORS,
    TASK_RESULT_EXTRACTORS,
    extract_result_url,
    from_data,
    from_images,
    from_output_images,
    from_results,
)


class TestSingleExtractors:
    def test_output_images_string(self) -> None:
        assert from_output_images({"output_images": ["u1", "u2"]}) == "u1"

    def test_output_images_object(self) -> None:
        assert from_output_images({"output_images": [{"url": "u1"}]}) == "u1"

    def test_results(self) -> None:
        assert from_results({"results": [{"url": "u1"}]}) == "u1"

    def test_images(self) -> None:
        assert from_images({"images": [{"url": "u1"}]}) == "u1"

    def test_data(self) -> None:
        assert from_data({"data": [{"url": "u1"}]}) == "u1"

    def test_empty_or_malformed(self) -> None:
        assert from_output_images({"output_images": []}) is None
        assert from_results({"results": "u1"}) is None
        assert from_images({"images": [{"href": "u1"}]}) is None
        assert from_data({"data": [""]}) is None
        assert from_images({}) is None


class TestExtractionOrder:
    """The first matching shape wins."""

    def test_task_order_prefers_output_images(self) -> None:
        payload = {
            "images": [{"url": "from-images"}],
            "results": [{"url": "from-results"}],
            "output_images": ["from-output"],
        }
        assert extract_result_url(payload) == "from-output"

    def test_task_falls_through_to_images(self) -> None:
        payload = {"output_images": [], "results": [{}], "images": [{"url": "from-images"}]}
        assert extract_result_url(payload, TASK_RESULT_EXTRACTORS) == "from-images"

    def test_submit_order_prefers_data(self) -> None:
        payload = {"images": [{"url": "b"}], "data": [{"url": "a"}]}
        assert extract_result_url(payload, SUBMIT_RESULT_EXTRACTORS) == "a"

    def test_task_order_ignores_data(self) -> None:
        assert extract_result_url({"data": [{"url": "a"}]}) is None

    def test_nothing_found(self) -> None:
        assert extract_result_url({"task_status": "SUCCEED"}) is None
