from __future__ import annotations

import pytest

from image_multi_editor.imaging import from_data_uri, sniff_mime_type, to_data_uri
from image_multi_editor.errors import BatchValidationError
from image_multi_editor.prompts import build_edit_prompt, derived_label
from image_multi_editor.types import BaseImage, StyleOptions
from conftest import png_bytes


def test_edit_prompt_without_style_guidelines():
    prompt = build_edit_prompt("make it snow", StyleOptions(brand_color=""))

    assert '**User Edit Instruction**: "make it snow"' in prompt
    assert "Style Guidelines" not in prompt
    assert "same aspect ratio as the original image" in prompt


def test_edit_prompt_with_style_guidelines():
    prompt = build_edit_prompt(
        "make it snow", StyleOptions(brand_color="#6366F1", use_texture=True, aspect_ratio="portrait")
    )

    assert "brand color #6366F1" in prompt
    assert "film grain" in prompt
    assert "1:1 aspect ratio" in prompt


def test_style_rejects_malformed_color():
    with pytest.raises(ValueError):
        StyleOptions(brand_color="indigo")


def test_derived_label():
    assert derived_label("swap burger") == 'Background removed for: "swap burger"'


def test_data_uri_round_trip_and_rejects_plain_text():
    uri = to_data_uri(b"\x89PNG", "image/png")
    assert uri.startswith("data:image/png;base64,")
    assert from_data_uri(uri) == (b"\x89PNG", "image/png")
    with pytest.raises(ValueError):
        from_data_uri("https://example.com/image.png")


def test_base_image_sniffs_mime_type():
    image = BaseImage.from_bytes(png_bytes())
    assert image.mime_type == "image/png"
    assert image.display_ref.startswith("data:image/png;base64,")


def test_unreadable_image_rejected():
    with pytest.raises(BatchValidationError):
        sniff_mime_type(b"not an image")
    with pytest.raises(BatchValidationError):
        sniff_mime_type(b"")
