"""
Prompt templates sent alongside the base image.
"""
from __future__ import annotations

from .types import AspectRatio, StyleOptions

_ASPECT_RATIO_PROMPTS: dict[str, str] = {
    "portrait": (
        "The final image must have a 1:1 aspect ratio (e.g., 1080x1080 pixels), "
        "suitable for an Instagram post."
    ),
    "story": (
        "The final image must have a 9:16 aspect ratio (e.g., 1080x1920 pixels), "
        "suitable for an Instagram Story."
    ),
    "video": (
        "The final image must have a 16:9 aspect ratio (e.g., 1920x1080 pixels), "
        "suitable for a video thumbnail or YouTube."
    ),
    "original": "The final image must have the same aspect ratio as the original image provided.",
}

BACKGROUND_REMOVAL_PROMPT = """\
You are an expert AI image editor.
Your task is to perfectly remove the background from the provided image.

**CRITICAL CONSTRAINTS**:
1.  **Transparent Background**: The output image MUST have a transparent background.
2.  **Preserve Subject**: The main subject of the image must be perfectly preserved with clean, crisp edges. Do not alter the subject in any way.
3.  **Output Format**: The final output must be a PNG file with transparency.
"""


def aspect_ratio_prompt(aspect_ratio: AspectRatio) -> str:
    return _ASPECT_RATIO_PROMPTS.get(aspect_ratio, _ASPECT_RATIO_PROMPTS["original"])


def style_guidelines(options: StyleOptions) -> list[str]:
    guidelines: list[str] = []
    if options.brand_color:
        guidelines.append(
            f"- Subtly incorporate the brand color {options.brand_color} into the theme where it "
            "makes sense (e.g., background, lighting), without overwriting important elements."
        )
    if options.use_texture:
        guidelines.append(
            "- Apply a subtle, professional texture overlay (like film grain or fine canvas) "
            "to the entire image for a premium feel."
        )
    return guidelines


def build_edit_prompt(instruction: str, options: StyleOptions) -> str:
    """Wrap a user instruction in the brand-preserving editor prompt."""
    lines = [
        "You are an expert AI image editor for professional marketing and ad images.",
        "Your task is to apply a specific edit to a base image while strictly preserving key brand elements.",
        "",
        "**CRITICAL CONSTRAINTS**:",
        "1.  **Preserve Text and Logos**: Do NOT change, alter, remove, or add any text, logos, or coupon "
        "codes from the original image. They must remain perfectly intact.",
        "2.  **Maintain Layout**: The layout proportions and the relative positions of all elements "
        "(text, logos, main subjects) must be maintained.",
        "3.  **Adhere to Edit**: Apply ONLY the user-specified edit. Do not make any other creative changes.",
        "",
        f'**User Edit Instruction**: "{instruction}"',
    ]

    guidelines = style_guidelines(options)
    if guidelines:
        lines.extend(["", "**Style Guidelines**:", *guidelines])

    lines.extend(["", "**Output Format**:", f"- {aspect_ratio_prompt(options.aspect_ratio)}"])
    return "\n".join(lines) + "\n"


def derived_label(instruction: str) -> str:
    return f'Background removed for: "{instruction}"'
