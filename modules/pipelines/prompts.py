"""Prompt text sent to the image model."""

from __future__ import annotations

from typing import Optional


def build_composite_prompt(title: str, price: str, old_price: Optional[str] = None) -> str:
    """Instruction for restaging the product in the reference image's style."""
    lines = [
        "You are a professional product photographer and graphic designer.",
        "The first image is a style reference. The second image shows the product.",
        "Create a new advertising image that features the product from the second image,"
        " matching the composition, lighting, color palette, background and typography"
        " of the reference image.",
        "Keep the product's shape, colors, materials and any logos exactly as they appear.",
        "Do not copy any product that appears in the reference image.",
        f'Render the product title as legible text: "{title.strip()}".',
        f'Render the price prominently: "{price.strip()}".',
    ]
    if old_price and old_price.strip():
        lines.append(
            f'Show the previous price "{old_price.strip()}" near the price, smaller and struck through.'
        )
    lines.append("Return only the finished image.")
    return "\n".join(lines)


def build_refine_prompt(instruction: str, has_auxiliary_image: bool = False) -> str:
    """Instruction for editing an existing generated image."""
    lines = [
        "Edit the first image according to the instruction below.",
        "Change only what the instruction asks for and keep everything else identical,"
        " including the product, text and layout.",
    ]
    if has_auxiliary_image:
        lines.append(
            "The second image is supplied by the user; use it as the instruction describes,"
            " for example as a logo, texture or object to place."
        )
    lines.append(f"Instruction: {instruction.strip()}")
    lines.append("Return only the edited image.")
    return "\n".join(lines)
