"""Gradio layout composition for the photo stylist."""

from __future__ import annotations

from typing import Any, Optional

import gradio as gr

from config.settings import AppConfig
from modules.pipelines.gemini_service import GeminiImageService
from modules.services.session_service import GenerationService
from modules.services.storage_service import StorageService
from modules.ui.callbacks import READY_MESSAGE, build_callbacks

UPLOAD_HINT = "PNG, JPG, WEBP up to 10MB"


def build_app(config: AppConfig, service: Optional[GenerationService] = None) -> Any:
    """Compose and return the Gradio application."""
    callbacks_map = build_callbacks(
        config,
        service=service or GeminiImageService(config),
        storage=StorageService(config.output_dir),
    )

    with gr.Blocks(title="AI Photo Stylist") as demo:
        gr.Markdown(
            "# AI Photo Stylist\n"
            "Generate stunning product photos by blending your product with the style of a reference image."
        )
        session_state = gr.State(None)

        with gr.Row():
            # Inputs
            with gr.Column():
                gr.Markdown("### 1. Upload Your Assets")
                with gr.Row():
                    reference_upload = gr.Image(
                        label="Reference Image (for style)",
                        type="filepath",
                        sources=["upload"],
                        height=220,
                    )
                    product_upload = gr.Image(
                        label="Product Image (to feature)",
                        type="filepath",
                        sources=["upload"],
                        height=220,
                    )
                gr.Markdown(UPLOAD_HINT)

                gr.Markdown("### 2. Enter Product Details")
                with gr.Row():
                    title_box = gr.Textbox(label="Product Title", placeholder="e.g., Classic Leather Watch")
                    price_box = gr.Textbox(label="Price", placeholder="e.g., $199.99")
                    old_price_box = gr.Textbox(label="Old Price (Optional)", placeholder="e.g., $249.99")

                with gr.Row():
                    generate_btn = gr.Button("Generate Image", variant="primary")
                    reset_btn = gr.Button("Start Over", variant="secondary")

            # Output
            with gr.Column():
                gr.Markdown("### 3. Your Generated Image")
                output_image = gr.Image(label="Generated product", type="pil", interactive=False)
                status = gr.Markdown(READY_MESSAGE)
                prompt_caption = gr.Markdown("")
                with gr.Row():
                    prev_btn = gr.Button("Previous", size="sm", visible=False)
                    version_label = gr.Markdown("")
                    next_btn = gr.Button("Next", size="sm", visible=False)
                download_btn = gr.Button("Download", interactive=False)
                download_file = gr.File(label="Download", visible=False, interactive=False)

                with gr.Group(visible=False) as refine_panel:
                    gr.Markdown("### 4. Refine Your Image")
                    refine_upload = gr.Image(
                        label="Add Image to Prompt (Optional)",
                        type="filepath",
                        sources=["upload"],
                        height=140,
                    )
                    refine_text = gr.Textbox(
                        label="Refinement Instructions",
                        lines=2,
                        placeholder="e.g., 'make the background blue', 'add this logo to the top right'",
                    )
                    refine_btn = gr.Button("Refine", variant="secondary")

        view_outputs = [
            session_state,
            output_image,
            status,
            version_label,
            prompt_caption,
            prev_btn,
            next_btn,
            download_btn,
            refine_panel,
            refine_text,
            refine_upload,
            generate_btn,
            reset_btn,
        ]

        for upload, handler in (
            (reference_upload, callbacks_map["on_upload_reference"]),
            (product_upload, callbacks_map["on_upload_product"]),
            (refine_upload, callbacks_map["on_upload_refine_image"]),
        ):
            upload.upload(fn=handler, inputs=[session_state, upload], outputs=[session_state, status])
            upload.clear(fn=handler, inputs=[session_state, upload], outputs=[session_state, status])

        # Each browser session guards its own single flight, so no global limit.
        generate_btn.click(
            fn=callbacks_map["on_generate"],
            inputs=[session_state, title_box, price_box, old_price_box],
            outputs=view_outputs,
            concurrency_limit=None,
        )
        refine_btn.click(
            fn=callbacks_map["on_refine"],
            inputs=[session_state, refine_text],
            outputs=view_outputs,
            concurrency_limit=None,
        )
        prev_btn.click(fn=callbacks_map["on_previous"], inputs=[session_state], outputs=view_outputs)
        next_btn.click(fn=callbacks_map["on_next"], inputs=[session_state], outputs=view_outputs)
        download_btn.click(fn=callbacks_map["on_download"], inputs=[session_state], outputs=[download_file])
        reset_btn.click(
            fn=callbacks_map["on_reset"],
            inputs=[session_state],
            outputs=view_outputs + [reference_upload, product_upload, title_box, price_box, old_price_box],
        )
        demo.load(fn=callbacks_map["on_load"], inputs=[session_state], outputs=view_outputs)

    return demo
