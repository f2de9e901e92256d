"""Callback implementations for the Gradio interface."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, AsyncIterator, Callable, Optional

import gradio as gr

from config.settings import AppConfig
from modules.services.errors import CodecError, ValidationError
from modules.services.session_service import GenerationService, SessionController, SessionView
from modules.services.storage_service import StorageService
from modules.utils.image_utils import EncodedImage, decode_to_pil, encode_file

logger = logging.getLogger(__name__)

READY_MESSAGE = "Your generated image will appear here."
WORKING_MESSAGE = "AI is working its magic..."
EMPTY_INSTRUCTION_MESSAGE = "Please enter refinement instructions."


def status_text(view: SessionView) -> str:
    """Markdown shown in the output panel's status line."""
    if view.busy:
        return WORKING_MESSAGE
    if view.error:
        return f"**Generation Failed**\n\n{view.error}"
    if view.image is None:
        return READY_MESSAGE
    return "Done. Refine the image below or download it."


def version_text(view: SessionView) -> str:
    if view.position.total <= 1:
        return ""
    return f"Version {view.position.index} of {view.position.total}"


def prompt_text(view: SessionView) -> str:
    if view.busy or not view.label:
        return ""
    return f'Prompt: "{view.label}"'


def build_callbacks(
    config: AppConfig,
    service: Optional[GenerationService] = None,
    storage: Optional[StorageService] = None,
) -> dict[str, Any]:
    """Return a dictionary of Gradio callback functions."""

    store = storage or StorageService(config.output_dir)

    def _ensure_service() -> GenerationService:
        if service is None:
            raise RuntimeError("Image generation service is not configured.")
        return service

    def _ensure_controller(controller: Optional[SessionController]) -> SessionController:
        if controller is not None:
            return controller
        return SessionController(_ensure_service())

    def _render(controller: SessionController, pending: bool = False, consumed: bool = False) -> tuple:
        view = controller.view()
        if pending:
            view = replace(view, busy=True, error=None)
        image = None
        status = status_text(view)
        if view.image is not None:
            try:
                image = decode_to_pil(view.image)
            except CodecError as exc:
                status = f"**Display Failed**\n\n{exc.message}"

        has_history = view.position.total > 1 and not view.busy
        # Refinement fields are emptied only after they were used up.
        if consumed:
            refine_text_update = gr.update(value="", interactive=not view.busy)
            refine_image_update = gr.update(value=None)
        else:
            refine_text_update = gr.update(interactive=not view.busy)
            refine_image_update = gr.update()
        return (
            controller,
            image,
            status,
            version_text(view),
            prompt_text(view),
            gr.update(visible=has_history, interactive=view.can_move_back),
            gr.update(visible=has_history, interactive=view.can_move_forward),
            gr.update(interactive=view.image is not None and not view.busy),
            gr.update(visible=view.can_refine),
            refine_text_update,
            refine_image_update,
            gr.update(
                interactive=not view.busy,
                value="Generating..." if view.busy else "Generate Image",
            ),
            gr.update(interactive=not view.busy),
        )

    async def _upload(
        controller: Optional[SessionController],
        path: Optional[str],
        setter: Callable[[SessionController, Optional[EncodedImage]], None],
    ) -> tuple[SessionController, str]:
        controller = _ensure_controller(controller)
        if not path:
            setter(controller, None)
            return controller, status_text(controller.view())
        try:
            encoded = await encode_file(path)
        except CodecError as exc:
            logger.warning("Upload failed: %s", exc.message)
            controller.report_error(exc.message)
            return controller, status_text(controller.view())
        setter(controller, encoded)
        return controller, status_text(controller.view())

    async def on_upload_reference(controller: Optional[SessionController], path: Optional[str]):
        return await _upload(controller, path, SessionController.set_reference_image)

    async def on_upload_product(controller: Optional[SessionController], path: Optional[str]):
        return await _upload(controller, path, SessionController.set_product_image)

    async def on_upload_refine_image(controller: Optional[SessionController], path: Optional[str]):
        return await _upload(controller, path, SessionController.set_refine_image)

    async def _run(controller: SessionController, instruction: Optional[str]) -> AsyncIterator[tuple]:
        if not controller.busy:
            try:
                controller.validate(instruction)
            except ValidationError:
                pass
            else:
                # Paint the loading state before the long call.
                yield _render(controller, pending=True)
        ok = await controller.submit(instruction)
        yield _render(controller, consumed=ok and bool(instruction))

    async def on_generate(
        controller: Optional[SessionController],
        title: str,
        price: str,
        old_price: str,
    ) -> AsyncIterator[tuple]:
        controller = _ensure_controller(controller)
        controller.update_details(title, price, old_price)
        async for outputs in _run(controller, None):
            yield outputs

    async def on_refine(controller: Optional[SessionController], instruction: str) -> AsyncIterator[tuple]:
        controller = _ensure_controller(controller)
        if not (instruction or "").strip():
            controller.report_error(EMPTY_INSTRUCTION_MESSAGE)
            yield _render(controller)
            return
        controller.set_instruction(instruction)
        async for outputs in _run(controller, instruction):
            yield outputs

    def on_previous(controller: Optional[SessionController]) -> tuple:
        controller = _ensure_controller(controller)
        controller.move_back()
        return _render(controller)

    def on_next(controller: Optional[SessionController]) -> tuple:
        controller = _ensure_controller(controller)
        controller.move_forward()
        return _render(controller)

    def on_download(controller: Optional[SessionController]) -> Any:
        controller = _ensure_controller(controller)
        view = controller.view()
        if view.image is None:
            return gr.update(value=None, visible=False)
        path = store.save_image(view.image, view.position.index)
        store.cleanup(config.max_downloads)
        return gr.update(value=str(path), visible=True)

    def on_reset(controller: Optional[SessionController]) -> tuple:
        controller = _ensure_controller(controller)
        if not controller.reset():
            # A request is still running; leave the form as the session sees it.
            return _render(controller) + tuple(gr.update() for _ in range(5))
        return _render(controller, consumed=True) + (None, None, "", "", "")

    def on_load(controller: Optional[SessionController]) -> tuple:
        return _render(_ensure_controller(controller))

    return {
        "on_load": on_load,
        "on_upload_reference": on_upload_reference,
        "on_upload_product": on_upload_product,
        "on_upload_refine_image": on_upload_refine_image,
        "on_generate": on_generate,
        "on_refine": on_refine,
        "on_previous": on_previous,
        "on_next": on_next,
        "on_download": on_download,
        "on_reset": on_reset,
    }
