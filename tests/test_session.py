"""SessionController tests."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from modules.services.errors import GenerationError, ValidationError
from modules.services.history_service import INITIAL_GENERATION_LABEL, HistoryEntry, HistoryPosition
from modules.services.session_service import (
    MISSING_BASE_IMAGE_MESSAGE,
    MISSING_INPUTS_MESSAGE,
    UNKNOWN_ERROR_MESSAGE,
    RequestMode,
    SessionController,
)
from modules.utils.image_utils import EncodedImage


def image(name: str) -> EncodedImage:
    return EncodedImage(payload=name.encode(), media_type="image/png")


class DummyGenerationService:
    """Stub service that records calls and returns canned images."""

    def __init__(self) -> None:
        self.composite_calls: list[tuple] = []
        self.refine_calls: list[tuple] = []
        self.results: list[EncodedImage] = []
        self.error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def _finish(self) -> EncodedImage:
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return image(f"result-{len(self.composite_calls) + len(self.refine_calls)}")

    async def generate_composite(self, reference_image, product_image, title, price, old_price=None):
        self.composite_calls.append((reference_image, product_image, title, price, old_price))
        return await self._finish()

    async def refine(self, base_image, instruction, auxiliary_image=None):
        self.refine_calls.append((base_image, instruction, auxiliary_image))
        return await self._finish()


def ready_controller(service: DummyGenerationService) -> SessionController:
    controller = SessionController(service)
    controller.set_reference_image(image("reference"))
    controller.set_product_image(image("product"))
    controller.update_details("Lamp", "$10")
    return controller


@pytest.mark.asyncio
async def test_initial_generation_scenario():
    service = DummyGenerationService()
    service.results.append(image("X"))
    controller = ready_controller(service)

    assert await controller.submit() is True

    assert controller.history.position() == HistoryPosition(1, 1)
    entry = controller.history.current()
    assert entry.label == INITIAL_GENERATION_LABEL
    assert entry.image == image("X")
    assert service.composite_calls == [(image("reference"), image("product"), "Lamp", "$10", None)]
    assert controller.busy is False
    assert controller.error is None


@pytest.mark.asyncio
async def test_refine_scenario_and_navigation():
    service = DummyGenerationService()
    service.results.extend([image("X"), image("Y")])
    controller = ready_controller(service)
    await controller.submit()

    assert await controller.submit("make it blue") is True

    assert controller.history.position() == HistoryPosition(2, 2)
    assert controller.history.current().label == "make it blue"
    assert service.refine_calls == [(image("X"), "make it blue", None)]
    assert controller.move_back() is True
    assert controller.history.current().label == INITIAL_GENERATION_LABEL


@pytest.mark.asyncio
async def test_missing_reference_image_rejected_without_call():
    service = DummyGenerationService()
    controller = SessionController(service)
    controller.set_product_image(image("product"))
    controller.update_details("Lamp", "$10")

    assert await controller.submit() is False

    assert controller.error == "Please provide a reference image."
    assert controller.history.position() == HistoryPosition(0, 0)
    assert service.composite_calls == []
    assert controller.busy is False


@pytest.mark.asyncio
async def test_multiple_missing_fields_use_combined_message():
    controller = SessionController(DummyGenerationService())
    controller.update_details("", "  ")

    assert await controller.submit() is False
    assert controller.error == MISSING_INPUTS_MESSAGE


@pytest.mark.parametrize(
    ("title", "price", "expected"),
    [
        ("", "$10", "Please provide a product title."),
        ("Lamp", "", "Please provide a price."),
    ],
)
def test_single_missing_detail_is_named(title, price, expected):
    controller = ready_controller(DummyGenerationService())
    controller.update_details(title, price)

    with pytest.raises(ValidationError) as excinfo:
        controller.validate()

    assert excinfo.value.message == expected


@pytest.mark.asyncio
async def test_refine_without_history_rejected():
    service = DummyGenerationService()
    controller = ready_controller(service)

    assert await controller.submit("make it blue") is False

    assert controller.error == MISSING_BASE_IMAGE_MESSAGE
    assert service.refine_calls == []
    assert service.composite_calls == []


@pytest.mark.asyncio
async def test_second_submit_while_in_flight_is_ignored():
    service = DummyGenerationService()
    service.gate = asyncio.Event()
    controller = ready_controller(service)

    first = asyncio.create_task(controller.submit())
    await asyncio.sleep(0)
    assert controller.busy is True

    assert await controller.submit() is False
    assert await controller.submit("make it blue") is False
    assert len(service.composite_calls) == 1
    assert service.refine_calls == []
    assert len(controller.history) == 0

    service.gate.set()
    assert await first is True
    assert len(controller.history) == 1
    assert controller.busy is False


@pytest.mark.asyncio
async def test_service_failure_leaves_history_untouched():
    service = DummyGenerationService()
    controller = ready_controller(service)
    await controller.submit()
    controller.move_back()
    before = (len(controller.history), controller.history.cursor)

    service.error = GenerationError("quota exceeded")
    assert await controller.submit("make it blue") is False

    assert (len(controller.history), controller.history.cursor) == before
    assert controller.error == "quota exceeded"
    assert controller.busy is False


@pytest.mark.asyncio
async def test_unexpected_exception_clears_busy_flag():
    service = DummyGenerationService()
    service.error = RuntimeError()
    controller = ready_controller(service)

    assert await controller.submit() is False

    assert controller.busy is False
    assert controller.error == UNKNOWN_ERROR_MESSAGE
    assert len(controller.history) == 0

    service.error = None
    assert await controller.submit() is True
    assert controller.error is None


@pytest.mark.asyncio
async def test_refine_consumes_instruction_and_auxiliary_image():
    service = DummyGenerationService()
    controller = ready_controller(service)
    controller.update_details("Lamp", "$10", "$12")
    await controller.submit()
    controller.set_instruction("add this logo")
    controller.set_refine_image(image("logo"))

    assert await controller.submit("add this logo") is True

    inputs = controller.inputs
    assert inputs.instruction == ""
    assert inputs.refine_image is None
    assert inputs.title == "Lamp"
    assert inputs.price == "$10"
    assert inputs.old_price == "$12"
    assert inputs.reference_image == image("reference")
    assert inputs.product_image == image("product")
    assert service.refine_calls[0][2] == image("logo")


@pytest.mark.asyncio
async def test_failed_refine_keeps_instruction():
    service = DummyGenerationService()
    controller = ready_controller(service)
    await controller.submit()
    controller.set_instruction("make it blue")
    service.error = GenerationError("network down")

    await controller.submit("make it blue")

    assert controller.inputs.instruction == "make it blue"


@pytest.mark.asyncio
async def test_initial_generation_from_middle_truncates():
    service = DummyGenerationService()
    controller = ready_controller(service)
    await controller.submit()
    await controller.submit("one")
    await controller.submit("two")
    controller.move_back()
    controller.move_back()

    assert await controller.submit() is True

    labels = [entry.label for entry in controller.history.entries]
    assert labels == [INITIAL_GENERATION_LABEL, INITIAL_GENERATION_LABEL]
    assert controller.history.position() == HistoryPosition(2, 2)


@pytest.mark.asyncio
async def test_listeners_see_busy_then_idle():
    service = DummyGenerationService()
    controller = ready_controller(service)
    seen: list[bool] = []

    def listener(view):
        seen.append(view.busy)

    controller.add_listener(listener)
    await controller.submit()

    assert seen == [True, False]
    controller.remove_listener(listener)
    await controller.submit()
    assert seen == [True, False]


def test_request_mode():
    controller = ready_controller(DummyGenerationService())

    assert controller.request_mode("make it blue") is RequestMode.INITIAL
    controller.history.append(HistoryEntry(image=image("X"), label=INITIAL_GENERATION_LABEL))
    assert controller.request_mode("make it blue") is RequestMode.REFINE
    assert controller.request_mode("   ") is RequestMode.INITIAL


def test_validate_agrees_with_request_mode():
    controller = ready_controller(DummyGenerationService())

    assert controller.validate("   ") is controller.request_mode("   ") is RequestMode.INITIAL
    controller.history.append(HistoryEntry(image=image("X"), label=INITIAL_GENERATION_LABEL))
    assert controller.validate("make it blue") is controller.request_mode("make it blue")


@pytest.mark.asyncio
async def test_dispatch_refine_without_base_raises_validation_error():
    service = DummyGenerationService()
    controller = ready_controller(service)

    with pytest.raises(ValidationError) as excinfo:
        await controller._dispatch(RequestMode.REFINE, "make it blue")

    assert excinfo.value.message == MISSING_BASE_IMAGE_MESSAGE
    assert service.refine_calls == []


@pytest.mark.asyncio
async def test_dispatch_initial_without_images_raises_validation_error():
    service = DummyGenerationService()
    controller = SessionController(service)

    with pytest.raises(ValidationError) as excinfo:
        await controller._dispatch(RequestMode.INITIAL, "")

    assert excinfo.value.message == MISSING_INPUTS_MESSAGE
    assert service.composite_calls == []


@pytest.mark.asyncio
async def test_reset_clears_everything():
    controller = ready_controller(DummyGenerationService())
    await controller.submit()

    assert controller.reset() is True

    assert controller.history.position() == HistoryPosition(0, 0)
    assert controller.inputs.title == ""
    assert controller.inputs.reference_image is None
    assert controller.error is None
