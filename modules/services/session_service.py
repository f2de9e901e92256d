"""Session state and the controller that drives generate/refine requests."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol

from modules.services.errors import StylistError, ValidationError
from modules.services.history_service import (
    INITIAL_GENERATION_LABEL,
    GenerationHistory,
    HistoryEntry,
    HistoryPosition,
)
from modules.utils.image_utils import EncodedImage

logger = logging.getLogger(__name__)

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."
MISSING_BASE_IMAGE_MESSAGE = "Please generate an image first before refining."
MISSING_INPUTS_MESSAGE = "Please provide a reference image, a product image, title, and price."


class GenerationService(Protocol):
    """Remote image model used by the controller."""

    async def generate_composite(
        self,
        reference_image: EncodedImage,
        product_image: EncodedImage,
        title: str,
        price: str,
        old_price: Optional[str] = None,
    ) -> EncodedImage: ...

    async def refine(
        self,
        base_image: EncodedImage,
        instruction: str,
        auxiliary_image: Optional[EncodedImage] = None,
    ) -> EncodedImage: ...


class RequestMode(str, enum.Enum):
    """Kind of request implied by the current inputs."""

    INITIAL = "initial"
    REFINE = "refine"


@dataclass(slots=True)
class SessionInputs:
    """Form state collected from the user between requests."""

    reference_image: Optional[EncodedImage] = None
    product_image: Optional[EncodedImage] = None
    title: str = ""
    price: str = ""
    old_price: Optional[str] = None
    instruction: str = ""
    refine_image: Optional[EncodedImage] = None

    def missing_fields(self) -> List[str]:
        """Names of the required initial-generation inputs that are absent."""
        missing: List[str] = []
        if self.reference_image is None:
            missing.append("a reference image")
        if self.product_image is None:
            missing.append("a product image")
        if not self.title.strip():
            missing.append("a product title")
        if not self.price.strip():
            missing.append("a price")
        return missing

    def consume_refinement(self) -> None:
        """Reset the one-shot refinement fields."""
        self.instruction = ""
        self.refine_image = None


@dataclass(slots=True)
class Session:
    """Everything one user works with: history, inputs, busy flag, last error."""

    history: GenerationHistory = field(default_factory=GenerationHistory)
    inputs: SessionInputs = field(default_factory=SessionInputs)
    busy: bool = False
    error: Optional[str] = None


@dataclass(frozen=True, slots=True)
class SessionView:
    """Read-only snapshot rendered by the presentation layer."""

    image: Optional[EncodedImage]
    label: str
    position: HistoryPosition
    busy: bool
    error: Optional[str]
    can_move_back: bool
    can_move_forward: bool

    @property
    def can_refine(self) -> bool:
        return self.image is not None and not self.busy


Listener = Callable[[SessionView], None]


class SessionController:
    """Validates and runs one generation or refinement at a time."""

    def __init__(self, service: GenerationService, session: Optional[Session] = None) -> None:
        self.service = service
        self.session = session or Session()
        self._listeners: List[Listener] = []

    # Observers ----------------------------------------------------------------
    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _notify(self) -> None:
        if not self._listeners:
            return
        view = self.view()
        for listener in list(self._listeners):
            listener(view)

    # Derived state ------------------------------------------------------------
    @property
    def history(self) -> GenerationHistory:
        return self.session.history

    @property
    def inputs(self) -> SessionInputs:
        return self.session.inputs

    @property
    def busy(self) -> bool:
        return self.session.busy

    @property
    def error(self) -> Optional[str]:
        return self.session.error

    def view(self) -> SessionView:
        entry = self.history.current()
        return SessionView(
            image=entry.image if entry else None,
            label=entry.label if entry else "",
            position=self.history.position(),
            busy=self.session.busy,
            error=self.session.error,
            can_move_back=self.history.can_move_back,
            can_move_forward=self.history.can_move_forward,
        )

    def request_mode(self, instruction: Optional[str] = None) -> RequestMode:
        if instruction and instruction.strip() and self.history.current() is not None:
            return RequestMode.REFINE
        return RequestMode.INITIAL

    # Input setters ------------------------------------------------------------
    def set_reference_image(self, image: Optional[EncodedImage]) -> None:
        self.inputs.reference_image = image
        self._notify()

    def set_product_image(self, image: Optional[EncodedImage]) -> None:
        self.inputs.product_image = image
        self._notify()

    def set_refine_image(self, image: Optional[EncodedImage]) -> None:
        self.inputs.refine_image = image
        self._notify()

    def set_instruction(self, instruction: str) -> None:
        self.inputs.instruction = instruction or ""

    def update_details(self, title: str, price: str, old_price: Optional[str] = None) -> None:
        self.inputs.title = title or ""
        self.inputs.price = price or ""
        self.inputs.old_price = old_price.strip() if old_price and old_price.strip() else None

    def report_error(self, message: str) -> None:
        """Replace the error slot, e.g. after a failed upload."""
        self.session.error = message or UNKNOWN_ERROR_MESSAGE
        self._notify()

    # Requests -----------------------------------------------------------------
    def validate(self, instruction: Optional[str] = None) -> RequestMode:
        """Check preconditions for the request implied by ``instruction``."""
        mode = self.request_mode(instruction)
        if mode is RequestMode.REFINE:
            return mode
        if instruction and instruction.strip():
            # An instruction with nothing to refine is not an initial generation.
            raise ValidationError(MISSING_BASE_IMAGE_MESSAGE)

        missing = self.inputs.missing_fields()
        if len(missing) == 1:
            raise ValidationError(f"Please provide {missing[0]}.")
        if missing:
            raise ValidationError(MISSING_INPUTS_MESSAGE)
        return RequestMode.INITIAL

    async def submit(self, instruction: Optional[str] = None) -> bool:
        """Run a generation or refinement; return True when history advanced."""
        if self.session.busy:
            logger.warning("Ignoring submit while another request is in flight")
            return False

        try:
            mode = self.validate(instruction)
        except ValidationError as exc:
            logger.info("Rejected request: %s", exc.message)
            self.session.error = exc.message
            self._notify()
            return False

        self.session.busy = True
        self.session.error = None
        self._notify()
        try:
            entry = await self._dispatch(mode, instruction or "")
            self.history.append(entry)
            if mode is RequestMode.REFINE:
                self.inputs.consume_refinement()
            logger.info("Stored version %d (%s)", self.history.position().index, mode.value)
            return True
        except StylistError as exc:
            logger.warning("%s request failed: %s", mode.value, exc.message)
            self.session.error = exc.message
            return False
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s request failed", mode.value)
            self.session.error = str(exc) or UNKNOWN_ERROR_MESSAGE
            return False
        finally:
            self.session.busy = False
            self._notify()

    async def _dispatch(self, mode: RequestMode, instruction: str) -> HistoryEntry:
        if mode is RequestMode.REFINE:
            base = self.history.current()
            if base is None:
                raise ValidationError(MISSING_BASE_IMAGE_MESSAGE)
            image = await self.service.refine(base.image, instruction, self.inputs.refine_image)
            return HistoryEntry(image=image, label=instruction)

        inputs = self.inputs
        if inputs.reference_image is None or inputs.product_image is None:
            raise ValidationError(MISSING_INPUTS_MESSAGE)
        image = await self.service.generate_composite(
            inputs.reference_image,
            inputs.product_image,
            inputs.title,
            inputs.price,
            inputs.old_price,
        )
        return HistoryEntry(image=image, label=INITIAL_GENERATION_LABEL)

    # Navigation ---------------------------------------------------------------
    def move_back(self) -> bool:
        moved = self.history.move_back()
        if moved:
            self._notify()
        return moved

    def move_forward(self) -> bool:
        moved = self.history.move_forward()
        if moved:
            self._notify()
        return moved

    def reset(self) -> bool:
        """Start over with an empty history and blank inputs."""
        if self.session.busy:
            return False
        self.session.history.clear()
        self.session.inputs = SessionInputs()
        self.session.error = None
        self._notify()
        return True
