"""One-off script for debugging a generate-then-refine round against Gemini."""

import asyncio
import sys
from pathlib import Path

from config.settings import load_config
from modules.pipelines.gemini_service import GeminiImageService
from modules.services.session_service import SessionController
from modules.services.storage_service import StorageService
from modules.utils.image_utils import encode_file
from modules.utils.logging import setup_logging


async def run(reference_path: str, product_path: str) -> None:
    # 1. Real configuration and service
    config = load_config()
    setup_logging(config)
    controller = SessionController(GeminiImageService(config))
    storage = StorageService(Path("debug_outputs"))

    # 2. Inputs for the initial composite
    controller.set_reference_image(await encode_file(reference_path))
    controller.set_product_image(await encode_file(product_path))
    controller.update_details("Classic Leather Watch", "$199.99", "$249.99")

    # 3. Generate, then refine once
    for instruction in (None, "make the background a soft blue gradient"):
        ok = await controller.submit(instruction)
        view = controller.view()
        print("Step:", instruction or "initial", "->", "ok" if ok else f"failed: {view.error}")
        if not ok or view.image is None:
            return
        path = storage.save_image(view.image, view.position.index)
        print("Saved:", path.resolve())


def main() -> None:
    if len(sys.argv) != 3:
        print("usage: python -m scripts.manual_generation_debug REFERENCE PRODUCT")
        sys.exit(2)
    asyncio.run(run(sys.argv[1], sys.argv[2]))


if __name__ == "__main__":
    main()
