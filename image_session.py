#!/usr/bin/env python3
"""
DALL-E Image Generator
======================
Interactive console session against an Azure OpenAI DALL-E deployment.
Each prompt you type is turned into an image, which is downloaded into
the images/ folder of the current directory.

Usage:
    python image_session.py
    image-session

Settings are read from appsettings.json or .env in the working directory
(or the environment):
    OPENAI_ENDPOINT     Azure OpenAI resource endpoint
    OPENAI_API_KEY      Key for the resource
    MODEL_DEPLOYMENT    Name of the DALL-E deployment

Type 'quit' or an empty line to exit.
"""

import logging
import os
import sys
from contextlib import ExitStack
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from image_client import (
    APIRequestError,
    AzureImageClient,
    GeneratedImage,
    ImageGenerator,
)
from image_config import ConfigurationError, REQUIRED_KEYS, Settings, load_settings
from image_downloader import ImageDownloader


LOGGER = logging.getLogger(__name__)

TITLE = "DALL-E Image Generator - Azure OpenAI"
QUIT_COMMAND = "quit"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"


def build_filename(image_count: int, now: datetime) -> str:
    """Return image_NNN_YYYYMMDD_HHMMSS.png for the given count and time."""
    return f"image_{image_count:03d}_{now.strftime(TIMESTAMP_FORMAT)}.png"


def is_exit_command(text: Optional[str]) -> bool:
    """
    Check whether a line of input ends the session.

    Args:
        text: Line read from the console, or None at end of input

    Returns:
        True for end of input, a blank line, or exactly "quit" in any case
    """
    return text is None or not text.strip() or text.lower() == QUIT_COMMAND


# ============================================================================
# SESSION
# ============================================================================

class ImageSession:
    """
    Read-prompt / generate / save loop.

    The generator and downloader are injected so the loop can run against
    fakes; the session never closes them, that is the owner's job.
    """

    def __init__(
        self,
        generator: ImageGenerator,
        downloader: ImageDownloader,
        input_func: Callable[[str], str] = input,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.generator = generator
        self.downloader = downloader
        self.input_func = input_func
        self.clock = clock
        self.image_count = 0
        self.last_input = ""

    def _read_prompt(self) -> Optional[str]:
        """
        Ask for the next prompt.

        Returns:
            The line typed, or None on EOF or Ctrl-C
        """
        print("Enter your image prompt (or type 'quit' to exit):")
        try:
            return self.input_func("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            return None

    def generate_once(self, prompt: str) -> Optional[Path]:
        """
        Generate and save one image.

        API failures are reported and swallowed so the loop can continue;
        the image counter only moves on a successful generation.

        Returns:
            Saved path, or None if generation or download failed
        """
        print("🎨 Generating image...")

        try:
            image: GeneratedImage = self.generator.generate(prompt)
        except APIRequestError as e:
            print(f"❌ API Error: {e.message}")
            if e.is_bad_request:
                print("This might be due to content policy restrictions or invalid prompt.")
            return None
        except Exception as e:
            LOGGER.debug("Generation failed", exc_info=True)
            print(f"❌ Unexpected error: {e}")
            return None

        self.image_count += 1

        if image.revised_prompt and image.revised_prompt != prompt:
            print(f"Revised prompt: {image.revised_prompt}")

        filename = build_filename(self.image_count, self.clock())
        return self.downloader.save(image.image_uri, filename)

    def run(self) -> int:
        """
        Prompt until the user quits.

        Returns:
            Number of images generated during the session
        """
        while True:
            text = self._read_prompt()
            if is_exit_command(text):
                break

            self.last_input = text
            self.generate_once(text)
            print()

        print("Thank you for using DALL-E Image Generator!")
        return self.image_count


# ============================================================================
# CLI INTERFACE
# ============================================================================

def print_banner() -> None:
    """Print the program title and its underline."""
    print(TITLE)
    print("=" * len(TITLE))


def configure_logging() -> None:
    """Set up root logging at the level named by LOG_LEVEL (default WARNING)."""
    level = os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(
    settings_path: Optional[str] = None,
    input_func: Callable[[str], str] = input,
    client_factory: Callable[[Settings], ImageGenerator] = AzureImageClient.from_settings,
    downloader_factory: Callable[[Settings], ImageDownloader] = ImageDownloader.from_settings,
) -> int:
    """
    Main entry point.

    Args:
        settings_path: Settings file to read instead of the default lookup
        input_func: Replacement for input()
        client_factory: Builds the image generator from settings
        downloader_factory: Builds the downloader from settings

    Returns:
        Exit code (always 0; failures are reported on the console)
    """
    configure_logging()
    print_banner()

    with ExitStack() as stack:
        try:
            settings = load_settings(settings_path)
        except ConfigurationError as e:
            print(f"Configuration Error: {e}")
            if e.missing:
                print(f"Required: {', '.join(REQUIRED_KEYS)}")
            print("Please check your appsettings.json (or .env) file and Azure OpenAI setup.")
            return 0

        downloader = stack.enter_context(downloader_factory(settings))

        try:
            client = client_factory(settings)
        except Exception as e:
            LOGGER.debug("Client setup failed", exc_info=True)
            print(f"Configuration Error: {e}")
            print("Please check your appsettings.json (or .env) file and Azure OpenAI setup.")
            return 0

        close = getattr(client, "close", None)
        if close is not None:
            stack.callback(close)

        print(f"Connected to: {settings.endpoint}")
        print(f"Using deployment: {settings.model_deployment}")
        print()

        session = ImageSession(client, downloader, input_func=input_func)
        count = session.run()
        LOGGER.info("Session ended after %d image(s)", count)

    return 0


if __name__ == "__main__":
    sys.exit(main())
