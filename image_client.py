"""
Azure OpenAI Image Client
=========================
Thin wrapper around the Azure OpenAI images API. Sends a prompt to a
DALL-E deployment and returns the URL of the generated image together
with the revised prompt the service may send back.

Usage:
    client = AzureImageClient(endpoint, api_key, "dalle3")
    image = client.generate("a red fox")
    print(image.image_uri)
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol
from urllib.parse import urlparse

import openai
from openai import AzureOpenAI

from image_config import DEFAULT_API_VERSION, Settings


LOGGER = logging.getLogger(__name__)


# ============================================================================
# CONFIGURATION
# ============================================================================

DEFAULT_SIZE = "1024x1024"
DEFAULT_QUALITY = "standard"
DEFAULT_RESPONSE_FORMAT = "url"
BAD_REQUEST_STATUS = 400


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class ImageGenerationError(Exception):
    """Base exception for image generation errors"""
    pass


class ClientSetupError(ImageGenerationError):
    """The API client could not be constructed"""
    pass


class APIRequestError(ImageGenerationError):
    """The API rejected or failed the generation request"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    @property
    def is_bad_request(self) -> bool:
        """True when the service answered 400 (content policy or invalid prompt)."""
        return self.status_code == BAD_REQUEST_STATUS


class InvalidResponseError(ImageGenerationError):
    """Invalid response from API"""
    pass


# ============================================================================
# CLIENT CLASS
# ============================================================================

@dataclass(frozen=True)
class GeneratedImage:
    image_uri: str
    revised_prompt: Optional[str] = None


class ImageGenerator(Protocol):
    """Anything that can turn a prompt into a GeneratedImage."""

    def generate(self, prompt: str) -> GeneratedImage:
        ...


class AzureImageClient:
    """
    Client for an Azure OpenAI image deployment.

    Owns the underlying SDK client; call close() (or use it as a context
    manager) to release its HTTP connection pool.
    """

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        model_deployment: str,
        api_version: str = DEFAULT_API_VERSION,
        sdk_client: Any = None,
    ):
        """
        Initialize the client.

        Args:
            endpoint: Azure OpenAI resource endpoint (https://...)
            api_key: Key for the resource
            model_deployment: Name of the DALL-E deployment
            api_version: Azure OpenAI REST API version
            sdk_client: Pre-built SDK client, mainly for tests

        Raises:
            ClientSetupError: If the endpoint is malformed or the SDK
                rejects the arguments
        """
        if not model_deployment:
            raise ClientSetupError("Model deployment is required")

        self.endpoint = endpoint
        self.model_deployment = model_deployment

        if sdk_client is None:
            parsed = urlparse(endpoint or "")
            if parsed.scheme not in ("http", "https") or not parsed.netloc:
                raise ClientSetupError(f"Invalid endpoint URL: {endpoint!r}")
            try:
                sdk_client = AzureOpenAI(
                    azure_endpoint=endpoint,
                    api_key=api_key,
                    api_version=api_version,
                )
            except openai.OpenAIError as e:
                raise ClientSetupError(f"Failed to create Azure OpenAI client: {e}") from e

        self._client = sdk_client

    @classmethod
    def from_settings(cls, settings: Settings) -> "AzureImageClient":
        """
        Build a client from loaded settings.

        Args:
            settings: Validated session settings

        Returns:
            AzureImageClient bound to the configured deployment

        Raises:
            ClientSetupError: If the endpoint or credentials are rejected
        """
        return cls(
            endpoint=settings.endpoint,
            api_key=settings.api_key,
            model_deployment=settings.model_deployment,
            api_version=settings.api_version,
        )

    def generate(self, prompt: str) -> GeneratedImage:
        """
        Generate one image from a text prompt.

        The request always asks for a square 1024x1024 image at standard
        quality, returned as a URL rather than inline base64.

        Args:
            prompt: Text description of the desired image

        Returns:
            GeneratedImage with the download URL and optional revised prompt

        Raises:
            APIRequestError: If the service rejects the request or cannot
                be reached
            InvalidResponseError: If the response carries no image URL
        """
        LOGGER.debug("Requesting image from deployment %s", self.model_deployment)

        try:
            response = self._client.images.generate(
                model=self.model_deployment,
                prompt=prompt,
                n=1,
                size=DEFAULT_SIZE,
                quality=DEFAULT_QUALITY,
                response_format=DEFAULT_RESPONSE_FORMAT,
            )
        except openai.APIStatusError as e:
            raise APIRequestError(e.message, status_code=e.status_code) from e
        except openai.APIError as e:
            raise APIRequestError(e.message) from e

        data = getattr(response, "data", None) or []
        if not data or not getattr(data[0], "url", None):
            raise InvalidResponseError("Response did not contain an image URL")

        image = GeneratedImage(
            image_uri=data[0].url,
            revised_prompt=getattr(data[0], "revised_prompt", None),
        )
        LOGGER.debug("Image generated: %s", image.image_uri)
        return image

    def close(self) -> None:
        """Release the SDK client's HTTP connections."""
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> "AzureImageClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
