from types import SimpleNamespace

import httpx
import openai
import pytest

from image_client import (
    DEFAULT_QUALITY,
    DEFAULT_RESPONSE_FORMAT,
    DEFAULT_SIZE,
    APIRequestError,
    AzureImageClient,
    ClientSetupError,
    GeneratedImage,
    InvalidResponseError,
)
from image_config import Settings

REQUEST = httpx.Request("POST", "https://x/openai/deployments/d/images/generations")


class FakeImages:
    def __init__(self, result):
        self.result = result
        self.calls = []

    def generate(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeSDK:
    def __init__(self, result):
        self.images = FakeImages(result)
        self.closed = False

    def close(self):
        self.closed = True


def image_response(url="https://images.example/1.png", revised_prompt=None):
    return SimpleNamespace(data=[SimpleNamespace(url=url, revised_prompt=revised_prompt)])


def make_client(result):
    sdk = FakeSDK(result)
    return AzureImageClient("https://x", "k", "d", sdk_client=sdk), sdk


def test_generate_sends_fixed_options():
    client, sdk = make_client(image_response(revised_prompt="a red fox in a forest"))

    image = client.generate("a red fox")

    assert image == GeneratedImage("https://images.example/1.png", "a red fox in a forest")
    assert sdk.images.calls == [{
        "model": "d",
        "prompt": "a red fox",
        "n": 1,
        "size": DEFAULT_SIZE,
        "quality": DEFAULT_QUALITY,
        "response_format": DEFAULT_RESPONSE_FORMAT,
    }]
    assert (DEFAULT_SIZE, DEFAULT_QUALITY, DEFAULT_RESPONSE_FORMAT) == ("1024x1024", "standard", "url")


def test_bad_request_keeps_status():
    error = openai.BadRequestError(
        "content policy violation",
        response=httpx.Response(400, request=REQUEST),
        body=None,
    )
    client, _ = make_client(error)

    with pytest.raises(APIRequestError) as excinfo:
        client.generate("something")

    assert excinfo.value.status_code == 400
    assert excinfo.value.is_bad_request
    assert "content policy violation" in excinfo.value.message
    assert excinfo.value.__cause__ is error


def test_server_error_is_not_a_bad_request():
    error = openai.InternalServerError(
        "boom", response=httpx.Response(500, request=REQUEST), body=None
    )
    client, _ = make_client(error)

    with pytest.raises(APIRequestError) as excinfo:
        client.generate("something")

    assert excinfo.value.status_code == 500
    assert not excinfo.value.is_bad_request


def test_connection_error_has_no_status():
    client, _ = make_client(openai.APIConnectionError(request=REQUEST))

    with pytest.raises(APIRequestError) as excinfo:
        client.generate("something")

    assert excinfo.value.status_code is None


@pytest.mark.parametrize("response", [
    SimpleNamespace(data=[]),
    SimpleNamespace(data=None),
    image_response(url=None),
])
def test_missing_url_is_invalid_response(response):
    client, _ = make_client(response)

    with pytest.raises(InvalidResponseError):
        client.generate("something")


@pytest.mark.parametrize("endpoint", ["", "not a url", "ftp://x", "https://"])
def test_malformed_endpoint_rejected(endpoint):
    with pytest.raises(ClientSetupError):
        AzureImageClient(endpoint, "k", "d")


def test_missing_deployment_rejected():
    with pytest.raises(ClientSetupError):
        AzureImageClient("https://x", "k", "", sdk_client=FakeSDK(None))


def test_from_settings_builds_azure_client():
    client = AzureImageClient.from_settings(
        Settings(endpoint="https://x.openai.azure.com/", api_key="k", model_deployment="d")
    )
    try:
        assert isinstance(client._client, openai.AzureOpenAI)
        assert client.model_deployment == "d"
    finally:
        client.close()


def test_context_manager_closes_sdk_client():
    client, sdk = make_client(image_response())

    with client:
        pass

    assert sdk.closed
