import base64
from types import SimpleNamespace

import httpx
import pytest
from openai import OpenAIError

from config import settings
from conftest import mock_client
from services.errors import ModelUnavailable
from services.openai_service import (
    PLACEHOLDER_API_KEY,
    InlineImage,
    OpenAIModelClient,
    extract_citations,
    fetch_images,
    get_openai_client,
)


class FakeResponses:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def fake_openai(response=None, error=None):
    return SimpleNamespace(responses=FakeResponses(response, error))


def annotation(title=None, url=None, type="url_citation"):
    return SimpleNamespace(type=type, title=title, url=url)


def make_response(text, annotations=()):
    return SimpleNamespace(
        output_text=text,
        output=[
            SimpleNamespace(type="web_search_call", status="completed"),
            SimpleNamespace(
                type="message",
                content=[SimpleNamespace(type="output_text", text=text, annotations=list(annotations))],
            ),
        ],
    )


def test_generate_sends_prompt_images_temperature_and_web_search():
    client = fake_openai(make_response('{"score": 1}'))
    model = OpenAIModelClient(client=client, model="gpt-test", temperature=0.2, web_search=True)

    reply = model.generate("PROMPT", [InlineImage(data="aGk=", mimeType="image/png")])

    request = client.responses.calls[0]
    assert request["model"] == "gpt-test"
    assert request["temperature"] == 0.2
    assert request["tools"] == [{"type": "web_search_preview"}]
    content = request["input"][0]["content"]
    assert content[0] == {"type": "input_text", "text": "PROMPT"}
    assert content[1] == {"type": "input_image", "image_url": "data:image/png;base64,aGk="}
    assert reply.text == '{"score": 1}'


def test_web_search_can_be_disabled():
    client = fake_openai(make_response("{}"))
    OpenAIModelClient(client=client, web_search=False).generate("PROMPT", [])
    assert "tools" not in client.responses.calls[0]


def test_generate_returns_citations_in_order():
    response = make_response("{}", [
        annotation("Reuters", "https://reuters.com/a"),
        annotation(None, "https://untitled.example"),
        annotation("File", "file-1", type="file_citation"),
        annotation("AP", "https://apnews.com/b"),
    ])
    reply = OpenAIModelClient(client=fake_openai(response)).generate("PROMPT", [])

    assert reply.citations == [
        {"title": "Reuters", "url": "https://reuters.com/a"},
        {"title": None, "url": "https://untitled.example"},
        {"title": "AP", "url": "https://apnews.com/b"},
    ]


def test_extract_citations_tolerates_missing_output():
    assert extract_citations(SimpleNamespace(output_text="x")) == []


def test_api_error_becomes_model_unavailable():
    client = fake_openai(error=OpenAIError("quota exceeded"))
    with pytest.raises(ModelUnavailable):
        OpenAIModelClient(client=client).generate("PROMPT", [])


@pytest.mark.parametrize("text", ["", "   ", None])
def test_empty_text_becomes_model_unavailable(text):
    client = fake_openai(make_response(text))
    with pytest.raises(ModelUnavailable):
        OpenAIModelClient(client=client).generate("PROMPT", [])


def test_unconfigured_api_key_is_model_unavailable(monkeypatch):
    monkeypatch.setattr(settings, "OPENAI_API_KEY", PLACEHOLDER_API_KEY)
    get_openai_client.cache_clear()
    with pytest.raises(ModelUnavailable):
        OpenAIModelClient().generate("PROMPT", [])
    get_openai_client.cache_clear()


def test_failed_images_are_skipped():
    def handler(request):
        if request.url.path == "/ok.png":
            return httpx.Response(200, content=b"PNGDATA", headers={"content-type": "image/png"})
        if request.url.path == "/untyped":
            return httpx.Response(200, content=b"JPEGDATA")
        if request.url.path == "/missing.jpg":
            return httpx.Response(404)
        raise httpx.ConnectError("refused", request=request)

    images = fetch_images(mock_client(handler), [
        "https://img.example/ok.png",
        "https://img.example/missing.jpg",
        "https://img.example/down.jpg",
        "https://[::1",
        "https://img.example/untyped",
    ], limit=10)

    assert images == [
        InlineImage(data=base64.b64encode(b"PNGDATA").decode(), mimeType="image/png"),
        InlineImage(data=base64.b64encode(b"JPEGDATA").decode(), mimeType="image/jpeg"),
    ]


def test_image_count_is_capped():
    def handler(request):
        return httpx.Response(200, content=b"x", headers={"content-type": "image/jpeg"})

    urls = [f"https://img.example/{i}.jpg" for i in range(6)]
    assert len(fetch_images(mock_client(handler), urls, limit=4)) == 4
