import io
import json
from unittest.mock import MagicMock

import pytest
from google.genai import types
from PIL import Image

from brow_analyzer import TEXT_MODEL
from brow_schema import get_schema_example
from intake import PortraitImage


def make_text_response(text):
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=[types.Part(text=text)])
            )
        ]
    )


def make_image_response(data, mime_type="image/png"):
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(
                    role="model",
                    parts=[
                        types.Part(text="Here is the edited portrait."),
                        types.Part(inline_data=types.Blob(mime_type=mime_type, data=data)),
                    ]
                )
            )
        ]
    )


def prompt_from_contents(contents):
    return next(item for item in contents if isinstance(item, str))


@pytest.fixture
def portrait_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (16, 16), color=(200, 170, 150)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def portrait(portrait_bytes):
    return PortraitImage(data=portrait_bytes, mimeType="image/png")


@pytest.fixture
def analysis_payload():
    return get_schema_example()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.delenv("GEMINI_BASE_URL", raising=False)
    return "test-key"


@pytest.fixture
def make_client(analysis_payload):
    """
    Build a mocked genai.Client.

    image_results maps a style name to either bytes (returned as image data)
    or an exception instance (raised by that style's edit call).
    """
    def factory(image_results=None, analysis_text=None, analysis_error=None):
        image_results = image_results or {}
        text = analysis_text if analysis_text is not None else json.dumps(analysis_payload)

        def generate_content(model, contents, config=None):
            if model == TEXT_MODEL:
                if analysis_error is not None:
                    raise analysis_error
                return make_text_response(text)

            prompt = prompt_from_contents(contents)
            for style_name, outcome in image_results.items():
                if f'TARGET SHAPE: "{style_name}"' in prompt:
                    if isinstance(outcome, Exception):
                        raise outcome
                    return make_image_response(outcome)
            raise RuntimeError("Unexpected image edit request")

        client = MagicMock()
        client.models.generate_content.side_effect = generate_content
        return client

    return factory
