import json
import threading
from unittest.mock import MagicMock

import pytest

import brow_analyzer
from brow_analyzer import TEXT_MODEL, MissingApiKeyError, analyze_profile, request_analysis
from brow_image_editor import IMAGE_MODEL, decode_data_url
from brow_schema import AnalysisValidationError

STYLE_NAMES = ["Soft Nature Arch", "Defined Nature Arch", "High Nature Arch"]


def models_called(client):
    return [call.kwargs["model"] for call in client.models.generate_content.call_args_list]


def test_missing_api_key_fails_before_any_request(portrait, monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
    create_client = MagicMock()
    monkeypatch.setattr(brow_analyzer, "create_client", create_client)
    client = MagicMock()

    with pytest.raises(MissingApiKeyError):
        analyze_profile(portrait, "An", "1990-05-01", "Designer", client=client)

    assert client.models.generate_content.call_count == 0
    create_client.assert_not_called()


def test_api_key_fallback_variable(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.setenv("API_KEY", "legacy-key")
    assert brow_analyzer.get_api_key() == "legacy-key"


def test_analysis_request_carries_schema(portrait):
    client = MagicMock()
    client.models.generate_content.return_value.text = "{}"

    assert request_analysis(client, portrait, "prompt") == "{}"

    kwargs = client.models.generate_content.call_args.kwargs
    assert kwargs["model"] == TEXT_MODEL
    assert kwargs["contents"][1] == "prompt"
    assert kwargs["config"].response_mime_type == "application/json"
    assert kwargs["config"].response_schema is not None


def test_all_images_succeed(portrait, api_key, make_client):
    payloads = {name: f"image-{i}".encode() for i, name in enumerate(STYLE_NAMES)}
    client = make_client(image_results=payloads)

    result = analyze_profile(portrait, "An", "1990-05-01", "Designer", client=client)

    assert [style.name for style in result.browStyles] == STYLE_NAMES
    for style in result.browStyles:
        assert decode_data_url(style.imageUrl)[1] == payloads[style.name]
    assert sum(1 for style in result.browStyles if style.isRecommended) == 1
    assert models_called(client).count(TEXT_MODEL) == 1
    assert models_called(client).count(IMAGE_MODEL) == 3


def test_one_failed_image_is_isolated(portrait, api_key, make_client, analysis_payload):
    client = make_client(image_results={
        "Soft Nature Arch": b"P1",
        "Defined Nature Arch": RuntimeError("image model overloaded"),
        "High Nature Arch": b"P3",
    })

    result = analyze_profile(
        portrait, "An", "1990-05-01", "Designer",
        brow_preference="Natural", has_old_tattoo=True, client=client
    )

    assert len(result.browStyles) == 3
    assert decode_data_url(result.browStyles[0].imageUrl)[1] == b"P1"
    assert result.browStyles[1].imageUrl is None
    assert decode_data_url(result.browStyles[2].imageUrl)[1] == b"P3"

    # Text fields come through untouched, including the failed style's
    dumped = result.model_dump()
    for style in dumped["browStyles"]:
        style.pop("imageUrl")
    assert dumped == analysis_payload


def test_every_style_prompt_uses_corrective_mode(portrait, api_key, make_client, analysis_payload):
    client = make_client(image_results={name: b"img" for name in STYLE_NAMES})

    analyze_profile(portrait, "An", "1990-05-01", "Designer", has_old_tattoo=True, client=client)

    image_prompts = [
        next(item for item in call.kwargs["contents"] if isinstance(item, str))
        for call in client.models.generate_content.call_args_list
        if call.kwargs["model"] == IMAGE_MODEL
    ]
    assert len(image_prompts) == 3
    assert all("CORRECTIVE MODE ACTIVE" in prompt for prompt in image_prompts)
    for style in analysis_payload["browStyles"]:
        style_prompt = next(prompt for prompt in image_prompts if f'TARGET SHAPE: "{style["name"]}"' in prompt)
        assert f"Shape Detail: {style['effectOnFace']}" in style_prompt


def test_analysis_call_failure_stops_fan_out(portrait, api_key, make_client):
    error = RuntimeError("429 RESOURCE_EXHAUSTED")
    client = make_client(analysis_error=error)

    with pytest.raises(RuntimeError) as excinfo:
        analyze_profile(portrait, "An", "1990-05-01", "Designer", client=client)

    assert excinfo.value is error
    assert models_called(client) == [TEXT_MODEL]


def test_malformed_analysis_stops_fan_out(portrait, api_key, make_client):
    client = make_client(analysis_text="{\"faceAnalysis\": \"oops\"}")

    with pytest.raises(AnalysisValidationError):
        analyze_profile(portrait, "An", "1990-05-01", "Designer", client=client)

    assert models_called(client) == [TEXT_MODEL]


def test_multiple_recommended_styles_rejected(portrait, api_key, make_client, analysis_payload):
    analysis_payload["browStyles"][1]["isRecommended"] = True
    client = make_client(analysis_text=json.dumps(analysis_payload))

    with pytest.raises(AnalysisValidationError):
        analyze_profile(portrait, "An", "1990-05-01", "Designer", client=client)

    assert models_called(client) == [TEXT_MODEL]


def test_progress_callback_reports_phases(portrait, api_key, make_client):
    client = make_client(image_results={name: b"img" for name in STYLE_NAMES})
    updates = []

    analyze_profile(
        portrait, "An", "1990-05-01", "Designer", client=client,
        progress_callback=lambda message, current, total: updates.append(current)
    )

    assert updates == [0, 50, 100]


def test_client_created_from_api_key(portrait, api_key, make_client, monkeypatch):
    client = make_client(image_results={name: b"img" for name in STYLE_NAMES})
    create_client = MagicMock(return_value=client)
    monkeypatch.setattr(brow_analyzer, "create_client", create_client)

    analyze_profile(portrait, "An", "1990-05-01", "Designer")

    create_client.assert_called_once_with("test-key")


def test_style_images_are_generated_concurrently(portrait, api_key, make_client):
    client = make_client(image_results={name: name.encode() for name in STYLE_NAMES})
    respond = client.models.generate_content.side_effect
    # Each image call blocks until all three are in flight
    barrier = threading.Barrier(3, timeout=5)

    def generate_content(model, contents, config=None):
        if model != TEXT_MODEL:
            barrier.wait()
        return respond(model, contents, config)

    client.models.generate_content.side_effect = generate_content

    result = analyze_profile(portrait, "An", "1990-05-01", "Designer", client=client)

    for style in result.browStyles:
        assert decode_data_url(style.imageUrl)[1] == style.name.encode()
