"""
Brow consultation pipeline: one structured analysis call with Gemini,
then one portrait edit per suggested brow style, run concurrently.
"""

import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from typing import List, Optional, Union

from google import genai
from google.genai import types

from brow_image_editor import generate_brow_image, portrait_part
from brow_prompts import DEFAULT_BROW_PREFERENCE, build_analysis_prompt
from brow_schema import (
    ANALYSIS_RESPONSE_SCHEMA,
    AnalysisResult,
    BrowStyle,
    parse_analysis_result,
)
from intake import PortraitImage


TEXT_MODEL = "gemini-2.5-flash"


class BrowAnalysisError(Exception):
    """Base exception for the brow consultation pipeline"""
    pass


class MissingApiKeyError(BrowAnalysisError):
    """Raised before any network call when no Gemini API key is configured"""
    pass


def get_api_key() -> Optional[str]:
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY")


def create_client(api_key: str) -> genai.Client:
    """Create a Gemini client, honouring an optional base URL override"""
    base_url = os.environ.get("GEMINI_BASE_URL")
    if base_url:
        return genai.Client(
            api_key=api_key,
            http_options={
                'api_version': '',
                'base_url': base_url
            }
        )
    return genai.Client(api_key=api_key)


def request_analysis(client, image: PortraitImage, prompt: str) -> str:
    """
    Run the structured analysis call.

    Returns:
        Raw JSON text constrained by ANALYSIS_RESPONSE_SCHEMA
    """
    response = client.models.generate_content(
        model=TEXT_MODEL,
        contents=[portrait_part(image), prompt],
        config=types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=ANALYSIS_RESPONSE_SCHEMA
        )
    )
    return response.text or ""


def generate_style_images(
    client,
    image: PortraitImage,
    styles: List[BrowStyle],
    brow_preference: str,
    has_old_tattoo: bool
) -> List[BrowStyle]:
    """
    Generate one edited portrait per style concurrently and attach it as imageUrl.

    Every task runs to completion; a failed style keeps imageUrl = None.
    The returned list keeps the original style order.
    """
    if not styles:
        return styles

    image_urls: List[Optional[str]] = [None] * len(styles)

    with ThreadPoolExecutor(max_workers=len(styles)) as executor:
        futures = {
            executor.submit(
                generate_brow_image,
                client,
                image,
                style.name,
                style.effectOnFace,
                brow_preference,
                has_old_tattoo
            ): i
            for i, style in enumerate(styles)
        }
        for future in as_completed(futures):
            image_urls[futures[future]] = future.result()

    for style, image_url in zip(styles, image_urls):
        style.imageUrl = image_url

    generated = sum(1 for url in image_urls if url)
    print(f"[IMAGE GENERATION] Generated {generated}/{len(styles)} style image(s)")

    return styles


def analyze_profile(
    image: PortraitImage,
    name: str,
    dob: Union[str, date],
    job: str,
    brow_preference: str = DEFAULT_BROW_PREFERENCE,
    has_old_tattoo: bool = False,
    client=None,
    progress_callback=None
) -> AnalysisResult:
    """
    Complete consultation for one client.

    Args:
        image: Validated portrait
        name: Client's name
        dob: Date of birth
        job: Occupation
        brow_preference: Brow size/thickness preference
        has_old_tattoo: Whether the brows carry an old tattoo
        client: Optional pre-built genai.Client
        progress_callback: Optional callback(message, current, total)

    Returns:
        AnalysisResult with imageUrl set on every style whose image succeeded

    Raises:
        MissingApiKeyError: If no API key is configured (no request is made)
        AnalysisValidationError: If the analysis does not match the schema
        Exception: Any error of the analysis call, unmodified
    """
    api_key = get_api_key()
    if not api_key:
        raise MissingApiKeyError("Gemini API key is missing. Please set GEMINI_API_KEY.")

    if client is None:
        client = create_client(api_key)

    prompt = build_analysis_prompt(name, str(dob), job, brow_preference, has_old_tattoo)

    if progress_callback:
        progress_callback("Analyzing your face...", 0, 100)

    print(f"[ANALYSIS] Requesting analysis with {TEXT_MODEL}...")
    try:
        text = request_analysis(client, image, prompt)
        result = parse_analysis_result(text)
    except Exception as e:
        print(f"[ANALYSIS] ❌ Analysis failed: {type(e).__name__}: {str(e)}")
        raise

    print(f"[ANALYSIS] ✅ Received {len(result.browStyles)} brow styles "
          f"(recommended: {result.recommended_style().name})")

    if progress_callback:
        progress_callback("Rendering brow styles on your portrait...", 50, 100)

    generate_style_images(client, image, result.browStyles, brow_preference, has_old_tattoo)

    if progress_callback:
        progress_callback("Complete!", 100, 100)

    return result
