"""
Per-style portrait editing with Gemini 2.5 Flash Image.
A failed edit never escalates: the caller just gets no image for that style.
"""

import base64
from typing import Optional, Tuple, Union

from google.genai import types

from brow_prompts import build_image_edit_prompt
from intake import PortraitImage


IMAGE_MODEL = "gemini-2.5-flash-image"


def portrait_part(image: PortraitImage) -> types.Part:
    """Wrap the portrait as an inline image part for a Gemini request"""
    return types.Part(
        inline_data=types.Blob(
            mime_type=image.mimeType,
            data=image.data
        )
    )


def to_data_url(mime_type: Optional[str], data: Union[bytes, str]) -> str:
    """
    Build a self-describing data URL for an image payload.

    Gemini returns raw bytes through the SDK, but base64 strings are
    accepted as-is.
    """
    if isinstance(data, bytes):
        encoded = base64.b64encode(data).decode('utf-8')
    elif isinstance(data, str):
        encoded = data
    else:
        raise ValueError(f"Unexpected image data type: {type(data)}")

    return f"data:{mime_type or 'image/png'};base64,{encoded}"


def decode_data_url(data_url: str) -> Tuple[str, bytes]:
    """Split a data URL into its media type and decoded bytes"""
    header, encoded = data_url.split(',', 1)
    mime_type = header.split(';')[0].replace('data:', '') if 'data:' in header else 'image/png'
    return mime_type, base64.b64decode(encoded)


def extract_image_data_url(response) -> Optional[str]:
    """
    Return the first inline image in a Gemini response as a data URL.

    Returns:
        data URL, or None when no part carries image data
    """
    for candidate in response.candidates or []:
        if not candidate.content or not candidate.content.parts:
            continue
        for part in candidate.content.parts:
            inline_data = getattr(part, 'inline_data', None)
            if inline_data and inline_data.data:
                return to_data_url(inline_data.mime_type, inline_data.data)
    return None


def generate_brow_image(
    client,
    image: PortraitImage,
    style_name: str,
    description: str,
    brow_preference: str,
    has_old_tattoo: bool
) -> Optional[str]:
    """
    Render one brow style onto the client's portrait.

    Args:
        client: genai.Client
        image: Source portrait
        style_name: Brow style name (selects the geometry rule)
        description: The style's effectOnFace text
        brow_preference: Global size preference
        has_old_tattoo: Corrective vs. enhancement mode

    Returns:
        data URL of the edited portrait, or None if generation failed
    """
    try:
        prompt = build_image_edit_prompt(style_name, description, brow_preference, has_old_tattoo)

        response = client.models.generate_content(
            model=IMAGE_MODEL,
            contents=[portrait_part(image), prompt],
            config=types.GenerateContentConfig(
                response_modalities=["TEXT", "IMAGE"]
            )
        )

        image_url = extract_image_data_url(response)
        if not image_url:
            print(f"[IMAGE GENERATION] ⚠️ No image data returned for style {style_name}")
            return None

        print(f"[IMAGE GENERATION] ✅ Generated image for style {style_name}")
        return image_url

    except Exception as e:
        print(f"[IMAGE GENERATION] ⚠️ Failed to generate image for style {style_name}: {type(e).__name__}: {str(e)}")
        return None
