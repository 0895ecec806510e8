"""
Prompt construction for the brow consultation pipeline.
Builds the text-analysis prompt and the per-style image edit prompts.
"""

import unicodedata
from typing import Dict, List


# Numerology readings are anchored to this year
REFERENCE_YEAR = 2025

DEFAULT_BROW_PREFERENCE = "Natural"

BROW_PREFERENCES: List[Dict[str, str]] = [
    {"id": "Natural", "label": "Natural", "desc": "Standard, harmonious shape"},
    {"id": "Natural (Slim)", "label": "Natural (Slim)", "desc": "Refined and tidy"},
    {"id": "Delicate (Slimmest)", "label": "Delicate", "desc": "Slimmest, most subtle"},
]

# Ordered: first matching class wins, anything else is balanced
FLAT_ARCH_KEYWORDS = ("soft", "flat", "straight", "nhẹ")
HIGH_ARCH_KEYWORDS = ("western", "high", "angular", "tây")

GEOMETRY_RULES = {
    "flat": (
        "SHAPE: FLAT / STRAIGHT / KOREAN STYLE. The brow body should be mostly horizontal "
        "with a very soft, low tail. DO NOT ARCH HIGH. Look youthful and gentle."
    ),
    "high": (
        "SHAPE: HIGH ARCH / ANGULAR / WESTERN STYLE. The peak must be DISTINCTLY HIGH and SHARP. "
        "The tail should lift upwards. Look fierce, sharp, and luxury."
    ),
    "balanced": (
        "SHAPE: STANDARD CURVE / BALANCED ARCH. A classic semi-circle arch. The peak is visible "
        "but soft. The tail drops gently. Look standard and balanced."
    ),
}


def preference_ids() -> List[str]:
    """Return the accepted brow preference identifiers"""
    return [pref["id"] for pref in BROW_PREFERENCES]


def build_correction_context(has_old_tattoo: bool) -> str:
    """Describe the client's current brow situation for the analysis prompt."""
    if has_old_tattoo:
        return (
            "THE CLIENT HAS AN OLD BROW TATTOO. Recommend new shapes that CORRECT the old one. "
            "The new shape must be SMALLER and MORE REFINED so the face looks gentler, never harsh."
        )
    return "The client has natural, untreated brows (never tattooed)."


def build_analysis_prompt(
    name: str,
    dob: str,
    job: str,
    brow_preference: str = DEFAULT_BROW_PREFERENCE,
    has_old_tattoo: bool = False
) -> str:
    """
    Build the instruction text for the structured face/brow analysis call.

    Args:
        name: Client's full name
        dob: Date of birth (ISO format)
        job: Current occupation
        brow_preference: One of the BROW_PREFERENCES ids
        has_old_tattoo: Whether the client has a previous brow tattoo

    Returns:
        Prompt text to send alongside the portrait image
    """
    correction_context = build_correction_context(has_old_tattoo)

    return f"""THE CURRENT YEAR IS {REFERENCE_YEAR}.
Act as a Master-level Face Analysis, Feng Shui, Numerology and Brow Design consultant.
Task: Create a complete, natural, emotionally rich consultation that helps the client decide for themselves.

CLIENT INFORMATION:
- Full name: {name}
- Date of birth: {dob} (Calculate numerology using {REFERENCE_YEAR} as the current year)
- Occupation: {job}
- BROW CONDITION: {correction_context}
- BROW PREFERENCE: "{brow_preference}" (IMPORTANT: all 3 suggested styles must respect the thickness/size of this preference)

Analyse the provided face image and the information above and produce the detailed JSON output:

1. FACE ANALYSIS & CURRENT PROBLEMS (Important):
- Golden ratio, forehead/nose/brow shape, demeanour (gentle/sharp/elegant...), eye area, dominant energy.
- **currentBrowProblems**: A SHARP and HEARTFELT analysis of the flaws of the current brows
  (e.g. sparse brows making the face look pale, drooping shape making the face look sad, asymmetry...).
  + Emphasise what is lost if nothing changes: the face looks older, less lively, weaker first impressions.
  + Tone: sincere, but it must move the client to want a change.

2. SUGGEST 3 BROW STYLES (THESE 3 SPECIFIC STYLES - THEY MUST BE CLEARLY DIFFERENT):

- Style 1: "Soft Nature Arch".
  + Description: Slim nature brow, almost flat, very subtle curve at the tail (Flat/Low Arch), soft form.
  + Feeling: Youthful, gentle, clear.

- Style 2: "Defined Nature Arch".
  + Description: Nature brow with a clear, balanced lift (Standard Medium Arch), rounded peak, classic shape.
  + Feeling: Elegant, balanced, bright face.

- Style 3: "High Nature Arch".
  + Description: Nature brow with a strong curve (High Arch), high peak and Lifted Tail.
  + Feeling: Bold, sharp, noble, powerful, completely different from the other two.

In the "effectOnFace" field, describe the physical shape in great detail for the image generator (in English):
+ Style 1: "Slim straight brow, flat horizontal shape with very subtle tail curve, soft edges, airy powder"
+ Style 2: "Slim standard arch brow, balanced curve, distinct peak point, elegant and refined, airy powder"
+ Style 3: "Slim high arch brow, angular peak, lifted tail, sharp and fierce, luxury look, airy powder"

IMPORTANT: Mark exactly ONE best style with "isRecommended": true and the other two with false.

3. INK COLOUR:
- Specify: Soft Neutral Brown - transparent effect.
- Technique: "Nature Brows" - fine powder particles, airy effect, no contour, never heavy.

4. BEFORE - AFTER:
- How many % softer, how many % brighter, how many years younger.

5. NUMEROLOGY ({REFERENCE_YEAR}):
- Main number, soul mission, lesson for {REFERENCE_YEAR}. Connect the brow shape with the numerology.

6. LIFE PHASE & SOFT CLOSING:
- Advice for {REFERENCE_YEAR}.
- 3-4 gentle sentences that open up the client's need."""


def classify_brow_geometry(style_name: str) -> str:
    """
    Classify a style name into a geometry class: "flat", "high" or "balanced".

    Flat/low-arch keywords are checked before high-arch keywords; names
    matching neither fall back to the balanced arch.
    """
    lowered = unicodedata.normalize("NFC", style_name).lower()
    if any(keyword in lowered for keyword in FLAT_ARCH_KEYWORDS):
        return "flat"
    if any(keyword in lowered for keyword in HIGH_ARCH_KEYWORDS):
        return "high"
    return "balanced"


def build_correction_instruction(has_old_tattoo: bool) -> str:
    """Corrective-mode block for old tattoos, enhancement block otherwise"""
    if has_old_tattoo:
        return """CORRECTIVE MODE ACTIVE (FIX OLD BROW TATTOO):
- The user has an OLD, likely thick or blocky tattoo.
- IGNORE the boundaries of the old tattoo.
- GENERATE A NEW, SLIMMER, AND MORE REFINED SHAPE.
- SIMULATE REMOVAL of the excess old ink (Inpainting logic: replace messy old borders with clean skin or new delicate strokes).
- The new brow MUST be THINNER/SMALLER than the old one to look elegant."""
    return """VIRGIN BROWS MODE (ENHANCE):
- Enhance the natural brow bone structure.
- Keep the shape balanced and refined."""


def build_image_edit_prompt(
    style_name: str,
    description: str,
    brow_preference: str = DEFAULT_BROW_PREFERENCE,
    has_old_tattoo: bool = False
) -> str:
    """
    Build the edit instruction for rendering one brow style onto the portrait.

    Args:
        style_name: Name of the brow style (drives the geometry rule)
        description: The style's effectOnFace shape description
        brow_preference: Global size/thickness preference
        has_old_tattoo: Switches between corrective and enhancement mode

    Returns:
        Prompt text for the image edit call
    """
    geometry_rule = GEOMETRY_RULES[classify_brow_geometry(style_name)]
    correction_instruction = build_correction_instruction(has_old_tattoo)

    return f"""ROLE: Expert High-End Photo Retoucher & PMU Master Artist.
TASK: EDIT the user's eyebrows in the provided image.

CRITICAL CONSTRAINT (IDENTITY PRESERVATION):
- KEEP the user's face, skin texture, lighting, makeup, eyes, and hair 100% UNCHANGED.
- This is NOT a new character generation. This is an EDIT of the specific person in the photo.
- DO NOT apply smoothing filters or cartoon effects. Keep it RAW and REALISTIC.

STYLE: "NATURE BROWS" (Natural, refined):
- **Concept**: "HEALED EFFECT" - "MY BROWS BUT BETTER".
- **Opacity & Color**:
   - **EXTREMELY SHEER & NATURAL**. Use only 40-50% Opacity.
   - Color: **Transparent Soft Ash Brown / Taupe**.
   - **IMPORTANT**: It must look like the user has NO TATTOO, just naturally beautiful, fluffy brows.
   - DO NOT make it dark. DO NOT make it look like makeup.
- **Technique**: **Airy Powder / Nano Mist**.
   - Create a soft, misty pixel effect.
   - **Edges**: Soft and fuzzy (no hard outline). The brow should fade gently into the skin.
   - **Head**: Extremely soft and transparent gradient.
- **Size/Volume**: **SLIM & REFINED**.
   - STRICTLY NO THICK, HEAVY, OR BLOCKY BROWS.
   - The shape must be delicate, thin enough to look elegant, and perfectly balanced with the face structure.

{correction_instruction}

TARGET SHAPE: "{style_name}"
- **GEOMETRIC RULE (MUST FOLLOW)**: {geometry_rule}
- Shape Detail: {description}
- Preference Adjustment: "{brow_preference}" (Note: If user chose a slim or delicate option, make it very refined/thin).
- **Symmetry**: Ensure 100% Geometrical Symmetry between Left and Right brows.
- **Makeup**: Add very subtle natural eyeliner and wispy lashes to enhance the eyes naturally.

OUTPUT QUALITY: 8K Resolution, Macro Photography detail, Hyper-realistic texture."""
