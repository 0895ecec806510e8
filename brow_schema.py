from typing import Dict, Any, List, Optional
from pydantic import BaseModel, Field, ValidationError, field_validator


BROW_STYLE_COUNT = 3


class AnalysisValidationError(ValueError):
    """Raised when the model's analysis does not match the required shape"""
    pass


class FaceAnalysis(BaseModel):
    """Face reading and diagnosis of the current brows"""
    goldenRatio: str
    features: str
    aura: str
    eyes: str
    dominantEnergy: str
    currentBrowProblems: str = Field(..., description="Deep analysis of the current brow flaws")


class BrowStyle(BaseModel):
    """One candidate brow style; imageUrl is filled in after image generation"""
    name: str
    reason: str
    effectOnFace: str = Field(..., description="Physical shape description used as the image edit instruction")
    impression: str
    jobSuitability: str
    isRecommended: bool
    imageUrl: Optional[str] = Field(None, description="data: URL of the generated portrait, absent on failure")


class ColorSuggestion(BaseModel):
    color: str
    reason: str


class BeforeAfter(BaseModel):
    """Projected improvements, kept as free text (e.g. "+30%")"""
    softnessIncrease: str
    brightnessIncrease: str
    yearsYounger: str
    firstImpression: str


class Numerology(BaseModel):
    mainNumber: str
    soulMission: str
    lifePhase: str
    yearlyLesson: str
    careerEnergy: str
    connectionToBrow: str


class LifeAdvice(BaseModel):
    currentPhase: str
    focusThisYear: str
    postureToBuild: str


class SoftClosing(BaseModel):
    suggestions: List[str]
    finalNote: str


class AnalysisResult(BaseModel):
    """Complete structured consultation returned by the analysis call"""
    faceAnalysis: FaceAnalysis
    browStyles: List[BrowStyle]
    colorSuggestion: ColorSuggestion
    beforeAfter: BeforeAfter
    numerology: Numerology
    lifeAdvice: LifeAdvice
    softClosing: SoftClosing

    @field_validator('browStyles')
    @classmethod
    def validate_brow_styles(cls, v):
        """Exactly 3 styles, exactly one of them recommended"""
        if len(v) != BROW_STYLE_COUNT:
            raise ValueError(f"Analysis must contain exactly {BROW_STYLE_COUNT} brow styles, got {len(v)}")

        recommended_count = sum(1 for style in v if style.isRecommended)
        if recommended_count != 1:
            raise ValueError(f"Exactly one brow style must be recommended, got {recommended_count}")

        return v

    def recommended_style(self) -> BrowStyle:
        return next(style for style in self.browStyles if style.isRecommended)


def _string_fields(*names: str) -> Dict[str, Any]:
    return {name: {"type": "STRING"} for name in names}


# Output constraint handed to the model alongside the analysis prompt.
# imageUrl is intentionally absent: it is only set after image generation.
ANALYSIS_RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "faceAnalysis": {
            "type": "OBJECT",
            "properties": {
                **_string_fields("goldenRatio", "features", "aura", "eyes", "dominantEnergy"),
                "currentBrowProblems": {
                    "type": "STRING",
                    "description": "Deep analysis of the current brow flaws and what is lost if they are not fixed.",
                },
            },
            "required": ["goldenRatio", "features", "aura", "eyes", "dominantEnergy", "currentBrowProblems"],
        },
        "browStyles": {
            "type": "ARRAY",
            "min_items": BROW_STYLE_COUNT,
            "max_items": BROW_STYLE_COUNT,
            "items": {
                "type": "OBJECT",
                "properties": {
                    **_string_fields("name", "reason"),
                    "effectOnFace": {
                        "type": "STRING",
                        "description": "Detailed physical description of the brow shape for the image generator.",
                    },
                    **_string_fields("impression", "jobSuitability"),
                    "isRecommended": {
                        "type": "BOOLEAN",
                        "description": "Set to true for the single best suited style out of the 3.",
                    },
                },
                "required": ["name", "reason", "effectOnFace", "impression", "jobSuitability", "isRecommended"],
            },
        },
        "colorSuggestion": {
            "type": "OBJECT",
            "properties": _string_fields("color", "reason"),
            "required": ["color", "reason"],
        },
        "beforeAfter": {
            "type": "OBJECT",
            "properties": _string_fields("softnessIncrease", "brightnessIncrease", "yearsYounger", "firstImpression"),
            "required": ["softnessIncrease", "brightnessIncrease", "yearsYounger", "firstImpression"],
        },
        "numerology": {
            "type": "OBJECT",
            "properties": _string_fields(
                "mainNumber", "soulMission", "lifePhase", "yearlyLesson", "careerEnergy", "connectionToBrow"
            ),
            "required": ["mainNumber", "soulMission", "lifePhase", "yearlyLesson", "careerEnergy", "connectionToBrow"],
        },
        "lifeAdvice": {
            "type": "OBJECT",
            "properties": _string_fields("currentPhase", "focusThisYear", "postureToBuild"),
            "required": ["currentPhase", "focusThisYear", "postureToBuild"],
        },
        "softClosing": {
            "type": "OBJECT",
            "properties": {
                "suggestions": {
                    "type": "ARRAY",
                    "items": {"type": "STRING"},
                },
                "finalNote": {"type": "STRING"},
            },
            "required": ["suggestions", "finalNote"],
        },
    },
    "required": [
        "faceAnalysis",
        "browStyles",
        "colorSuggestion",
        "beforeAfter",
        "numerology",
        "lifeAdvice",
        "softClosing",
    ],
}


def parse_analysis_result(text: Optional[str]) -> AnalysisResult:
    """
    Decode the model's JSON text into an AnalysisResult.

    Args:
        text: Raw response text from the analysis call

    Returns:
        Validated AnalysisResult (every style's imageUrl is None)

    Raises:
        AnalysisValidationError: If the text is empty, not JSON, or violates the schema
    """
    if not text:
        raise AnalysisValidationError("No response from AI")

    try:
        result = AnalysisResult.model_validate_json(text)
    except ValidationError as e:
        raise AnalysisValidationError(f"Analysis validation failed: {str(e)}") from e

    # The model never supplies images; drop anything it invented
    for style in result.browStyles:
        style.imageUrl = None

    return result


def validate_analysis_result(analysis_json: Dict[str, Any]) -> bool:
    """
    Validate an analysis dictionary against the schema.

    Args:
        analysis_json: Analysis as dictionary

    Returns:
        True if valid

    Raises:
        AnalysisValidationError: If validation fails
    """
    try:
        AnalysisResult.model_validate(analysis_json)
        return True
    except ValidationError as e:
        raise AnalysisValidationError(f"Analysis validation failed: {str(e)}") from e


def get_schema_example() -> Dict[str, Any]:
    """
    Get an example analysis that conforms to the schema.

    Returns:
        Example analysis JSON
    """
    return {
        "faceAnalysis": {
            "goldenRatio": "Balanced thirds with a slightly shorter lower face",
            "features": "Soft forehead, straight nose bridge, low natural brow line",
            "aura": "Gentle and approachable",
            "eyes": "Almond eyes with a calm, warm gaze",
            "dominantEnergy": "Warm, creative water energy",
            "currentBrowProblems": "Sparse tails make the face look tired and blur the eye frame.",
        },
        "browStyles": [
            {
                "name": "Soft Nature Arch",
                "reason": "Keeps the youthful softness of the face",
                "effectOnFace": "Slim straight brow, flat horizontal shape with very subtle tail curve, soft edges, airy powder",
                "impression": "Youthful and gentle",
                "jobSuitability": "Creative and client-facing roles",
                "isRecommended": True,
            },
            {
                "name": "Defined Nature Arch",
                "reason": "Adds structure without harshness",
                "effectOnFace": "Slim standard arch brow, balanced curve, distinct peak point, elegant and refined, airy powder",
                "impression": "Elegant and balanced",
                "jobSuitability": "Management and consulting",
                "isRecommended": False,
            },
            {
                "name": "High Nature Arch",
                "reason": "Creates a bold, confident frame",
                "effectOnFace": "Slim high arch brow, angular peak, lifted tail, sharp and fierce, luxury look, airy powder",
                "impression": "Bold and powerful",
                "jobSuitability": "Sales and leadership",
                "isRecommended": False,
            },
        ],
        "colorSuggestion": {
            "color": "Soft Neutral Brown",
            "reason": "Matches the hair tone and keeps a transparent healed effect",
        },
        "beforeAfter": {
            "softnessIncrease": "+30%",
            "brightnessIncrease": "+25%",
            "yearsYounger": "3-5 years",
            "firstImpression": "Fresh, friendly and well rested",
        },
        "numerology": {
            "mainNumber": "6",
            "soulMission": "Care for and beautify the people around you",
            "lifePhase": "Building foundations",
            "yearlyLesson": "Balance giving with receiving",
            "careerEnergy": "Strong in design and service",
            "connectionToBrow": "Soft curves support the nurturing energy of number 6",
        },
        "lifeAdvice": {
            "currentPhase": "A phase of steady growth",
            "focusThisYear": "Invest in your personal image",
            "postureToBuild": "Calm confidence",
        },
        "softClosing": {
            "suggestions": [
                "A small change can brighten your whole face.",
                "Your natural brows are a great base to build on.",
                "The soft arch would suit your gentle energy.",
            ],
            "finalNote": "Take your time to choose the shape that feels most like you.",
        },
    }
