"""
Client intake: the validated form data handed to the analysis pipeline.
"""

import io
from datetime import date
from typing import Optional

from PIL import Image
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from brow_prompts import DEFAULT_BROW_PREFERENCE, preference_ids


class IntakeValidationError(ValueError):
    """Raised when the intake form is incomplete or the portrait is unusable"""
    pass


class PortraitImage(BaseModel):
    """Uploaded portrait bytes plus their media type"""
    data: bytes = Field(..., min_length=1)
    mimeType: str = Field("image/jpeg")

    @model_validator(mode='after')
    def validate_image(self):
        """The payload must decode as an image; generic media types are replaced by the decoded one"""
        try:
            with Image.open(io.BytesIO(self.data)) as img:
                image_format = img.format
                img.verify()
        except Exception as e:
            raise ValueError(f"Portrait is not a decodable image: {str(e)}")

        if not self.mimeType or not self.mimeType.startswith("image/"):
            detected = Image.MIME.get(image_format or "")
            if not detected:
                raise ValueError(f"Unsupported image media type: {self.mimeType}")
            self.mimeType = detected

        return self


class UserIntake(BaseModel):
    """Everything the consultation needs from the client"""
    name: str = Field(..., min_length=1)
    dob: date
    job: str = Field(..., min_length=1)
    browPreference: str = DEFAULT_BROW_PREFERENCE
    hasOldTattoo: bool = False
    portrait: PortraitImage

    @field_validator('name', 'job', mode='before')
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator('browPreference')
    @classmethod
    def validate_preference(cls, v):
        if v not in preference_ids():
            raise ValueError(f"Unknown brow preference: {v}")
        return v


def build_intake(
    name: str,
    dob: Optional[date],
    job: str,
    image_bytes: Optional[bytes],
    mime_type: Optional[str],
    brow_preference: str = DEFAULT_BROW_PREFERENCE,
    has_old_tattoo: bool = False
) -> UserIntake:
    """
    Assemble and validate the intake form.

    Raises:
        IntakeValidationError: If a required field is missing or invalid
    """
    missing = [
        label for label, value in (
            ("name", name and name.strip()),
            ("date of birth", dob),
            ("occupation", job and job.strip()),
            ("portrait", image_bytes),
        )
        if not value
    ]
    if missing:
        raise IntakeValidationError(f"Please fill in: {', '.join(missing)}")

    try:
        return UserIntake(
            name=name,
            dob=dob,
            job=job,
            browPreference=brow_preference,
            hasOldTattoo=has_old_tattoo,
            portrait=PortraitImage(data=image_bytes, mimeType=mime_type or ""),
        )
    except ValidationError as e:
        raise IntakeValidationError(f"Intake validation failed: {str(e)}") from e


def is_intake_complete(name: str, dob: Optional[date], job: str, image_bytes: Optional[bytes]) -> bool:
    """Whether the form may be submitted"""
    return bool(name and name.strip() and dob and job and job.strip() and image_bytes)
