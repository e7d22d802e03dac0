"""Pydantic schemas for FastAPI request/response models."""
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, model_validator

from age_detector.config.settings import AGE_RANGE_MARGIN, MODEL_INPUT_SIZE

DEFAULT_MESSAGE = "Age detection completed successfully"
DEFAULT_METHOD = "AI Neural Network"


class ModelInfo(BaseModel):
    """Details about the upstream model's input and output scaling."""
    input_size: str = MODEL_INPUT_SIZE
    scaling_factor: float = 1.0
    range_margin: int = AGE_RANGE_MARGIN


class NormalizedPrediction(BaseModel):
    """Canonical prediction shape consumed by the UI.

    The age range is always symmetric around ``age`` with a fixed margin,
    whatever range the upstream service reported.
    """
    age: int
    age_range: str = ""
    age_min: int = 0
    age_max: int = 0
    confidence: float = Field(ge=0.0, le=1.0)
    raw_prediction: float
    gender: Optional[Literal["male", "female"]] = None
    message: str = DEFAULT_MESSAGE
    method: str = DEFAULT_METHOD
    model_info: ModelInfo = Field(default_factory=ModelInfo)
    timestamp: str
    face_detected: bool = True
    faces_count: int = Field(default=1, ge=0)

    @model_validator(mode="after")
    def derive_age_range(self) -> "NormalizedPrediction":
        self.age_min = self.age - AGE_RANGE_MARGIN
        self.age_max = self.age + AGE_RANGE_MARGIN
        self.age_range = f"{self.age_min}-{self.age_max}"
        self.model_info.range_margin = AGE_RANGE_MARGIN
        return self


class DetectionResponse(BaseModel):
    """Successful detection response."""
    success: bool = True
    result: NormalizedPrediction


class ErrorResponse(BaseModel):
    """Error response returned for every handled failure."""
    success: bool = False
    error: str
    details: Optional[str] = None


class ApiInfoResponse(BaseModel):
    """Description of the detect-age endpoint."""
    message: str
    version: str
    methods: List[str]
    maxFileSize: str
    supportedFormats: List[str]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    message: str
    upstream: str
