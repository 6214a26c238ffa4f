"""
Pydantic model for application configuration.
Provides robust validation for all settings.
"""

from pydantic import BaseModel, Field, field_validator

QUALITY_TIERS = ("best", "medium", "worst")
OUTPUT_FORMATS = ("mp3", "mp4")

# Maps each output format to the labels shown for its quality tiers
QUALITY_OPTIONS = {
    "mp3": {
        "best": "High Quality",
        "medium": "Medium Quality",
        "worst": "Low Quality",
    },
    "mp4": {
        "best": "Best Quality",
        "medium": "Medium Quality",
        "worst": "Low Quality",
    },
}


def get_quality_label(output_format: str, quality: str) -> str:
    """Gets the human-readable label of a quality tier for a given format."""
    return QUALITY_OPTIONS.get(output_format, {}).get(quality, "Unknown")


class ClientConfig(BaseModel):
    """A validated configuration model for the application."""

    # Backend
    api_base_url: str
    request_timeout: float = 600.0  # Seconds, 0 disables

    # Conversion Settings
    quality: str = "best"
    output_format: str = "mp3"
    output_dir: str = "."

    # Progress tracking, not loaded from INI file
    tick_interval: float = Field(default=0.1, repr=False)
    tick_step: int = Field(default=1, repr=False)
    simulated_cap: int = Field(default=95, repr=False)
    success_eviction_delay: float = Field(default=3.0, repr=False)
    error_eviction_delay: float = Field(default=5.0, repr=False)

    # Internal fields not loaded from INI file
    config_path: str = Field(default="", repr=False)
    source_urls: list[str] = Field(default_factory=list, repr=False)

    class Config:
        """Pydantic model configuration."""

        validate_assignment = True
        str_strip_whitespace = True

    @field_validator("api_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensures the backend URL is an absolute http(s) URL without a trailing slash."""
        if not v:
            raise ValueError(
                "Backend URL is not configured. Run 'mediaconv-cli init <URL>' or set "
                "MEDIACONV_API_BASE_URL."
            )
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Backend URL must start with http:// or https://: {v}")
        return v.rstrip("/")

    @field_validator("quality")
    @classmethod
    def validate_quality(cls, v: str) -> str:
        v = v.lower()
        if v not in QUALITY_TIERS:
            raise ValueError(f"Quality must be one of {', '.join(QUALITY_TIERS)}.")
        return v

    @field_validator("output_format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        v = v.lower()
        if v not in OUTPUT_FORMATS:
            raise ValueError(f"Format must be one of {', '.join(OUTPUT_FORMATS)}.")
        return v

    @field_validator("request_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Request timeout cannot be negative.")
        return v

    @field_validator("simulated_cap")
    @classmethod
    def validate_simulated_cap(cls, v: int) -> int:
        """The simulator must never be able to claim completion."""
        if v < 0 or v >= 100:
            raise ValueError("Simulated progress cap must be between 0 and 99.")
        return v

    @classmethod
    def get_ini_keys(cls) -> set[str]:
        """Returns a set of all keys that are expected in the INI file."""
        return {"api_base_url", "request_timeout", "quality", "output_format", "output_dir"}
