"""Configuration settings for Gifed."""

from dataclasses import dataclass

# Behaviours when a GIF reports more frames than it carries delays for
DELAY_SHORTFALL_TRUNCATE = "truncate"
DELAY_SHORTFALL_STRICT = "strict"


@dataclass
class CodecConfig:
    """Configuration for the host imaging codec used to read and write GIFs."""

    # Name of the encoder backend; resolved explicitly, never from a global registry
    ENCODER: str = "pillow"

    # Let the backend spend extra time shrinking the palette on save
    OPTIMIZE: bool = False

    def __post_init__(self) -> None:
        if not self.ENCODER or not self.ENCODER.strip():
            raise ValueError("ENCODER must be a non-empty encoder name")

        self.ENCODER = self.ENCODER.strip().lower()


@dataclass
class LoadConfig:
    """Configuration for materialising frames when loading an animation."""

    # Canvas colour every frame is cleared to before compositing (RGBA)
    BACKGROUND_COLOR: tuple[int, int, int, int] = (0, 0, 0, 255)

    # Pixel mode of the materialised frame buffers
    FRAME_MODE: str = "RGBA"

    # What to do when the delay block is shorter than the frame count:
    # "truncate" drops the trailing frames, "strict" refuses to load
    DELAY_SHORTFALL_POLICY: str = DELAY_SHORTFALL_TRUNCATE

    def __post_init__(self) -> None:
        if len(self.BACKGROUND_COLOR) != 4:
            raise ValueError(
                f"BACKGROUND_COLOR must be an RGBA 4-tuple, got {self.BACKGROUND_COLOR}"
            )

        if any(not 0 <= channel <= 255 for channel in self.BACKGROUND_COLOR):
            raise ValueError(
                f"BACKGROUND_COLOR channels must be between 0 and 255, got {self.BACKGROUND_COLOR}"
            )

        valid_modes = {"RGBA", "RGB", "P", "L"}
        if self.FRAME_MODE not in valid_modes:
            raise ValueError(f"Invalid FRAME_MODE: {self.FRAME_MODE}")

        valid_policies = {DELAY_SHORTFALL_TRUNCATE, DELAY_SHORTFALL_STRICT}
        if self.DELAY_SHORTFALL_POLICY not in valid_policies:
            raise ValueError(
                f"Invalid DELAY_SHORTFALL_POLICY: {self.DELAY_SHORTFALL_POLICY}"
            )


# Default configuration instances
DEFAULT_CODEC_CONFIG = CodecConfig()
DEFAULT_LOAD_CONFIG = LoadConfig()
