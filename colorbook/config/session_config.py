"""
Coloring session configuration.

Values can come from code, a dictionary or a YAML file.
"""

from dataclasses import dataclass, field
from typing import Dict, Any

FILL_POLICIES = ("block", "allow")


@dataclass
class BrushLimits:
    """Allowed stroke widths in buffer pixels."""
    min_size: int = 5
    max_size: int = 60

    def __post_init__(self):
        """Validate brush limits."""
        if self.min_size < 1:
            raise ValueError(f"min_size must be >= 1, got {self.min_size}")
        if self.max_size < self.min_size:
            raise ValueError(
                f"max_size must be >= min_size ({self.min_size}), got {self.max_size}"
            )

    def clamp(self, size: int) -> int:
        """Clamp a requested stroke width into the allowed range."""
        return max(self.min_size, min(self.max_size, int(size)))

    def to_dict(self) -> Dict[str, Any]:
        return {"min_size": self.min_size, "max_size": self.max_size}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BrushLimits":
        return cls(
            min_size=data.get("min_size", 5),
            max_size=data.get("max_size", 60),
        )


@dataclass
class SessionConfig:
    """
    Configuration for a coloring session.

    Attributes:
        canvas_size: Width and height of both pixel buffers
        boundary_threshold: Reference pixels with channel-average luminance
            below this value block the bucket fill
        overlay_opacity: Opacity of the line-art overlay in the live view
        default_brush_size: Stroke width of a fresh session
        brush_limits: Allowed range for the stroke width
        fill_policy: "block" refuses fills until the line art is loaded,
            "allow" fills against an empty reference (whole canvas)
        export_prefix: Prefix of the exported file name
        export_format: Raster format of the exported file
    """
    canvas_size: int = 1024
    boundary_threshold: int = 200
    overlay_opacity: float = 0.9
    default_brush_size: int = 20
    brush_limits: BrushLimits = field(default_factory=BrushLimits)
    fill_policy: str = "block"
    export_prefix: str = "my-doodle"
    export_format: str = "png"

    def __post_init__(self):
        """Validate configuration values."""
        self._validate()

    def _validate(self):
        """Validate all configuration values."""
        if self.canvas_size < 1:
            raise ValueError(f"canvas_size must be >= 1, got {self.canvas_size}")

        if not (0 <= self.boundary_threshold <= 255):
            raise ValueError(
                f"boundary_threshold must be between 0 and 255, got {self.boundary_threshold}"
            )

        if not (0.0 <= self.overlay_opacity <= 1.0):
            raise ValueError(
                f"overlay_opacity must be between 0.0 and 1.0, got {self.overlay_opacity}"
            )

        if isinstance(self.brush_limits, dict):
            object.__setattr__(self, "brush_limits", BrushLimits.from_dict(self.brush_limits))

        if self.default_brush_size <= 0:
            raise ValueError(
                f"default_brush_size must be > 0, got {self.default_brush_size}"
            )

        if self.fill_policy not in FILL_POLICIES:
            raise ValueError(
                f"fill_policy must be one of {FILL_POLICIES}, got {self.fill_policy!r}"
            )

        if self.export_format.lower() != "png":
            raise ValueError(f"export_format must be 'png', got {self.export_format!r}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "canvas_size": self.canvas_size,
            "boundary_threshold": self.boundary_threshold,
            "overlay_opacity": self.overlay_opacity,
            "default_brush_size": self.default_brush_size,
            "brush_limits": self.brush_limits.to_dict(),
            "fill_policy": self.fill_policy,
            "export_prefix": self.export_prefix,
            "export_format": self.export_format,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionConfig":
        """Create from dictionary (e.g., from YAML config)."""
        limits_data = data.get("brush_limits", {})
        limits = BrushLimits.from_dict(limits_data) if limits_data else BrushLimits()

        return cls(
            canvas_size=data.get("canvas_size", 1024),
            boundary_threshold=data.get("boundary_threshold", 200),
            overlay_opacity=data.get("overlay_opacity", 0.9),
            default_brush_size=data.get("default_brush_size", 20),
            brush_limits=limits,
            fill_policy=data.get("fill_policy", "block"),
            export_prefix=data.get("export_prefix", "my-doodle"),
            export_format=data.get("export_format", "png"),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str) -> "SessionConfig":
        """Load configuration from YAML file."""
        import yaml

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data.get("session", data))

    @classmethod
    def default(cls) -> "SessionConfig":
        """Create default configuration."""
        return cls()
