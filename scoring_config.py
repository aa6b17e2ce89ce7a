"""
Pitch condition model configuration for PitchCheck.

Owns every numeric constant that affects the wetness and muddiness scores
and the labels they map to.  Search parameters and provider settings live
with their clients.

Frozen dataclasses provide type checking and IDE support without
the indirection of YAML/JSON config files.
"""

from dataclasses import dataclass
from typing import Tuple


# =============================================================================
# Dataclasses
# =============================================================================

@dataclass(frozen=True)
class WetnessWeights:
    """Points each wetness factor contributes at full strength (sum 100)."""
    current_rain: float = 40
    recent_rain: float = 35
    humidity: float = 15
    drying: float = 10
    recent_rain_full_mm: float = 15   # rain over two days that maxes the factor
    drying_window_hours: float = 12   # hours after rain until the factor hits 0


@dataclass(frozen=True)
class MuddinessWeights:
    """Points each muddiness factor contributes at full strength (sum 100)."""
    rainfall: float = 45
    sustained_rain: float = 25
    cold: float = 15
    humidity: float = 15
    rainfall_full_mm: float = 20
    cold_reference_c: float = 15      # mean temp at/above which cold adds 0


@dataclass(frozen=True)
class LabelBand:
    """Scores strictly below `upper` get `label`."""
    upper: int
    label: str


@dataclass(frozen=True)
class ColorBand:
    """Maps scores strictly below `upper` to a 3-tier display class."""
    upper: int
    band: str


@dataclass(frozen=True)
class ConditionModel:
    """Top-level container for all condition parameters.

    A single module-level instance (CONDITION_MODEL) is the source of truth.
    Bump `version` on every change that alters score outputs.
    """
    version: str
    wetness: WetnessWeights
    muddiness: MuddinessWeights
    humidity_baseline_pct: float      # humidity at/below which humidity adds 0
    default_humidity_pct: float       # used when the provider omits humidity
    default_temp_c: float             # used for missing hourly temperatures
    default_total_hours: int          # denominator when there is no history
    wetness_labels: Tuple[LabelBand, ...]
    muddiness_labels: Tuple[LabelBand, ...]
    top_wetness_label: str
    top_muddiness_label: str
    color_bands: Tuple[ColorBand, ...]
    top_color_band: str


# =============================================================================
# Pure helpers
# =============================================================================

def clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's round() is round-half-to-even (round(62.5) -> 62); scores use
    the familiar half-up rule instead.
    """
    return int(value + 0.5)


# =============================================================================
# CONDITION_MODEL — current production values
# =============================================================================

CONDITION_MODEL = ConditionModel(
    version="1.0.0",

    wetness=WetnessWeights(),
    muddiness=MuddinessWeights(),

    humidity_baseline_pct=50,
    default_humidity_pct=50,
    default_temp_c=15,
    default_total_hours=48,

    wetness_labels=(
        LabelBand(15, "Bone Dry"),
        LabelBand(30, "Probably Fine"),
        LabelBand(50, "Possibly Damp"),
        LabelBand(70, "Likely Wet"),
    ),
    top_wetness_label="Definitely Wet",

    muddiness_labels=(
        LabelBand(15, "Firm Ground"),
        LabelBand(30, "Probably Fine"),
        LabelBand(50, "Possibly Muddy"),
        LabelBand(70, "Likely Muddy"),
    ),
    top_muddiness_label="Definitely Muddy",

    color_bands=(
        ColorBand(30, "good"),
        ColorBand(60, "moderate"),
    ),
    top_color_band="poor",
)
