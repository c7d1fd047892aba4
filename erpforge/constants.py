"""Shared constants for ERPForge.

Timing windows, deterministic seeds, dropdown options and the preset /
variable templates offered by the dashboard live here so that the core,
the reference engine and the GUI adapter agree on them.
"""

from __future__ import annotations

from typing import Dict, List, Tuple

# Trigger timing (seconds)
SLIDER_THROTTLE_S = 0.1
SIMULATION_DEBOUNCE_S = 0.5

# Simulation
SIMULATION_SEED = 42
SAMPLING_RATE_HZ = 100.0
REFERENCE_CHANNEL = "AF3"
MAX_TABS = 10

# Model categories
LINEAR_MODEL = "Linear Model"
MIXED_MODEL = "Mixed Model"
MULTICHANNEL_MODEL = "Multi-channel Model"
MODEL_CATEGORIES: Tuple[str, ...] = (LINEAR_MODEL, MIXED_MODEL, MULTICHANNEL_MODEL)

# Design categories
SINGLE_SUBJECT_DESIGN = "Single-subject design"
REPEAT_DESIGN = "Repeat design"
MULTI_SUBJECT_DESIGN = "Multi-subject design"
DESIGN_CATEGORIES: Tuple[str, ...] = (
    SINGLE_SUBJECT_DESIGN,
    REPEAT_DESIGN,
    MULTI_SUBJECT_DESIGN,
)

CONTRAST_TYPES: Tuple[str, ...] = ("DummyCoding", "EffectsCoding")
ONSET_CHOICES: Tuple[str, ...] = ("Uniform", "Log Normal", "No Onset")
NOISE_CHOICES: Tuple[str, ...] = ("No Noise", "White", "Pink", "Red")

# Tab defaults
DEFAULT_MODEL_CATEGORY = LINEAR_MODEL
DEFAULT_CONTRAST_TYPE = "DummyCoding"
DEFAULT_FORMULA = "@formula(0 ~ 1 + condition)"
DEFAULT_PROJECTION = "[1.0, 0.5, -0.2]"
DEFAULT_CONTRAST = 50
DEFAULT_SIGMA = 20

MIXED_MODEL_FORMULA = "0 ~ 1 + condition + (1 + condition | subject)"
MULTICHANNEL_FORMULA = "0 ~ 1"
MULTICHANNEL_SOURCES: Tuple[str, ...] = (
    "Left Postcentral Gyrus",
    "Right Occipital Pole",
)

VALIDATION_BLOCKED_MESSAGE = (
    "Simulation Blocked: Mixed Model requires a Multi-subject design."
)

# name -> (beta slider value, basis text)
PRESET_DEFAULTS: Dict[str, Tuple[int, str]] = {
    "Custom": (50, "hanning(40, 0, 100)"),
    "N170 (Negative)": (40, "-hanning(20, 15, 100)"),
    "N400 (Negative)": (35, "-hanning(50, 35, 100)"),
    "P100 (Positive)": (60, "hanning(15, 8, 100)"),
    "P300 (Positive)": (65, "hanning(40, 25, 100)"),
}
DEFAULT_PRESET = "Custom"

# Global control defaults (slider positions unless noted)
GLOBAL_DEFAULTS: Dict[str, object] = {
    "design_category": SINGLE_SUBJECT_DESIGN,
    "onset_choice": "Uniform",
    "noise_choice": "No Noise",
    "n_subjects": 10,
    "n_items": 20,
    "onset_mu": 17,
    "onset_sigma": 44,
    "onset_offset": 10,
    "truncate_lower": 0,
    "truncate_upper": 44,
    "uniform_width": 21,
    "uniform_offset": 10,
    "noise_level": 15,
}

# Event variable templates
CATEGORICAL_TEMPLATES: Dict[str, List[str]] = {
    "condition": ["A", "B"],
    "stimulus_type": ["face", "car", "house"],
    "task": ["visual", "auditory", "tactile"],
    "emotion": ["happy", "sad", "neutral", "angry"],
    "color": ["red", "green", "blue"],
}
# name -> (min, max, steps)
CONTINUOUS_TEMPLATES: Dict[str, Tuple[float, float, int]] = {
    "intensity": (0.0, 10.0, 5),
    "contrast": (0.0, 1.0, 10),
    "duration": (100.0, 500.0, 5),
    "frequency": (1.0, 20.0, 10),
}
DEFAULT_CATEGORICAL: Dict[str, List[str]] = {"condition": ["A", "B"]}

# Status strings
STATUS_READY = "Ready"
STATUS_RUNNING = "Running..."
STATUS_DONE = "Done"
STATUS_INVALID = "ERROR: Invalid Combination"
