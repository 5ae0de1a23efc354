"""
Generation Module
Prompting, decoding and validation of generated questions
"""
from .client import GenerationClient, question_text
from .decoder import extract_json_object
from .prompts import render_prompt, render_calibration_prompt, DIFFICULTY_DESC
from .validator import validate_candidate, normalize_difficulty, strip_option_label

__all__ = [
    "GenerationClient",
    "question_text",
    "extract_json_object",
    "render_prompt",
    "render_calibration_prompt",
    "DIFFICULTY_DESC",
    "validate_candidate",
    "normalize_difficulty",
    "strip_option_label",
]
