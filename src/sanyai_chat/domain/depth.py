"""Response depth tiers.

A depth is the user-selected verbosity of an answer. Each tier carries the
instruction appended to the prompt; length is steered by that instruction,
not by the completion token ceiling sent to the model.
"""

from dataclasses import dataclass
from typing import Dict, Optional


@dataclass(frozen=True)
class DepthProfile:
    """Instruction and token ceiling for one depth tier."""

    label: str
    instruction: str
    max_tokens: int


DEFAULT_DEPTH = "Short"

# shared by every tier
MAX_TOKENS = 2048

DEPTHS: Dict[str, DepthProfile] = {
    "Concise": DepthProfile(
        label="Concise",
        instruction="IMPORTANT CONSTRAINT: Keep your response extremely concise, approximately 100-150 words.",
        max_tokens=MAX_TOKENS,
    ),
    "Short": DepthProfile(
        label="Short",
        instruction="IMPORTANT CONSTRAINT: Keep your response short and to the point, approximately 200-300 words.",
        max_tokens=MAX_TOKENS,
    ),
    "Medium": DepthProfile(
        label="Medium",
        instruction="IMPORTANT CONSTRAINT: Provide a standard medium-length response, approximately 400-600 words.",
        max_tokens=MAX_TOKENS,
    ),
    "Large": DepthProfile(
        label="Large",
        instruction=(
            "IMPORTANT CONSTRAINT: Provide a very detailed, comprehensive, and in-depth "
            "response, approximately 800-1000 words."
        ),
        max_tokens=MAX_TOKENS,
    ),
}


def resolve_depth(depth: Optional[str]) -> DepthProfile:
    """Return the profile for a depth label, falling back to Short."""
    return DEPTHS.get(depth or DEFAULT_DEPTH, DEPTHS[DEFAULT_DEPTH])
