"""Predefined scoring profiles.

Each profile pins one consistent constant set for the scoring engine:
- honest: Canonical set, no amplification, clamp to [12%, 88%]
- decisive: Amplified picks (x1.4), clamp to [15%, 85%]
- classic: Softer ranking curve with head-to-head, clamp to [5%, 95%]
"""

from src.data.models import ScoringConfig


# Honest - canonical constants, used everywhere unless overridden
HONEST = ScoringConfig()


# Decisive - pushes probabilities away from 50% for bolder picks
DECISIVE = ScoringConfig(
    amplification=1.4,
    clamp_low=0.15,
    clamp_high=0.85,
)


# Classic - ranking, surface record and head-to-head only
CLASSIC = ScoringConfig(
    rank_scale=250.0,
    clamp_low=0.05,
    clamp_high=0.95,
    default_weights={
        "ranking": 0.5,
        "surface_context": 0.3,
        "h2h": 0.2,
    },
)


PROFILES: dict[str, ScoringConfig] = {
    "honest": HONEST,
    "decisive": DECISIVE,
    "classic": CLASSIC,
}


PROFILE_DESCRIPTIONS: dict[str, str] = {
    "honest": "Four independent factors, no amplification, clamped to 12-88%",
    "decisive": "Amplified distance from 50% (x1.4), clamped to 15-85%",
    "classic": "Ranking, surface record and head-to-head, clamped to 5-95%",
}


def get_profile(name: str) -> ScoringConfig:
    """
    Get a scoring profile by name.

    Args:
        name: Profile name (honest, decisive, classic)

    Returns:
        ScoringConfig for the profile

    Raises:
        ValueError: If profile name is not recognized
    """
    if name not in PROFILES:
        valid = ", ".join(PROFILES.keys())
        raise ValueError(f"Unknown profile '{name}'. Valid profiles: {valid}")
    return PROFILES[name].model_copy(deep=True)


def list_profiles() -> list[str]:
    """List available profile names."""
    return list(PROFILES.keys())


def get_profile_description(name: str) -> str:
    """Get a one-line description of a profile."""
    return PROFILE_DESCRIPTIONS.get(name, "Unknown profile")
