"""Personality presets and time-of-day energy/flow recommendations."""

from dataclasses import replace
from datetime import datetime

from focus_planner.core.timeutil import is_time_in_range
from focus_planner.db.models import FlowRecommendation, PersonalityPreset

DEFAULT_PRESET = "steady_pacer"
NEUTRAL_ENERGY = 0.5

PERSONALITY_PRESETS: dict[str, PersonalityPreset] = {
    p.key: p
    for p in (
        PersonalityPreset(
            key="early_bird",
            name="Early Bird",
            description="High energy and focus in the early morning. Deep work 7-11 with minimal interruptions.",
            work_start="07:00",
            work_end="17:00",
            peak_start="07:00",
            peak_end="11:00",
            max_task_switches=2,
            focus_block_duration=180,
            break_duration=15,
            preferred_task_types=("deep_work", "analysis", "planning"),
            energy={"morning": 0.95, "afternoon": 0.65, "evening": 0.40},
            allow_interruptions=False,
            urgent_only=True,
            quiet_start="07:00",
            quiet_end="11:00",
        ),
        PersonalityPreset(
            key="night_owl",
            name="Night Owl",
            description="Peak performance late afternoon and evening. Mornings for lighter tasks and collaboration.",
            work_start="10:00",
            work_end="20:00",
            peak_start="14:00",
            peak_end="19:00",
            max_task_switches=3,
            focus_block_duration=150,
            break_duration=20,
            preferred_task_types=("deep_work", "creative", "problem_solving"),
            energy={"morning": 0.45, "afternoon": 0.75, "evening": 0.90},
            allow_interruptions=False,
            urgent_only=True,
            quiet_start="14:00",
            quiet_end="19:00",
        ),
        PersonalityPreset(
            key="steady_pacer",
            name="Steady Pacer",
            description="Stable energy through the day. Balances deep work with collaboration and admin.",
            work_start="08:00",
            work_end="18:00",
            peak_start="09:00",
            peak_end="16:00",
            max_task_switches=4,
            focus_block_duration=90,
            break_duration=15,
            preferred_task_types=("deep_work", "collaboration", "admin"),
            energy={"morning": 0.75, "afternoon": 0.80, "evening": 0.70},
            allow_interruptions=True,
            urgent_only=False,
            quiet_start="09:00",
            quiet_end="12:00",
        ),
        PersonalityPreset(
            key="sprint_recover",
            name="Sprint & Recover",
            description="Alternates intense focus periods with recovery breaks. Suits deadline-driven project work.",
            work_start="08:00",
            work_end="17:00",
            peak_start="09:00",
            peak_end="12:00",
            max_task_switches=2,
            focus_block_duration=120,
            break_duration=30,
            preferred_task_types=("deep_work", "project_work", "problem_solving"),
            energy={"morning": 0.90, "afternoon": 0.60, "evening": 0.80},
            allow_interruptions=False,
            urgent_only=True,
            quiet_start="09:00",
            quiet_end="12:00",
        ),
        PersonalityPreset(
            key="collaborative",
            name="Team Flow",
            description="Optimized for coordination and communication. Individual work between frequent touchpoints.",
            work_start="08:30",
            work_end="17:30",
            peak_start="10:00",
            peak_end="15:00",
            max_task_switches=5,
            focus_block_duration=60,
            break_duration=10,
            preferred_task_types=("collaboration", "communication", "coordination"),
            energy={"morning": 0.70, "afternoon": 0.85, "evening": 0.65},
            allow_interruptions=True,
            urgent_only=False,
            quiet_start="10:00",
            quiet_end="11:30",
        ),
        PersonalityPreset(
            key="adaptive",
            name="Adaptive",
            description="Adjusts flow to workload and energy. Includes a low-stimulus mode for hard days.",
            work_start="08:00",
            work_end="18:00",
            peak_start="09:00",
            peak_end="15:00",
            max_task_switches=3,
            focus_block_duration=90,
            break_duration=15,
            preferred_task_types=("adaptive", "mixed", "responsive"),
            energy={"morning": 0.75, "afternoon": 0.70, "evening": 0.60},
            allow_interruptions=True,
            urgent_only=False,
            quiet_start="09:00",
            quiet_end="11:00",
        ),
    )
}

SLOT_TASK_TYPES = {
    "peak": ["deep_work", "analysis", "planning"],
    "productive": ["collaboration", "communication", "admin"],
    "low-energy": ["admin", "email", "planning"],
}

SLOT_RECOMMENDATIONS = {
    "peak": "Peak performance time - focus on your most challenging tasks",
    "productive": "Good energy for collaborative work and communication",
    "low-energy": "Lower energy period - handle lighter administrative tasks",
}


def list_presets() -> list[PersonalityPreset]:
    return list(PERSONALITY_PRESETS.values())


def get_preset(key: str) -> PersonalityPreset:
    try:
        return PERSONALITY_PRESETS[key]
    except KeyError:
        raise ValueError(
            f"Unknown preset: {key} (expected one of {', '.join(PERSONALITY_PRESETS)})"
        ) from None


def energy_bucket(hour: int) -> str | None:
    if 6 <= hour < 12:
        return "morning"
    if 12 <= hour < 18:
        return "afternoon"
    if 18 <= hour < 22:
        return "evening"
    return None


def energy_level(preset: PersonalityPreset, at: datetime) -> float:
    bucket = energy_bucket(at.hour)
    if bucket is None:
        return NEUTRAL_ENERGY
    return preset.energy.get(bucket, NEUTRAL_ENERGY)


def flow_recommendation(preset: PersonalityPreset, at: datetime) -> FlowRecommendation:
    """Advisory energy and task-type guidance for the moment ``at``."""
    clock = f"{at.hour:02d}:00"
    in_peak = is_time_in_range(clock, preset.peak_start, preset.peak_end)
    in_quiet = is_time_in_range(clock, preset.quiet_start, preset.quiet_end)
    energy = energy_level(preset, at)

    if in_peak and energy > 0.8:
        slot_type = "peak"
    elif energy > 0.6:
        slot_type = "productive"
    else:
        slot_type = "low-energy"

    should_focus = in_peak or energy > 0.7
    return FlowRecommendation(
        should_focus=should_focus,
        suggested_task_types=list(SLOT_TASK_TYPES[slot_type]),
        allow_interruptions=not in_quiet and (preset.allow_interruptions or not should_focus),
        energy_level=energy,
        time_slot_type=slot_type,
        recommendation=SLOT_RECOMMENDATIONS[slot_type],
    )


def low_stimulus_mode(preset: PersonalityPreset) -> PersonalityPreset:
    """A gentler variant of ``preset`` for hard days."""
    return replace(
        preset,
        key=f"{preset.key}_low_stimulus",
        name=f"{preset.name} (low stimulus)",
        max_task_switches=1,
        focus_block_duration=45,
        break_duration=10,
        preferred_task_types=("simple", "routine", "low_cognitive"),
        allow_interruptions=False,
        urgent_only=True,
        quiet_start="09:00",
        quiet_end="17:00",
    )


def assess_personality_type(
    preferred_start: str,
    productive_hours: list[str],
    switch_tolerance: int,
    collaboration_preference: int,
    energy_fluctuations: str,
) -> str:
    """Pick a preset key from a short self-assessment.

    ``collaboration_preference`` is on a 1-5 scale and ``energy_fluctuations``
    is one of ``high``, ``medium`` or ``low``.
    """
    start_hour = int(preferred_start.split(":")[0])
    hours = [int(h.split(":")[0]) for h in productive_hours] or [start_hour]
    avg_productive = sum(hours) / len(hours)

    if start_hour <= 7 and avg_productive <= 10:
        return "early_bird"
    if start_hour >= 10 and avg_productive >= 14:
        return "night_owl"
    if energy_fluctuations == "high" and switch_tolerance <= 2:
        return "sprint_recover"
    if collaboration_preference >= 4 and switch_tolerance >= 4:
        return "collaborative"
    if energy_fluctuations in ("low", "medium"):
        return "steady_pacer"
    return "adaptive"
