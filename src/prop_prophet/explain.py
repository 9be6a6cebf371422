"""Human-readable rationale for published picks."""

from __future__ import annotations

from dataclasses import replace

from prop_prophet.candidates import Candidate
from prop_prophet.gates import PublishedPick
from prop_prophet.scoring import ScoreResult
from prop_prophet.stats import STAT_TABLE, StatCategory

_MODIFIER_TAGS = {
    "rest0": "NO REST",
    "back_to_back": "B2B",
    "pace_high": "HIGH TOTAL",
    "pace_low": "LOW TOTAL",
    "blowout": "BLOWOUT WARNING",
    "blowout_vet": "VET SITS",
    "hot": "HOT",
    "cold": "COLD",
    "value_plus": "VAL+",
    "value_minus": "VAL-",
    "steady": "STEADY",
    "volatile": "VOLATILE",
    "sharp": "SHARP",
    "safe_floor": "SAFE FLOOR",
    "capped_ceiling": "CAPPED",
}


def matchup_rating(ease_value: float, side: str) -> str:
    """ELITE / GREAT / GOOD / NEUTRAL / BAD / TOUGH from the bettor's point of view."""
    signed = ease_value if side == "OVER" else -ease_value
    if signed >= 0.50:
        return "ELITE"
    if signed >= 0.25:
        return "GREAT"
    if signed >= 0.10:
        return "GOOD"
    if signed <= -0.30:
        return "TOUGH"
    if signed <= -0.10:
        return "BAD"
    return "NEUTRAL"


def interpret(ease_value: float, stat: StatCategory, side: str) -> str:
    if stat is StatCategory.TURNOVERS:
        if side == "UNDER":
            if ease_value < 0:
                return "Opponent forces fewer TOs (ease negative), confirms Under."
            return "Opponent pressure neutral/high, risky Under."
        if ease_value > 0:
            return "Opponent forces TOs (ease positive), supports Over."
        return "Opponent passive, Over needs a strong edge."
    if side == "OVER":
        if ease_value > 0.10:
            return "Positive ease, environment supports stat accumulation."
        if ease_value < -0.10:
            return "Negative ease, contradicts Over (check usage)."
        return "Neutral ease, edge drives the bet."
    if ease_value < -0.10:
        return "Negative ease, environment suppresses stat (confirms Under)."
    if ease_value > 0.10:
        return "Positive ease, contradicts Under."
    return "Neutral ease, edge drives the bet."


def rationale_lines(candidate: Candidate, result: ScoreResult, pick: PublishedPick) -> list[str]:
    player = candidate.player
    label = STAT_TABLE[candidate.stat].label
    ease_value = result.ease.blended
    lines: list[str] = []

    if candidate.weighted_edge > 8.0:
        lines.append(
            f"Massive discrepancy: model prices this at {candidate.projection:.1f}, "
            f"a {candidate.edge:.2f} unit cushion vs the market."
        )
    elif candidate.weighted_edge > 5.0:
        lines.append(f"Value play: {candidate.edge:.2f} points of implied value.")
    else:
        lines.append(f"Solid edge: {candidate.edge:.2f} point gap vs the market line.")

    val_5 = player.val_5
    if val_5 is not None and val_5 >= 1.0:
        lines.append(f"Current form: running hot recently (val {val_5:g}).")
    elif val_5 is not None and val_5 <= -1.0 and candidate.side == "UNDER":
        lines.append("Fade mode: slumping and failing to clear this line.")
    elif player.pc is not None and player.pc > 65:
        lines.append(f"Consistency: hits this metric at a {player.pc:g}% clip.")

    if ease_value >= 0.20:
        lines.append(
            f"Smash spot: {player.opponent} is giving up {label} to this position "
            f"(ease +{ease_value:.2f})."
        )
    elif ease_value <= -0.20 and candidate.side == "UNDER":
        lines.append(f"Defensive clamp: {player.opponent} suppresses {label}.")
    elif abs(ease_value) < 0.10:
        lines.append(
            f"Neutral spot: matchup is average, the projection ({candidate.projection:.1f}) "
            "carries the play."
        )

    if result.l5 is not None and result.l5.valid:
        lines.append(f"Last five: {result.l5.hits}/{result.l5.valid} over this line's side.")
    if player.josh is not None and player.josh > 1.0 and candidate.side == "OVER":
        lines.append("Sharp action: secondary signal backs the Over.")
    spread = candidate.spread
    if spread is not None and abs(spread) >= 10:
        lines.append(f"Game script: {spread:g} pt spread implies blowout risk.")
    if player.back_to_back:
        lines.append("Back-to-back: fatigue penalty applied.")
    last_minutes = player.last_minutes
    if last_minutes is not None and last_minutes > 0 and abs(player.minutes - last_minutes) >= 5:
        lines.append(f"Last game minutes: {last_minutes:g} vs {player.minutes:g} projected.")
    if "minutes" in pick.gates or "rookie" in pick.gates:
        lines.append("Minute restrictions: volatile role or rookie status, capped at strong play.")
    if "contradiction" in pick.gates:
        lines.append("Fights the matchup trend: held out of the lock tier.")
    if "thin_sample" in pick.gates:
        lines.append("Thin recent sample (1/5): held out of the lock tier.")
    return lines


def interpretation(candidate: Candidate, result: ScoreResult) -> str:
    ease_value = result.ease.blended
    tags = "".join(f" [{_MODIFIER_TAGS[name]}]" for name, _ in result.modifiers)
    if result.contradicted:
        tags += " [CONTRADICTS]"
    return (
        f"Matchup: [{matchup_rating(ease_value, candidate.side)}] "
        f"{interpret(ease_value, candidate.stat, candidate.side)} | "
        f"PosEase: {result.ease.positional:.2f} / TeamEase: {result.ease.team:.2f}{tags}"
    )


def explain(candidate: Candidate, result: ScoreResult, pick: PublishedPick) -> PublishedPick:
    """Return a copy of ``pick`` carrying rationale and interpretation text."""
    return replace(
        pick,
        rationale=tuple(rationale_lines(candidate, result, pick)),
        interpretation=interpretation(candidate, result),
    )
