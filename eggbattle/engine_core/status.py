"""
Status Model - Egg debuff lifecycle.

An egg is applied, optionally cured, ticked once per round, and explodes
when its timer drops below zero. Deciding whether several simultaneous
eggs stack or kill is the resolver's job, not this module's.
"""

from __future__ import annotations

from .state import DEFAULT_CONFIG, EggEffect, GameConfig, Participant


def apply_egg(
    participant: Participant,
    reflected: bool = False,
    config: GameConfig = DEFAULT_CONFIG,
) -> EggEffect:
    """Attach a fresh egg to the participant."""
    egg = EggEffect(turns_remaining=config.egg_timer, reflected=reflected)
    participant.status_effects.append(egg)
    return egg


def is_fresh(egg: EggEffect, config: GameConfig = DEFAULT_CONFIG) -> bool:
    """An egg still at its initial timer was applied this round."""
    return egg.turns_remaining >= config.egg_timer


def is_curable(egg: EggEffect, curable_only: bool = True, config: GameConfig = DEFAULT_CONFIG) -> bool:
    if curable_only and egg.reflected:
        return False
    return not is_fresh(egg, config)


def try_cure(
    participant: Participant,
    curable_only: bool = True,
    config: GameConfig = DEFAULT_CONFIG,
) -> bool:
    """
    Remove every curable egg.

    Reflected eggs survive when curable_only is set; eggs applied this
    round always survive. Returns whether anything was removed.
    """
    kept = [e for e in participant.status_effects if not is_curable(e, curable_only, config)]
    if len(kept) == len(participant.status_effects):
        return False
    participant.status_effects = kept
    return True


def has_exploded(participant: Participant) -> bool:
    return any(e.turns_remaining < 0 for e in participant.status_effects)


def tick_eggs(participant: Participant) -> bool:
    """
    Advance every egg timer by one round.

    Returns True if an egg exploded; the participant is then dead with
    health forced to 0.
    """
    if not participant.status_effects:
        return False

    for egg in participant.status_effects:
        egg.turns_remaining -= 1

    exploded = has_exploded(participant)
    if exploded:
        participant.health = 0
        participant.alive = False
    return exploded
