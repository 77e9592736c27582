"""
Round Resolution

Turns the two intents chosen in a round into damage. Gamble is settled
first by a 1..100 draw; only Attack and Defend ever reach the damage table.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple
import logging
import random

from .symbols import Intent

logger = logging.getLogger(__name__)

GAMBLE_THRESHOLD = 90  # A draw above this wins the gamble

# (intent of side 0, intent of side 1) -> (base damage to side 0, to side 1)
DAMAGE_TABLE: Dict[Tuple[Intent, Intent], Tuple[int, int]] = {
    (Intent.ATTACK, Intent.ATTACK): (5, 5),
    (Intent.DEFEND, Intent.ATTACK): (1, 0),
    (Intent.ATTACK, Intent.DEFEND): (0, 1),
    (Intent.DEFEND, Intent.DEFEND): (0, 0),
}


@dataclass
class Combatant:
    """The mutable part of a side that resolution touches."""
    name: str
    health: int
    strength: int = 1


@dataclass
class RoundOutcome:
    """What happened when a round was resolved."""
    chosen: Tuple[Intent, Intent]
    resolved: Tuple[Intent, Intent]
    gamble_won: Tuple[bool, bool]
    damage: Tuple[int, int]


def resolve_gamble(
    intent: Intent,
    rng: Optional[random.Random] = None,
    threshold: int = GAMBLE_THRESHOLD,
) -> Tuple[Intent, bool]:
    """
    Settle a Gamble.

    Returns:
        Tuple of (Attack or Defend, whether the gamble was won). Non-gamble
        intents are returned unchanged with False.
    """
    if intent != Intent.GAMBLE:
        return intent, False

    rng = rng or random
    won = rng.randint(1, 100) > threshold
    return (Intent.ATTACK if won else Intent.DEFEND), won


def lookup_damage(intent_a: Intent, intent_b: Intent) -> Tuple[int, int]:
    """Base damage taken by each side; Gamble must already be resolved."""
    try:
        return DAMAGE_TABLE[(intent_a, intent_b)]
    except KeyError:
        raise ValueError(f"unresolved intents {intent_a.name}/{intent_b.name}")


def resolve_round(
    fighters: Tuple[Combatant, Combatant],
    intents: Tuple[Intent, Intent],
    rng: Optional[random.Random] = None,
    threshold: int = GAMBLE_THRESHOLD,
) -> RoundOutcome:
    """
    Resolve one round, mutating both fighters' health and strength.

    A won gamble raises that side's strength before damage is computed, so
    the win already counts this round. Each side's damage is the table's
    base damage times the opponent's strength; health is floored at 0.
    """
    a, b = fighters
    resolved = []
    won = []

    for fighter, intent in zip(fighters, intents):
        final, gamble_won = resolve_gamble(Intent(intent), rng, threshold)
        if gamble_won:
            fighter.strength += 1
            logger.info("%s wins the gamble, strength is now %d.", fighter.name, fighter.strength)
        resolved.append(final)
        won.append(gamble_won)

    base_a, base_b = lookup_damage(resolved[0], resolved[1])
    damage_a = base_a * b.strength
    damage_b = base_b * a.strength

    a.health = max(0, a.health - damage_a)
    b.health = max(0, b.health - damage_b)
    logger.info("%s takes %d damage.", a.name, damage_a)
    logger.info("%s takes %d damage.", b.name, damage_b)

    return RoundOutcome(
        chosen=(Intent(intents[0]), Intent(intents[1])),
        resolved=(resolved[0], resolved[1]),
        gamble_won=(won[0], won[1]),
        damage=(damage_a, damage_b),
    )
