from __future__ import annotations

import math
import random
from collections import Counter
from typing import Iterable

from .state import Role

IMPOSTER_GUESS_POINTS = 10
IMPOSTER_SURVIVAL_POINTS = 5
PLAYER_CATCH_POINTS = 3


def imposter_count(player_count: int) -> int:
    """Roughly one imposter per three players, at least one."""
    return math.ceil(player_count / 3)


def split_roles(player_ids: Iterable[str], rng: random.Random | None = None) -> dict[str, Role]:
    ids = list(player_ids)
    (rng or random).shuffle(ids)
    cutoff = imposter_count(len(ids))
    return {pid: (Role.IMPOSTER if i < cutoff else Role.PLAYER) for i, pid in enumerate(ids)}


def tally_votes(voted_for_ids: Iterable[str]) -> dict[str, int]:
    return dict(Counter(voted_for_ids))


def resolve_tied_votes(counts: dict[str, int], rng: random.Random | None = None) -> str | None:
    """Pick the most voted target; ties are broken uniformly at random."""
    if not counts:
        return None
    top = max(counts.values())
    if top <= 0:
        return None
    tied = sorted(pid for pid, n in counts.items() if n == top)
    if len(tied) == 1:
        return tied[0]
    return (rng or random).choice(tied)


def normalize_word(word: str) -> str:
    return (word or '').strip().lower()


def is_correct_guess(guess: str, secret: str) -> bool:
    g = normalize_word(guess)
    return bool(g) and g == normalize_word(secret)


def round_deltas(
    roles: dict[str, Role],
    eliminated_id: str | None,
    imposter_guessed: bool,
) -> dict[str, int]:
    """Points earned this round by every player holding a role.

    Exactly one rule applies, checked in order: a correct imposter guess,
    no elimination, an imposter eliminated, a player eliminated.
    """
    deltas = {pid: 0 for pid in roles}
    imposters = [pid for pid, role in roles.items() if role == Role.IMPOSTER]

    if imposter_guessed:
        for pid in imposters:
            deltas[pid] += IMPOSTER_GUESS_POINTS
    elif eliminated_id is None:
        for pid in imposters:
            deltas[pid] += IMPOSTER_SURVIVAL_POINTS
    elif roles.get(eliminated_id) == Role.IMPOSTER:
        for pid, role in roles.items():
            if role == Role.PLAYER and pid != eliminated_id:
                deltas[pid] += PLAYER_CATCH_POINTS
    return deltas


def remaining_imposters(roles: dict[str, Role], eliminated: Iterable[str]) -> set[str]:
    out = set(eliminated)
    return {pid for pid, role in roles.items() if role == Role.IMPOSTER and pid not in out}


def players_won(roles: dict[str, Role], eliminated: Iterable[str]) -> bool:
    return bool(roles) and not remaining_imposters(roles, eliminated)


def rank_totals(totals: dict[str, int], names: dict[str, str]) -> list[dict]:
    """Build the ``game_over`` score list, highest total first.

    Anyone listed in ``names`` appears even without score rows.
    """
    ids = set(totals) | set(names)
    ranked = [
        {'playerId': pid, 'name': names.get(pid, 'Unknown'), 'totalPoints': int(totals.get(pid, 0))}
        for pid in ids
    ]
    ranked.sort(key=lambda s: (-s['totalPoints'], s['name'], s['playerId']))
    return ranked


def final_winner(ranked: list[dict]) -> str:
    if ranked and ranked[0]['totalPoints'] > 0:
        return 'Players'
    return 'Draw'
