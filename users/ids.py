# users/ids.py
"""
Human-facing participant ids.

Each registration gets a three word id such as ``rust-cobol-elm``. The id is
a pure function of the registration sequence number and the configured seed,
so the same (seed, count) pair always produces the same id.

The three indices come from ``count * MULTIPLIER % PERIOD``. MULTIPLIER and
PERIOD share no common factors, so ids only start repeating after PERIOD
registrations: ``generate_id(n) == generate_id(n + PERIOD)``.
"""
import random
from functools import lru_cache

from django.conf import settings

from .wordlist import PROGRAMMING_LANGUAGES

MULTIPLIER = 85766121  # 7^6 * 3^6
PERIOD = 1000000


@lru_cache(maxsize=8)
def shuffled_words(seed: str) -> tuple:
    words = list(PROGRAMMING_LANGUAGES)
    random.Random(seed).shuffle(words)
    return tuple(words)


def generate_id(count: int, seed: str = None) -> str:
    if seed is None:
        seed = settings.PARTICIPANT_ID_SEED
    words = shuffled_words(seed)
    num = count * MULTIPLIER % PERIOD
    return "-".join((
        words[num // 10000 % 100],
        words[num // 100 % 100],
        words[num % 100],
    ))


def next_participant_id() -> str:
    """
    Id for the next registration, based on the current user count.

    Bumps the count while the generated id is already taken (e.g. after a
    deleted row or two registrations racing for the same count).
    """
    from django.contrib.auth import get_user_model

    User = get_user_model()
    count = User.objects.count()
    candidate = generate_id(count)
    while User.objects.filter(participant_id=candidate).exists():
        count += 1
        candidate = generate_id(count)
    return candidate
