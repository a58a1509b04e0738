#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
passphrase.py

Memorable passwords made of random dictionary words, e.g. "tanne-kompass".
"""

from __future__ import annotations

import random
import secrets
from typing import Optional, Sequence

from roster_records import DEFAULT_SEPARATOR, ConfigurationError
from wordlist import WORDS


_system_random = secrets.SystemRandom()


def generate_passphrase(
    word_count: int,
    words: Sequence[str] = WORDS,
    separator: str = DEFAULT_SEPARATOR,
    rng: Optional[random.Random] = None,
) -> str:
    """
    Draw word_count words uniformly (with replacement) and join them.
    Words are used as they appear in the corpus, no capitalization.
    """
    if not words:
        raise ConfigurationError("Cannot generate a passphrase from an empty word list")
    if word_count < 1:
        raise ConfigurationError(f"Passphrase word count must be >= 1, got {word_count}")

    chooser = rng if rng is not None else _system_random
    return separator.join(chooser.choice(words) for _ in range(word_count))
