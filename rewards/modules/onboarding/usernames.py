"""Username and referral code generation for onboarding."""

import random
import re
import secrets
import string
from typing import Iterable, List, Optional, Set

MIN_BASE_LENGTH = 3
MAX_BASE_LENGTH = 20
DEFAULT_BASE = "user"
REFERRAL_CODE_LENGTH = 8
REFERRAL_ALPHABET = string.ascii_uppercase + string.digits

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def derive_base_username(email: Optional[str]) -> str:
    """alice.smith+x@mail.com -> alicesmithx; short or missing -> user"""
    if not email or "@" not in email:
        return DEFAULT_BASE
    local = email.split("@", 1)[0].lower()
    base = _NON_ALNUM.sub("", local)[:MAX_BASE_LENGTH]
    if len(base) < MIN_BASE_LENGTH:
        return DEFAULT_BASE
    return base


def username_candidates(base: str, suffix_attempts: int) -> List[str]:
    """base, base_1, ..., base_N"""
    return [base] + [f"{base}_{i}" for i in range(1, suffix_attempts + 1)]


def pick_username(candidates: Iterable[str], taken: Set[str]) -> Optional[str]:
    for candidate in candidates:
        if candidate not in taken:
            return candidate
    return None


def random_suffix_candidate(base: str, rng: random.Random) -> str:
    return f"{base}_{rng.randint(1000, 9999)}"


def fallback_username(identity_id: str) -> str:
    """Unique by construction: the whole identity id (32 hex digits) is the name."""
    return "u_" + identity_id.replace("-", "").lower()


def generate_referral_code(rng: Optional[random.Random] = None) -> str:
    if rng is not None:
        return "".join(rng.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
    return "".join(secrets.choice(REFERRAL_ALPHABET) for _ in range(REFERRAL_CODE_LENGTH))
