"""Random password generation for etcd users.

Passwords generated here are throwaway credentials: tenants and API servers
authenticate with client certificates, so the password only has to exist for
``etcdctl user add`` to succeed. The generator is not meant for long-lived
secrets.
"""

import random
import secrets
import string
from typing import Optional

PASSWORD_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits
PASSWORD_LENGTH = 16


class PasswordGenerator:
    """Generates alphanumeric passwords from a single random source.

    The source is created once and never reseeded. Pass a seeded
    ``random.Random`` to get a reproducible sequence in tests.
    """

    def __init__(
        self, rng: Optional[random.Random] = None, length: int = PASSWORD_LENGTH
    ) -> None:
        if length < 1:
            raise ValueError("Password length must be at least 1")
        self.rng = rng if rng is not None else secrets.SystemRandom()
        self.length = length

    def generate_password(self) -> str:
        """Return ``length`` characters drawn uniformly from ``PASSWORD_ALPHABET``."""
        return "".join(self.rng.choice(PASSWORD_ALPHABET) for _ in range(self.length))


_default_generator = PasswordGenerator()


def default_generator() -> PasswordGenerator:
    return _default_generator


def generate_password() -> str:
    """Generate a 16 character alphanumeric password with the process-wide generator."""
    return _default_generator.generate_password()
