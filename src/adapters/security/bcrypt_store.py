"""
bcrypt credential store - Implements CredentialStore protocol.

Raw credentials are encoded with bcrypt and never stored or logged.
Verification relies on bcrypt.checkpw(), which is constant-time.
"""

import bcrypt

MIN_COST = 10


class BcryptCredentialStore:
    """
    Implements CredentialStore protocol via bcrypt.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, cost: int = MIN_COST) -> None:
        """
        Args:
            cost: bcrypt work factor, raised to 10 if lower
        """
        self._cost = max(cost, MIN_COST)

    def encode(self, raw: str) -> str:
        return bcrypt.hashpw(raw.encode(), bcrypt.gensalt(rounds=self._cost)).decode()

    def matches(self, raw: str, encoded: str) -> bool:
        try:
            return bcrypt.checkpw(raw.encode(), encoded.encode())
        except ValueError:
            # Stored value is not a bcrypt hash
            return False
