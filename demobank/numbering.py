"""
Account Number Allocation Module

Generates unique typed-prefix account numbers by retrying random candidates
against the account repository until an unused one is found.
"""

import random
from typing import Optional, Union

from .exceptions import AllocationFailedError
from .logging_config import get_logger, log_action
from .values import AccountNumber, AccountType

DEFAULT_MAX_ATTEMPTS = 10
SUFFIX_DIGITS = AccountNumber.LENGTH - 2


class AccountNumberAllocator:
    """
    Allocates account numbers unique within a repository

    The repository only needs an ``account_number_exists(value)`` method.
    """

    def __init__(self, repository, max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                 rng: Optional[random.Random] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.repository = repository
        self.max_attempts = max_attempts
        self._rng = rng or random.SystemRandom()
        self.logger = get_logger("demobank.numbering")

    def generate(self, account_type: AccountType) -> AccountNumber:
        """Random candidate: type prefix followed by 12 digits"""
        suffix = "".join(str(self._rng.randint(0, 9)) for _ in range(SUFFIX_DIGITS))
        return AccountNumber.build(account_type, suffix)

    def allocate(self, account_type: Union[AccountType, str]) -> AccountNumber:
        """
        Generate a number not yet used by any stored account

        Raises:
            AllocationFailedError: No unique number within max_attempts
        """
        account_type = AccountType.parse(account_type)
        for attempt in range(1, self.max_attempts + 1):
            candidate = self.generate(account_type)
            if not self.repository.account_number_exists(candidate.value):
                return candidate
            self.logger.debug(f"Account number collision on attempt {attempt}: {candidate}")

        log_action(
            self.logger, "error", "Account number allocation failed",
            action="allocate_account_number", resource=f"account_type:{account_type.value}",
            extra={"attempts": self.max_attempts},
        )
        raise AllocationFailedError(account_type.value, self.max_attempts)
