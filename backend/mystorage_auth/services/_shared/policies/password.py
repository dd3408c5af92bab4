"""Password strength policy shared by registration, reset and change flows."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PasswordPolicy:
    """
    Minimum requirements a new password must satisfy.

    :param min_length: Minimum number of characters.
    :type min_length: int
    :param require_digit: Require at least one ``0-9``.
    :type require_digit: bool
    :param require_lower: Require at least one lowercase letter.
    :type require_lower: bool
    :param require_upper: Require at least one uppercase letter.
    :type require_upper: bool
    :param require_symbol: Require at least one non-alphanumeric character.
    :type require_symbol: bool
    """

    min_length: int = 8
    require_digit: bool = True
    require_lower: bool = True
    require_upper: bool = True
    require_symbol: bool = True

    def violations(self, password: str) -> list[str]:
        """
        Return one client-safe message per unmet requirement.

        :param password: Candidate password.
        :type password: str
        :returns: Empty list when the password is acceptable.
        :rtype: list[str]
        """
        problems: list[str] = []
        if len(password) < self.min_length:
            problems.append(f"Password must be at least {self.min_length} characters long.")
        if self.require_digit and not any(c.isdigit() for c in password):
            problems.append("Password must contain at least one digit.")
        if self.require_lower and not any(c.islower() for c in password):
            problems.append("Password must contain at least one lowercase letter.")
        if self.require_upper and not any(c.isupper() for c in password):
            problems.append("Password must contain at least one uppercase letter.")
        if self.require_symbol and all(c.isalnum() for c in password):
            problems.append("Password must contain at least one non-alphanumeric character.")
        return problems
