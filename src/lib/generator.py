"""Password generation and strength scoring.

Characters are drawn independently from the effective character set with
`secrets`, so a generated password is not guaranteed to contain every
selected class. That is intentional: coverage rules shrink the key space
and the strength score already reports missing classes.
"""
from __future__ import annotations
import logging, re, secrets
from dataclasses import dataclass
from config.settings import (
	UPPERCASE, LOWERCASE, NUMBERS, SYMBOLS, SIMILAR_CHARS, DEFAULT_LENGTH
)

log = logging.getLogger(__name__)

class InvalidPolicy(ValueError):
	pass

@dataclass(frozen=True)
class PasswordPolicy:
	length: int = DEFAULT_LENGTH
	include_uppercase: bool = True
	include_lowercase: bool = True
	include_numbers: bool = True
	include_symbols: bool = True
	exclude_similar: bool = True

	def charset(self) -> str:
		"""Return the effective character set (selected classes minus similar chars)."""
		chars = ''
		if self.include_uppercase: chars += UPPERCASE
		if self.include_lowercase: chars += LOWERCASE
		if self.include_numbers: chars += NUMBERS
		if self.include_symbols: chars += SYMBOLS
		if self.exclude_similar:
			chars = ''.join(c for c in chars if c not in SIMILAR_CHARS)
		return chars

def generate_password(policy: PasswordPolicy) -> str:
	if isinstance(policy.length, bool) or not isinstance(policy.length, int) or policy.length < 1:
		raise InvalidPolicy(f'Length must be a positive integer, got {policy.length!r}')
	charset = policy.charset()
	if not charset:
		raise InvalidPolicy('At least one character type must be selected')
	log.debug('Generating password of length %d from %d characters', policy.length, len(charset))
	return ''.join(secrets.choice(charset) for _ in range(policy.length))


@dataclass(frozen=True)
class StrengthReport:
	score: int
	label: str
	color: str

# (max score, label, color) checked in order
_LEVELS = (
	(2, 'Weak', 'red'),
	(4, 'Fair', 'yellow'),
	(6, 'Good', 'blue'),
	(7, 'Strong', 'green'),
)

_CLASSES = (re.compile(r'[a-z]'), re.compile(r'[A-Z]'), re.compile(r'[0-9]'), re.compile(r'[^A-Za-z0-9]'))

def score_password(password: str) -> StrengthReport:
	"""Rate a password from 0 to 7.

	One point per length threshold met (8, 12, 16) and one point per
	character class present (lowercase, uppercase, digit, other).
	"""
	score = sum(len(password) >= n for n in (8, 12, 16))
	score += sum(1 for rx in _CLASSES if rx.search(password))
	for top, label, color in _LEVELS:
		if score <= top:
			return StrengthReport(score, label, color)
	raise AssertionError(f'score out of range: {score}')  # pragma: no cover
