# (c) Copyright Datacraft, 2026
"""Accounts eligible to own passkeys."""
import logging
from dataclasses import dataclass
from typing import Iterable, Protocol

from passkey_server.errors import ConfigurationMissing

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Account:
	"""An identity provisioned outside this service."""
	email: str

	@property
	def display_name(self) -> str:
		return self.email.split("@")[0]


class AccountRegistry(Protocol):
	def get(self, email: str) -> Account | None:
		...

	def default(self) -> Account | None:
		...


class StaticAccountRegistry:
	"""Allow-list of accounts, usually taken from ``PASSKEY_ADMIN_EMAIL_ALLOWLIST``.

	Zero accounts is a valid (if useless) deployment: every ceremony then fails
	with ConfigurationMissing.
	"""

	def __init__(self, emails: Iterable[str] = ()):
		self._accounts: dict[str, Account] = {}
		for email in emails:
			key = email.strip().lower()
			if key and key not in self._accounts:
				self._accounts[key] = Account(email=email.strip())

	def __len__(self) -> int:
		return len(self._accounts)

	def get(self, email: str) -> Account | None:
		return self._accounts.get(email.strip().lower())

	def default(self) -> Account | None:
		return next(iter(self._accounts.values()), None)


def resolve_account(registry: AccountRegistry, email: str | None = None) -> Account:
	"""Pick the account a ceremony runs for.

	Without an email the first configured account is used.
	"""
	account = registry.get(email) if email else registry.default()
	if account is None:
		logger.warning("No passkey account configured for this request")
		raise ConfigurationMissing("no account configured for this deployment")
	return account
