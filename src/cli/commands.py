"""CLI commands implemented with click.

Developer surface over the core: generate and score passwords, and pack or
unpack stored vault values with a session key.
"""
from __future__ import annotations
import click
from config.settings import DEFAULT_LENGTH, MIN_LENGTH, MAX_LENGTH, DECRYPTION_FAILED
from src.lib.generator import PasswordPolicy, InvalidPolicy, generate_password, score_password
from src.lib.crypto import CryptoError
from src.lib.auth import AuthUser, AuthError, VaultSession

def _fail(msg: str):
	click.echo(f'Error: {msg}')
	raise SystemExit(1)

def _open_session(user_id, email, passphrase, salt) -> VaultSession:
	try:
		if passphrase:
			if not salt:
				_fail('--salt is required with --passphrase')
			return VaultSession.with_passphrase(passphrase, salt)
		if user_id and email:
			return VaultSession.for_user(AuthUser(user_id, email))
	except (AuthError, CryptoError) as e:
		_fail(str(e))
	_fail('Provide --user-id and --email, or --passphrase and --salt')

def key_options(f):
	f = click.option('--salt', default=None, help='Salt for the master passphrase.')(f)
	f = click.option('--passphrase', default=None, help='Master passphrase (preferred over identity keys).')(f)
	f = click.option('--email', default=None, help='Account email (legacy identity key).')(f)
	f = click.option('--user-id', default=None, help='Account id (legacy identity key).')(f)
	return f

@click.group()
def cli():
	"""passvault developer CLI"""

@cli.command()
@click.option('--length', type=click.IntRange(MIN_LENGTH, MAX_LENGTH), default=DEFAULT_LENGTH, show_default=True)
@click.option('--no-upper', is_flag=True, help='Exclude uppercase letters.')
@click.option('--no-lower', is_flag=True, help='Exclude lowercase letters.')
@click.option('--no-numbers', is_flag=True, help='Exclude digits.')
@click.option('--no-symbols', is_flag=True, help='Exclude symbols.')
@click.option('--allow-similar', is_flag=True, help='Keep look-alike characters (i l 1 L o 0 O).')
@click.option('--count', type=click.IntRange(1, 100), default=1, show_default=True)
def generate(length, no_upper, no_lower, no_numbers, no_symbols, allow_similar, count):
	"""Generate random passwords."""
	policy = PasswordPolicy(length, not no_upper, not no_lower, not no_numbers, not no_symbols, not allow_similar)
	try:
		for _ in range(count):
			pw = generate_password(policy)
			click.echo(f'{pw}  [{score_password(pw).label}]')
	except InvalidPolicy as e:
		_fail(str(e))

@cli.command()
@click.argument('password')
def strength(password):
	"""Score a password (0-7)."""
	r = score_password(password)
	click.echo(f'Score: {r.score}/7 -> {r.label} ({r.color})')

@cli.command()
@key_options
@click.option('--secret', prompt=True, hide_input=True)
def pack(user_id, email, passphrase, salt, secret):
	"""Encrypt a secret into its stored form."""
	with _open_session(user_id, email, passphrase, salt) as session:
		click.echo(session.pack(secret))

@cli.command()
@click.argument('stored')
@key_options
def unpack(stored, user_id, email, passphrase, salt):
	"""Recover a secret from its stored form."""
	with _open_session(user_id, email, passphrase, salt) as session:
		result = session.unpack(stored)
	if not result.ok:
		click.echo(f'{DECRYPTION_FAILED} ({result.format.value}): {result.error}')
		raise SystemExit(1)
	click.echo(result.value)
