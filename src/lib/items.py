"""Vault item helpers around the storage collaborator.

Storage only ever sees the packed `password` string; everything else on an
item is stored as-is.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from .auth import VaultSession
from .codec import StorageFormat

log = logging.getLogger(__name__)

class ItemError(Exception): ...

@dataclass
class VaultItem:
	id: str
	title: str
	username: str
	password: str
	url: str = ''
	notes: str = ''
	tags: List[str] = field(default_factory=list)
	created: str = ''
	updated: str = ''
	# Set when the stored password could not be recovered
	unreadable: bool = False
	stored_format: Optional[StorageFormat] = None

	def matches(self, term: str) -> bool:
		term = term.lower()
		return any(term in (f or '').lower() for f in (self.title, self.username, self.url, self.notes))

	def to_dict(self) -> Dict[str, Any]:
		d = asdict(self)
		d['stored_format'] = self.stored_format.value if self.stored_format else None
		return d


class ItemManager:
	def __init__(self, session: VaultSession):
		self.session = session

	def build_payload(self, title: str, username: str, password: str, url: str = '', notes: str = '',
					  tags: List[str] | None = None, item_id: str | None = None) -> Dict[str, Any]:
		"""Validate an item and encrypt its password for the storage layer."""
		missing = [n for n, v in (('title', title), ('username', username), ('password', password)) if not v]
		if missing:
			raise ItemError(f"Missing required fields: {', '.join(missing)}")
		payload = {
			'title': title,
			'username': username,
			'password': self.session.pack(password),
			'url': url or '',
			'notes': notes or '',
			'tags': list(tags or []),
		}
		if item_id is not None:
			payload['_id'] = item_id
		return payload

	def open_item(self, raw: Dict[str, Any]) -> VaultItem:
		try:
			item_id = str(raw['_id']); title = raw['title']; username = raw['username']
		except KeyError as e:
			raise ItemError(f'Stored item missing field: {e.args[0]}') from e
		result = self.session.unpack(raw.get('password') or '')
		if not result.ok:
			log.warning('Item %s has an unreadable password (%s)', item_id, result.format.value)
		return VaultItem(
			id=item_id, title=title, username=username, password=result.value,
			url=raw.get('url') or '', notes=raw.get('notes') or '', tags=list(raw.get('tags') or []),
			created=_stamp(raw.get('createdAt')), updated=_stamp(raw.get('updatedAt')),
			unreadable=not result.ok, stored_format=result.format,
		)

	def open_items(self, raw_items: Iterable[Dict[str, Any]]) -> List[VaultItem]:
		"""Decrypt fetched items, newest first."""
		items = [self.open_item(r) for r in raw_items]
		return sorted(items, key=lambda i: i.updated, reverse=True)


def filter_items(items: Iterable[VaultItem], term: str) -> List[VaultItem]:
	if not term:
		return list(items)
	return [i for i in items if i.matches(term)]

def _stamp(value: Any) -> str:
	if isinstance(value, datetime):
		return value.isoformat()
	return str(value) if value else ''
