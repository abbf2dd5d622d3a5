# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Callable, Iterator

from .errors import SyncError, UnreadableFileError
from .fingerprint import ContentComparator, Fingerprint
from .fs import FileSystemProvider, Kind
from .log import logger
from .operations import Action, ActionKind, CopyFile, CopyReason, CreateDirectory, Skip
from .paths import relativize, rebase

# Called as on_error(kind, relpath, exc) for failures that happen before an action exists.
ErrorCallback = Callable[[ActionKind, PurePath, Exception], None]

@dataclass
class Entry:
	'''A file or directory met during a walk. Clearing `descend` on a directory keeps the walk out of it.'''

	path    : PurePath
	relpath : PurePath
	kind    : Kind
	descend : bool = field(default=True, repr=False)

	_fingerprint : Fingerprint|None = field(default=None, init=False, repr=False, compare=False)

	def fingerprint(self, comparator:ContentComparator) -> Fingerprint:
		if self.kind is not Kind.FILE:
			raise TypeError(f"Only files have fingerprints: {self.path}")
		if self._fingerprint is None:
			self._fingerprint = comparator.fingerprint(self.path)
		return self._fingerprint

def walk(
		fs       : FileSystemProvider,
		root     : PurePath,
		*,
		on_error : Callable[[PurePath, Exception], None]|None = None,
	) -> Iterator[Entry]:
	'''
	Yields an `Entry` for every file and directory under `root` (but not `root` itself). A directory is always yielded before anything inside it, and the children of one directory come out sorted by name.

	A directory is listed only after its own entry has been handled by the consumer, so the consumer may set `entry.descend = False` to prune it.

	If listing a directory fails, `on_error(relpath, exc)` is called and the walk moves on. Without `on_error` the error is raised.
	'''

	pending : list[Entry] = [Entry(root, PurePath("."), Kind.DIR)]
	while pending:
		dir = pending.pop()
		logger.debug(f"scanning: {dir.path}")
		try:
			children = sorted(fs.listdir(dir.path), key=lambda child: child.name)
		except OSError as e:
			if on_error is None:
				raise
			on_error(dir.relpath, e)
			continue

		subdirs = []
		for name, kind in children:
			path = dir.path / name
			try:
				entry = Entry(path, relativize(root, path), kind)
			except SyncError as e:
				if on_error is None:
					raise
				on_error(dir.relpath / name, e)
				continue
			yield entry
			if entry.kind is Kind.DIR and entry.descend:
				subdirs.append(entry)
		pending.extend(reversed(subdirs))

class TreeReconciler:
	'''
	The forward pass: walks the source tree and decides, per entry, what the replica needs. Decisions are yielded one at a time by `actions()`; nothing here changes the file system.
	'''

	def __init__(
			self,
			source     : PurePath,
			replica    : PurePath,
			fs         : FileSystemProvider,
			comparator : ContentComparator,
			*,
			on_error   : ErrorCallback,
		):
		self.source     = source
		self.replica    = replica
		self.fs         = fs
		self.comparator = comparator
		self.on_error   = on_error

	def actions(self) -> Iterator[Action]:
		for entry in walk(self.fs, self.source, on_error=self._scan_error):
			try:
				action = self.decide(entry)
			except UnreadableFileError as e:
				self.on_error(ActionKind.COMPARE, entry.relpath, e)
				continue
			except (SyncError, OSError) as e:
				self.on_error(ActionKind.SCAN, entry.relpath, e)
				continue
			if action is not None:
				yield action

	def decide(self, entry:Entry) -> Action|None:
		'''The action that makes the replica match source `entry`, or `None` for a directory that already exists.'''

		replica_path = rebase(entry.relpath, self.replica)

		if entry.kind is Kind.DIR:
			if self.fs.exists(replica_path, Kind.DIR):
				return None
			if self.fs.exists(replica_path, Kind.FILE):
				logger.warning(f"Replica has a file where source has a directory, not replacing it: {entry.relpath}")
			return CreateDirectory(replica_path, entry.relpath)

		if not self.fs.exists(replica_path, Kind.FILE):
			if self.fs.exists(replica_path, Kind.DIR):
				logger.warning(f"Replica has a directory where source has a file, not replacing it: {entry.relpath}")
			return CopyFile(entry.path, replica_path, entry.relpath, CopyReason.NEW)

		replica_entry = Entry(replica_path, entry.relpath, Kind.FILE)
		if self.comparator.equal(entry.fingerprint(self.comparator), replica_entry.fingerprint(self.comparator)):
			return Skip(replica_path, entry.relpath)
		return CopyFile(entry.path, replica_path, entry.relpath, CopyReason.UPDATED)

	def _scan_error(self, relpath:PurePath, e:Exception) -> None:
		self.on_error(ActionKind.SCAN, relpath, e)
