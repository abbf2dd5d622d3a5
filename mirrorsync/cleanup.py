# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import threading
from pathlib import PurePath
from typing import Iterator

from .errors import ReductionStuckError
from .fs import FileSystemProvider, Kind
from .log import logger
from .operations import Action, ActionKind, DeleteDirectory, DeleteFile
from .paths import rebase
from .reconcile import Entry, ErrorCallback, walk

class OrphanDirectoryQueue:
	'''
	Ordered set of replica directories with no source counterpart, waiting to be removed once empty.

	Filled by `OrphanCollector` (appends are thread-safe) and drained by `EmptyDirectoryReducer`. Iterating yields a snapshot, so entries may be removed while iterating.
	'''

	def __init__(self) -> None:
		self._entries : dict[PurePath, Entry] = {}
		self._lock = threading.Lock()

	def append(self, entry:Entry) -> None:
		with self._lock:
			self._entries.setdefault(entry.path, entry)

	def remove(self, entry:Entry) -> None:
		with self._lock:
			del self._entries[entry.path]

	def __iter__(self) -> Iterator[Entry]:
		with self._lock:
			return iter(list(self._entries.values()))

	def __len__(self) -> int:
		return len(self._entries)

	def __contains__(self, entry:object) -> bool:
		return isinstance(entry, Entry) and entry.path in self._entries

class OrphanCollector:
	'''
	The cleanup pass: walks the replica and finds entries the source does not have. Orphan files are deleted right away; orphan directories go into `queue`, since they can only be removed after everything inside them is gone.
	'''

	def __init__(
			self,
			replica  : PurePath,
			source   : PurePath,
			fs       : FileSystemProvider,
			queue    : OrphanDirectoryQueue,
			*,
			on_error : ErrorCallback,
		):
		self.replica  = replica
		self.source   = source
		self.fs       = fs
		self.queue    = queue
		self.on_error = on_error

	def actions(self) -> Iterator[Action]:
		for entry in walk(self.fs, self.replica, on_error=self._scan_error):
			try:
				source_path = rebase(entry.relpath, self.source)
			except ValueError as e:
				self.on_error(ActionKind.SCAN, entry.relpath, e)
				continue

			other_kind = Kind.DIR if entry.kind is Kind.FILE else Kind.FILE
			try:
				in_source       = self.fs.exists(source_path, entry.kind)
				other_in_source = not in_source and self.fs.exists(source_path, other_kind)
			except OSError as e:
				# unknown is not absent: keep the replica entry and everything under it
				self.on_error(ActionKind.SCAN, entry.relpath, e)
				entry.descend = False
				continue

			if in_source:
				continue

			if other_in_source:
				# the forward pass has already reported this entry as a failure
				logger.warning(f"Source has a {other_kind.value} where replica has a {entry.kind.value}, leaving it in place: {entry.relpath}")
				entry.descend = False
				continue

			if entry.kind is Kind.FILE:
				yield DeleteFile(entry.path, entry.relpath)
			else:
				logger.debug(f"orphan directory queued: {entry.relpath}")
				self.queue.append(entry)

	def _scan_error(self, relpath:PurePath, e:Exception) -> None:
		self.on_error(ActionKind.SCAN, relpath, e)

class EmptyDirectoryReducer:
	'''
	Removes queued orphan directories once they are empty, repeating passes over the queue until it is drained.

	Each pass looks at every queued directory once and yields a `DeleteDirectory` for those with no children left. A parent therefore goes in a later pass than its last child, however deep the tree. A pass that removes nothing ends the loop; the directories still queued are then reported in `error`.
	'''

	def __init__(self, queue:OrphanDirectoryQueue, fs:FileSystemProvider, *, on_error:ErrorCallback):
		self.queue    = queue
		self.fs       = fs
		self.on_error = on_error
		self.passes   = 0
		self.error    : ReductionStuckError|None = None

	def actions(self) -> Iterator[Action]:
		while len(self.queue):
			self.passes += 1
			progress = False
			for entry in self.queue:
				try:
					count = self.fs.child_count(entry.path)
				except FileNotFoundError:
					logger.debug(f"orphan directory already gone: {entry.relpath}")
					self.queue.remove(entry)
					progress = True
					continue
				except OSError as e:
					self.queue.remove(entry)
					progress = True
					self.on_error(ActionKind.DELETE_DIR, entry.relpath, e)
					continue
				if count == 0:
					self.queue.remove(entry)
					progress = True
					yield DeleteDirectory(entry.path, entry.relpath)
			if not progress:
				self.error = ReductionStuckError(entry.relpath for entry in self.queue)
				logger.debug(f"no progress after {self.passes} passes, giving up on {len(self.queue)} directories")
				return
