# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import os
from abc import ABC, abstractmethod
from enum import Enum
from dataclasses import dataclass
from pathlib import PurePath
from typing import ClassVar

from .errors import CopyError, MkdirError, DeleteError
from .fs import FileSystemProvider

class ActionKind(Enum):
	CREATE_DIR  = "create-dir"
	COPY_FILE   = "copy-file"
	DELETE_FILE = "delete-file"
	DELETE_DIR  = "delete-dir"
	SKIP        = "skip"
	# failures that happen before any action can be decided
	SCAN        = "scan"
	COMPARE     = "compare"

class CopyReason(Enum):
	NEW     = "new"
	UPDATED = "updated"

class Action(ABC):
	'''
	A single change requested of the replica. `path` is the replica path the action targets, and `relpath` is that path relative to the replica root.

	Actions are only decisions. `perform()` carries them out through a `FileSystemProvider`.
	'''

	kind    : ClassVar[ActionKind]
	path    : PurePath
	relpath : PurePath

	@property
	@abstractmethod
	def summary(self) -> str:
		'''The line logged when the action is carried out.'''

	@abstractmethod
	def perform(self, fs:FileSystemProvider) -> None:
		...

	def depends_on(self, other:"Action") -> bool:
		'''Whether this action can only succeed if `other` did.'''

		return isinstance(other, CreateDirectory) and other.path in self.path.parents

@dataclass(frozen=True)
class CreateDirectory(Action):
	path    : PurePath
	relpath : PurePath

	kind : ClassVar[ActionKind] = ActionKind.CREATE_DIR

	@property
	def summary(self) -> str:
		return f"+ {self.relpath}{os.sep}"

	def perform(self, fs:FileSystemProvider) -> None:
		try:
			fs.mkdir(self.path)
		except OSError as e:
			raise MkdirError(self.path) from e

@dataclass(frozen=True)
class CopyFile(Action):
	src     : PurePath
	dst     : PurePath
	relpath : PurePath
	reason  : CopyReason

	kind : ClassVar[ActionKind] = ActionKind.COPY_FILE

	@property
	def path(self) -> PurePath:
		return self.dst

	@property
	def summary(self) -> str:
		if self.reason is CopyReason.UPDATED:
			return f"U {self.relpath}"
		return f"+ {self.relpath}"

	def perform(self, fs:FileSystemProvider) -> None:
		try:
			fs.copy(self.src, self.dst)
		except OSError as e:
			raise CopyError(self.dst) from e

@dataclass(frozen=True)
class DeleteFile(Action):
	path    : PurePath
	relpath : PurePath

	kind : ClassVar[ActionKind] = ActionKind.DELETE_FILE

	@property
	def summary(self) -> str:
		return f"- {self.relpath}"

	def perform(self, fs:FileSystemProvider) -> None:
		try:
			fs.remove_file(self.path)
		except OSError as e:
			raise DeleteError(self.path) from e

@dataclass(frozen=True)
class DeleteDirectory(Action):
	path    : PurePath
	relpath : PurePath

	kind : ClassVar[ActionKind] = ActionKind.DELETE_DIR

	@property
	def summary(self) -> str:
		return f"- {self.relpath}{os.sep}"

	def perform(self, fs:FileSystemProvider) -> None:
		try:
			fs.remove_dir(self.path)
		except OSError as e:
			raise DeleteError(self.path) from e

@dataclass(frozen=True)
class Skip(Action):
	'''A file whose replica copy already has identical content.'''

	path    : PurePath
	relpath : PurePath

	kind : ClassVar[ActionKind] = ActionKind.SKIP

	@property
	def summary(self) -> str:
		return f"= {self.relpath}"

	def perform(self, fs:FileSystemProvider) -> None:
		pass
