# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from pathlib import PurePath
from typing import Iterable

class SyncError(Exception):
	'''Base class for errors raised while mirroring a tree.'''

class PathOutsideRootError(SyncError, ValueError):
	'''A path was expected to be under a root directory, but is not.'''

	def __init__(self, root:PurePath, path:PurePath):
		super().__init__(f"Path is not under root ({root}): {path}")
		self.root = root
		self.path = path

class RootError(SyncError):
	'''The source or replica root cannot be used. Nothing has been changed when this is raised.'''

class UnreadableFileError(SyncError):
	'''A file could not be opened or read while computing its fingerprint.'''

	def __init__(self, path:PurePath):
		super().__init__(f"Cannot read: {path}")
		self.path = path

class ActionError(SyncError):
	'''A file system call requested by an action failed. The `OSError` is chained as `__cause__`.'''

	verb = "perform action on"

	def __init__(self, path:PurePath):
		super().__init__(f"Cannot {self.verb}: {path}")
		self.path = path

class CopyError(ActionError):
	verb = "copy"

class MkdirError(ActionError):
	verb = "create directory"

class DeleteError(ActionError):
	verb = "delete"

class ReductionStuckError(SyncError):
	'''Orphan directories that never became empty.'''

	def __init__(self, dirs:Iterable[PurePath]):
		self.dirs = list(dirs)
		noun = "directory" if len(self.dirs) == 1 else "directories"
		super().__init__(f"{len(self.dirs)} orphan {noun} could not be emptied")
