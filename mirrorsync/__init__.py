# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

'''One-way mirroring of a source directory tree onto a replica.'''

from .errors import (
	SyncError,
	PathOutsideRootError,
	RootError,
	UnreadableFileError,
	ActionError,
	CopyError,
	MkdirError,
	DeleteError,
	ReductionStuckError,
)
from .fs import Kind, ListEntry, FileSystemProvider, LocalFileSystem, MemoryFileSystem
from .paths import relativize, rebase
from .fingerprint import ContentComparator, Fingerprint
from .operations import ActionKind, CopyReason, Action, CreateDirectory, CopyFile, DeleteFile, DeleteDirectory, Skip
from .reconcile import Entry, walk, TreeReconciler
from .cleanup import OrphanDirectoryQueue, OrphanCollector, EmptyDirectoryReducer
from .core import Outcome, Results, SyncOrchestrator
from .cli import sync, sync_cmd, main

__version__ = "1.0.0"
