# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from enum import Enum
from pathlib import Path, PurePath
from collections import Counter
from typing import Callable, Iterator, NamedTuple

from .cleanup import EmptyDirectoryReducer, OrphanCollector, OrphanDirectoryQueue
from .errors import ReductionStuckError, RootError, SyncError
from .fingerprint import ContentComparator
from .fs import FileSystemProvider, Kind, LocalFileSystem
from .log import logger, exc_summary
from .operations import Action, ActionKind, CopyFile, CopyReason, CreateDirectory, Skip
from .reconcile import TreeReconciler

class Outcome(NamedTuple):
	'''What happened to one entry. `path` is relative to the source and replica roots.'''

	path        : PurePath
	action_kind : ActionKind
	success     : bool
	reason      : str|None    = None
	action      : Action|None = None

	@property
	def category(self) -> str:
		if self.action_kind is ActionKind.CREATE_DIR:
			return "created"
		if self.action_kind is ActionKind.COPY_FILE:
			if isinstance(self.action, CopyFile) and self.action.reason is CopyReason.UPDATED:
				return "updated"
			return "copied"
		if self.action_kind in (ActionKind.DELETE_FILE, ActionKind.DELETE_DIR):
			return "deleted"
		if self.action_kind is ActionKind.SKIP:
			return "skipped"
		if self.action_kind is ActionKind.COMPARE:
			return "updated"
		return "scanned"

class Results:
	'''Statistics and per-entry outcomes of one sync run.'''

	class Status(Enum):
		UNKNOWN              = -1
		COMPLETED            = 0
		ROOT_ERROR           = 1
		INPUT_ERROR          = 2
		INTERRUPTED_BY_USER  = 3
		INTERRUPTED_BY_ERROR = 4

	def __init__(self, *, status:"Results.Status|None" = None, error:BaseException|None = None) -> None:
		self.status   : Results.Status = status if status is not None else Results.Status.UNKNOWN
		self.error    : BaseException|None = error # any error that prevented or halted the run
		self.outcomes : list[Outcome] = []
		self.errors   : list[Outcome] = []
		self.stuck    : ReductionStuckError|None = None
		self.log_file : Path|None = None

		self.success_counts : Counter[str] = Counter()
		self.failure_counts : Counter[str] = Counter()

	def record(self, outcome:Outcome) -> None:
		self.outcomes.append(outcome)
		if outcome.success:
			self.success_counts[outcome.category] += 1
		else:
			self.failure_counts[outcome.category] += 1
			self.errors.append(outcome)

	@property
	def created(self) -> int:
		return self.success_counts["created"]

	@property
	def copied(self) -> int:
		return self.success_counts["copied"]

	@property
	def updated(self) -> int:
		return self.success_counts["updated"]

	@property
	def skipped(self) -> int:
		return self.success_counts["skipped"]

	@property
	def deleted(self) -> int:
		return self.success_counts["deleted"]

	@property
	def failed(self) -> int:
		return len(self.errors)

	@property
	def success(self) -> bool:
		return self.status is Results.Status.COMPLETED and not self.errors and self.stuck is None

	def summary(self) -> Iterator[str]:
		status = self.status.name.replace("_", " ").title()
		lines = [f"Status: {status}"]
		for label, key in [("Create", "created"), ("Copy", "copied"), ("Update", "updated"), ("Delete", "deleted")]:
			failures = self.failure_counts[key]
			lines.append(f"{label} Success: {self.success_counts[key]}" + (f" / Failed: {failures}" if failures else ""))
		lines.append(f"Unchanged: {self.skipped}")
		if self.failure_counts["scanned"]:
			lines.append(f"Scan Errors: {self.failure_counts['scanned']}")
		if self.stuck is not None:
			lines.append(f"Stuck Dirs: {len(self.stuck.dirs)}")
		if self.log_file:
			lines.append(f"Log File: {self.log_file}")
		key_length = max(line.find(":") for line in lines)
		for line in lines:
			yield " " * (key_length - line.find(":")) + line

class SyncOrchestrator:
	'''
	Makes `replica` match `source` in three passes that never overlap:

	1. `TreeReconciler` creates missing directories and copies new and changed files.
	2. `OrphanCollector` deletes replica files the source does not have and queues orphan directories.
	3. `EmptyDirectoryReducer` removes the queued directories as they become empty.

	Every action is carried out as soon as it is decided. A failed action is logged and recorded, and the run carries on with the next entry. Only an unusable source or replica root stops the run, and it does so before anything is changed.

	`reporter`, if given, is called with each `Outcome` as it happens.
	'''

	def __init__(
			self,
			source     : PurePath,
			replica    : PurePath,
			fs         : FileSystemProvider|None = None,
			*,
			comparator : ContentComparator|None = None,
			reporter   : Callable[[Outcome], None]|None = None,
		):
		self.source     = source
		self.replica    = replica
		self.fs         = fs if fs is not None else LocalFileSystem()
		self.comparator = comparator if comparator is not None else ContentComparator(self.fs)
		self.reporter   = reporter
		self.results    = Results()

		self._failed_dirs : list[CreateDirectory] = []

	def run(self) -> Results:
		'''Runs the sync. Errors are not raised (except `KeyboardInterrupt`); they are available in the returned `Results`.'''

		results = self.results = Results()
		self._failed_dirs = []

		try:
			self._check_roots()

			reconciler = TreeReconciler(self.source, self.replica, self.fs, self.comparator, on_error=self._report_error)
			for action in reconciler.actions():
				self._execute(action)

			queue = OrphanDirectoryQueue()
			collector = OrphanCollector(self.replica, self.source, self.fs, queue, on_error=self._report_error)
			for action in collector.actions():
				self._execute(action)

			reducer = EmptyDirectoryReducer(queue, self.fs, on_error=self._report_error)
			for action in reducer.actions():
				self._execute(action)
			if reducer.error is not None:
				results.stuck = reducer.error
				logger.warning(f"{reducer.error}:")
				for relpath in reducer.error.dirs:
					logger.warning(f"  {relpath}")

			results.status = Results.Status.COMPLETED
		except KeyboardInterrupt as e:
			results.status = Results.Status.INTERRUPTED_BY_USER
			results.error = e
			raise e
		except RootError as e:
			logger.critical(f"Root Error: {exc_summary(e)}")
			results.status = Results.Status.ROOT_ERROR
			results.error = e
		except Exception as e:
			logger.critical("An unexpected error occurred.", exc_info=True)
			results.status = Results.Status.INTERRUPTED_BY_ERROR
			results.error = e

		return results

	def _check_roots(self) -> None:
		source  = self.source
		replica = self.replica

		try:
			source_is_dir = self.fs.exists(source, Kind.DIR)
			if source_is_dir:
				self.fs.listdir(source)
		except OSError as e:
			raise RootError(f"'source' cannot be listed: {source}") from e
		if not source_is_dir:
			raise RootError(f"'source' is not an existing directory: {source}")

		if source == replica:
			raise RootError("'source' and 'replica' cannot be the same directory")
		if source in replica.parents:
			raise RootError("'replica' cannot be inside 'source'")
		if replica in source.parents:
			raise RootError("'source' cannot be inside 'replica'")

		try:
			replica_is_file = self.fs.exists(replica, Kind.FILE)
			replica_is_dir  = self.fs.exists(replica, Kind.DIR)
		except OSError as e:
			raise RootError(f"'replica' cannot be accessed: {replica}") from e
		if replica_is_file:
			raise RootError(f"'replica' is not a directory: {replica}")
		if not replica_is_dir:
			logger.warning(f"Replica folder does not exist, creating it: {replica}")
			try:
				self.fs.mkdir(replica, parents=True)
			except OSError as e:
				raise RootError(f"'replica' cannot be created: {replica}") from e

	def _execute(self, action:Action) -> None:
		if isinstance(action, Skip):
			logger.debug(action.summary)
			self._record(Outcome(action.relpath, action.kind, True, action=action))
			return

		if any(action.depends_on(failed) for failed in self._failed_dirs):
			logger.debug(f"Chain failure: {action.summary}")
			self._record(Outcome(action.relpath, action.kind, False, "Parent directory could not be created", action))
			return

		logger.info(action.summary)
		try:
			action.perform(self.fs)
		except SyncError as e:
			if isinstance(action, CreateDirectory):
				self._failed_dirs.append(action)
			msg = exc_summary(e)
			logger.error(msg)
			self._record(Outcome(action.relpath, action.kind, False, msg, action))
		else:
			self._record(Outcome(action.relpath, action.kind, True, action=action))

	def _report_error(self, kind:ActionKind, relpath:PurePath, e:Exception) -> None:
		msg = exc_summary(e)
		logger.error(msg)
		self._record(Outcome(relpath, kind, False, msg))

	def _record(self, outcome:Outcome) -> None:
		self.results.record(outcome)
		if self.reporter is not None:
			self.reporter(outcome)
