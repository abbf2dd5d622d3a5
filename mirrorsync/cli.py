# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import sys
import os
import time
import shutil
import argparse
import tempfile
import traceback
from pathlib import Path

from .core import Results, SyncOrchestrator
from .fingerprint import ContentComparator
from .fs import LocalFileSystem
from .log import logger, add_console_handlers, add_file_handler, remove_handlers, exc_summary

class _ArgParser:
	'''Argument parser for when mirrorsync is run from the command line instead of imported.'''

	parser = argparse.ArgumentParser(
		prog="mirrorsync",
		description="Make `replica` an exact copy of `source`: copy new and changed files, create missing directories, and remove files and directories that are not in `source`. Files are compared by content hash, not by timestamp.",
	)

	parser.add_argument("source", help="The root directory to copy files from. It is never modified.")
	parser.add_argument("replica", help="The root directory to make identical to `source`. It will be created if it does not exist.")
	parser.add_argument("-a", "--algorithm", metavar="name", type=str, default="sha256", help="The hashlib algorithm used to compare file contents. (Defaults to \"sha256\".)")
	parser.add_argument("-i", "--interval", metavar="seconds", type=float, default=None, help="Repeat the sync every this many seconds until interrupted with Ctrl-C. Without this flag the sync runs once.")
	parser.add_argument("-n", "--count", metavar="runs", type=int, default=None, help="With --interval, stop after this many runs.")

	parser.add_argument("--log", metavar="path", nargs="?", type=str, default=None, const="auto", help="The path of the log file to append to. It will be created if it does not exist. With \"auto\" or no argument, a tempfile will be used for the log, and it will be moved to the user's home directory after the sync is done. If this flag is absent, then no logging to file will be performed.")
	parser.add_argument("--debug", action="store_true", default=False, help="Log debug messages.")
	parser.add_argument("-q", action="count", default=0, help="Forgo printing to stdout (-q) and stderr (-qq).")

	@staticmethod
	def parse(args:list[str]) -> argparse.Namespace:
		parsed_args = _ArgParser.parser.parse_args(args)
		if parsed_args.interval is not None and parsed_args.interval <= 0:
			_ArgParser.parser.error(f"--interval must be positive: {parsed_args.interval}")
		if parsed_args.count is not None and parsed_args.count < 1:
			_ArgParser.parser.error(f"--count must be at least 1: {parsed_args.count}")
		if parsed_args.count is not None and parsed_args.interval is None:
			_ArgParser.parser.error("--count can only be used with --interval")
		parsed_args.quiet     = parsed_args.q >= 1
		parsed_args.veryquiet = parsed_args.q >= 2
		del parsed_args.q
		return parsed_args

def sync_cmd(args:list[str]) -> Results:
	'''Run `sync()` with command line arguments, once or every `--interval` seconds. Returns the results of the last run.'''

	parsed_args = _ArgParser.parse(args)
	runs = 0
	while True:
		results = sync(
			parsed_args.source,
			parsed_args.replica,
			algorithm = parsed_args.algorithm,
			log       = parsed_args.log,
			debug     = parsed_args.debug,
			quiet     = parsed_args.quiet,
			veryquiet = parsed_args.veryquiet,
		)
		runs += 1
		if parsed_args.interval is None or results.status is Results.Status.INTERRUPTED_BY_USER:
			return results
		if parsed_args.count is not None and runs >= parsed_args.count:
			return results
		try:
			time.sleep(parsed_args.interval)
		except KeyboardInterrupt:
			return results

def sync(
		source    : str | os.PathLike[str],
		replica   : str | os.PathLike[str],
		*,
		algorithm : str  = "sha256",
		log       : str | os.PathLike[str] | None = None,
		debug     : bool = False,
		quiet     : bool = False,
		veryquiet : bool = False,
	) -> Results:
	'''
	Makes `replica` an exact copy of `source` on the local file system. New and changed files are copied over, missing directories are created, and files and directories in `replica` that are not in `source` are removed. Files are compared by a hash of their contents, so timestamps do not matter.

	Args
		source  (str or PathLike) : The path of the root directory to copy files from. It is never modified.
		replica (str or PathLike) : The path of the root directory to make identical to `source`. It will be created if it does not exist. It cannot be inside `source`, or the other way around.
		algorithm (str)           : The hashlib algorithm used to compare file contents. (Defaults to "sha256".)

		log (str or PathLike)     : The path of the log file to append to. It will be created if it does not exist. A value of "auto" means a tempfile will be used for the log, and it will be moved to the user's home directory after the sync is done. A value of `None` will skip logging to a file. (Defaults to `None`.)
		debug (bool)              : Whether to log debug messages, including unchanged files. (Defaults to `False`.)
		quiet (bool)              : Whether to forgo printing to stdout.
		veryquiet (bool)          : Whether to forgo printing to stdout and stderr.

	Example Console Output
		   path/to/source
		-> path/to/replica
		------------------
		+ new-dir/
		+ new-dir/new.txt
		U changed.txt
		- not-in-source.txt
		- not-in-source-dir/
		------------------
		        Status: Completed
		Create Success: 1
		  Copy Success: 1
		Update Success: 1
		Delete Success: 2
		     Unchanged: 12

	Returns
		A `Results` object containing the outcome of every entry and various statistics.
	'''

	handlers = add_console_handlers(debug=debug, quiet=quiet, veryquiet=veryquiet)

	results      : Results|None = None
	orchestrator : SyncOrchestrator|None = None
	log_file     : Path|None = None
	tmp_log_file : Path|None = None
	width = 10

	try:
		if not isinstance(source, (str, os.PathLike)):
			msg = f"Bad type for arg 'source' (expected str or PathLike): {source}"
			raise TypeError(msg)
		if not isinstance(replica, (str, os.PathLike)):
			msg = f"Bad type for arg 'replica' (expected str or PathLike): {replica}"
			raise TypeError(msg)
		if log is not None and not isinstance(log, (str, os.PathLike)):
			msg = f"Bad type for arg 'log' (expected str or PathLike): {log}"
			raise TypeError(msg)
		if not isinstance(debug, bool):
			msg = f"Bad type for arg 'debug' (expected bool): {debug}"
			raise TypeError(msg)
		if not isinstance(quiet, bool):
			msg = f"Bad type for arg 'quiet' (expected bool): {quiet}"
			raise TypeError(msg)
		if not isinstance(veryquiet, bool):
			msg = f"Bad type for arg 'veryquiet' (expected bool): {veryquiet}"
			raise TypeError(msg)

		source_root  = Path(os.path.expanduser(source)).resolve()
		replica_root = Path(os.path.expanduser(replica)).resolve()

		timestamp = str(int(time.time()*1000))
		if log is None:
			log_file = None
		elif log == "auto":
			log_file = Path.home() / f"mirrorsync.{timestamp}.log"
		else:
			log_file = Path(log)
		if log_file is not None and log_file.exists() and not log_file.is_file():
			msg = f"Chosen log is not a file: {log_file}"
			raise ValueError(msg)

		fs = LocalFileSystem()
		comparator = ContentComparator(fs, algorithm=algorithm)

		if log_file is not None:
			if log == "auto":
				with tempfile.NamedTemporaryFile(mode="w+", encoding="utf-8", delete=False) as tmp_log:
					tmp_log_file = Path(tmp_log.name)
				handlers.append(add_file_handler(tmp_log_file, debug=debug))
			else:
				handlers.append(add_file_handler(log_file, debug=debug))

		logger.debug(f"Starting sync: {source_root=} {replica_root=} {algorithm=} {log_file=} {debug=} {quiet=} {veryquiet=}")

		width = max(len(str(source_root)), len(str(replica_root))) + 3
		logger.info("   " + str(source_root))
		logger.info("-> " + str(replica_root))
		logger.info("-" * width)

		orchestrator = SyncOrchestrator(source_root, replica_root, fs, comparator=comparator)
		results = orchestrator.run()

	except KeyboardInterrupt:
		logger.critical("Cancelled by user.")
		results = orchestrator.results if orchestrator is not None else Results()
		results.status = Results.Status.INTERRUPTED_BY_USER
	except (TypeError, ValueError) as e:
		logger.critical(f"Input Error: {e}")
		results = Results(status=Results.Status.INPUT_ERROR, error=e)
	except Exception as e:
		logger.critical("Unexpected error: " + exc_summary(e))
		logger.critical(traceback.format_exc())
		results = Results(status=Results.Status.INTERRUPTED_BY_ERROR, error=e)

	finally:
		if results is not None:
			results.log_file = log_file

			logger.info("-" * width)
			for line in results.summary():
				logger.info(line)

			stuck_dirs = results.stuck.dirs if results.stuck is not None else []
			error_count = results.failed + len(stuck_dirs)
			if error_count:
				logger.info("")
				logger.info(f"There were {error_count} errors.")
				if error_count <= 10:
					logger.info("Errors are reprinted below for convenience.")
					for outcome in results.errors:
						logger.info(f"{outcome.path}: {outcome.reason}")
					for relpath in stuck_dirs:
						logger.info(f"{relpath}: Orphan directory could not be emptied")

		remove_handlers(handlers)

		if tmp_log_file is not None:
			assert log_file is not None
			shutil.move(tmp_log_file, log_file)

	return results

def main() -> None:
	try:
		results = sync_cmd(sys.argv[1:])
	except KeyboardInterrupt:
		sys.exit(130)
	sys.exit(0 if results.success else 1)
