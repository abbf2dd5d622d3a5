# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import sys
import logging
from pathlib import Path

logger = logging.getLogger("mirrorsync")
logger.setLevel(logging.DEBUG)

class _DebugInfoFilter(logging.Filter):
	'''Logging filter that only allows DEBUG and INFO records to pass.'''

	def filter(self, record):
		return logging.DEBUG <= record.levelno <= logging.INFO

def add_console_handlers(*, debug:bool = False, quiet:bool = False, veryquiet:bool = False) -> list[logging.Handler]:
	'''
	Attach stdout (DEBUG/INFO) and stderr (WARNING and up) handlers to the package logger, replacing any left over from a previous run.

	Returns the handlers that were added, to be passed to `remove_handlers()` afterwards.
	'''

	for handler in list(logger.handlers):
		logger.removeHandler(handler)

	if veryquiet:
		quiet = True

	handlers : list[logging.Handler] = []

	if not quiet:
		handler_stdout = logging.StreamHandler(sys.stdout)
		handler_stdout.setFormatter(logging.Formatter("%(message)s"))
		handler_stdout.addFilter(_DebugInfoFilter())
		handler_stdout.setLevel(logging.DEBUG if debug else logging.INFO)
		handlers.append(handler_stdout)

	if not veryquiet:
		handler_stderr = logging.StreamHandler(sys.stderr)
		handler_stderr.setFormatter(logging.Formatter("%(message)s"))
		handler_stderr.setLevel(logging.WARNING)
		handlers.append(handler_stderr)

	for handler in handlers:
		logger.addHandler(handler)
	return handlers

def add_file_handler(path:Path, *, debug:bool = False, mode:str = "a") -> logging.FileHandler:
	'''Attach a handler that writes "LEVEL: message" lines to `path`.'''

	handler_file = logging.FileHandler(path, mode=mode, encoding="utf-8")
	handler_file.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
	handler_file.setLevel(logging.DEBUG if debug else logging.INFO)
	logger.addHandler(handler_file)
	return handler_file

def remove_handlers(handlers:list[logging.Handler]) -> None:
	for handler in handlers:
		logger.removeHandler(handler)
		handler.close()

def exc_summary(e:BaseException) -> str:
	'''
	Get a one-line summary of an Error.

	>>> exc_summary(FileNotFoundError(2, "No such file or directory", "a.txt"))
	'FileNotFoundError: a.txt'
	>>> exc_summary(ValueError("bad value"))
	'ValueError: bad value'
	'''

	error_type = type(e).__name__
	if isinstance(e, OSError):
		affected_file = e.filename if e.filename is not None else "N/A"
		return f"{error_type}: {affected_file}"
	msg = f"{error_type}: {e}"
	if e.__cause__ is not None:
		msg += f" ({exc_summary(e.__cause__)})"
	return msg
