# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import io
import os
import stat
import errno
import shutil
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path, PurePath, PurePosixPath
from typing import NamedTuple, Sequence, BinaryIO, Any

from .log import logger

class Kind(Enum):
	FILE = "file"
	DIR  = "directory"

class ListEntry(NamedTuple):
	'''One child of a listed directory.'''

	name : str
	kind : Kind

class FileSystemProvider(ABC):
	'''
	The file system operations the sync passes rely on. Every method signals failure by raising `OSError`.

	Implementations only need to report regular files and directories. Anything else (symbolic links, devices, ...) may be left out of `listdir()`, but must still be counted by `child_count()`.
	'''

	@abstractmethod
	def listdir(self, path:PurePath) -> Sequence[ListEntry]:
		'''The children of directory `path`, in no particular order.'''

	@abstractmethod
	def exists(self, path:PurePath, kind:Kind) -> bool:
		'''Whether `path` exists and is of the given `kind`. A missing path or a missing parent is `False`; any other failure to look at `path` (such as a parent that cannot be searched) raises `OSError`.'''

	@abstractmethod
	def read(self, path:PurePath) -> BinaryIO:
		'''Open file `path` for reading bytes. The caller closes the stream.'''

	@abstractmethod
	def copy(self, src:PurePath, dst:PurePath) -> None:
		'''Copy file `src` to `dst`, replacing `dst` if it is a file. The parent of `dst` must exist.'''

	@abstractmethod
	def mkdir(self, path:PurePath, *, parents:bool = False) -> None:
		'''Create directory `path`. Fails if anything already exists at `path`.'''

	@abstractmethod
	def remove_file(self, path:PurePath) -> None:
		...

	@abstractmethod
	def remove_dir(self, path:PurePath) -> None:
		'''Remove directory `path`. Fails if it is not empty.'''

	@abstractmethod
	def child_count(self, path:PurePath) -> int:
		...

class LocalFileSystem(FileSystemProvider):
	'''Provider backed by the local file system. Symbolic links are neither followed nor listed.'''

	def listdir(self, path:PurePath) -> Sequence[ListEntry]:
		entries = []
		with os.scandir(path) as it:
			for entry in it:
				if entry.is_dir(follow_symlinks=False):
					entries.append(ListEntry(entry.name, Kind.DIR))
				elif entry.is_file(follow_symlinks=False):
					entries.append(ListEntry(entry.name, Kind.FILE))
				else:
					logger.debug(f"not a regular file or directory, ignored: {entry.path}")
		return entries

	def exists(self, path:PurePath, kind:Kind) -> bool:
		try:
			mode = os.lstat(path).st_mode
		except (FileNotFoundError, NotADirectoryError):
			return False
		if kind is Kind.DIR:
			return stat.S_ISDIR(mode)
		return stat.S_ISREG(mode)

	def read(self, path:PurePath) -> BinaryIO:
		return open(path, "rb")

	def copy(self, src:PurePath, dst:PurePath) -> None:
		'''Copy file from `src` to `dst`, keeping timestamp metadata. The copy goes through a temporary sibling so an interrupted copy never leaves a truncated `dst`.'''

		src = Path(src)
		dst = Path(dst)
		if os.path.lexists(dst):
			if not self.exists(dst, Kind.FILE):
				raise IsADirectoryError(errno.EISDIR, "Cannot copy, dst is not a file", str(dst))
			elif src.samefile(dst):
				raise FileExistsError(errno.EEXIST, "Same file", str(dst))

		delete_tmp = False
		dst_tmp = dst.with_name(dst.name + ".tempcopy")
		try:
			shutil.copy2(src, dst_tmp, follow_symlinks=False)
			delete_tmp = True
			try:
				dst_tmp.replace(dst)
				delete_tmp = False
			except PermissionError as e:
				# Remove read-only flag and try again
				make_readonly = False
				try:
					if dst.stat().st_mode & stat.S_IWRITE:
						raise e
					dst.chmod(stat.S_IREAD | stat.S_IWRITE)
					make_readonly = True
					dst_tmp.replace(dst)
					delete_tmp = False
				finally:
					if make_readonly:
						dst.chmod(stat.S_IREAD)
		finally:
			# Remove the temp copy if there are any errors
			if delete_tmp:
				dst_tmp.unlink()

	def mkdir(self, path:PurePath, *, parents:bool = False) -> None:
		if parents:
			os.makedirs(path)
		else:
			os.mkdir(path)

	def remove_file(self, path:PurePath) -> None:
		os.remove(path)

	def remove_dir(self, path:PurePath) -> None:
		os.rmdir(path)

	def child_count(self, path:PurePath) -> int:
		return len(os.listdir(path))

class MemoryFileSystem(FileSystemProvider):
	'''
	In-memory provider over `PurePosixPath`s. The root "/" always exists.

	Mutating calls are recorded in `calls` as `(method name, path)` pairs, and any call can be made to fail with `fail(method name, path)`.
	'''

	def __init__(self) -> None:
		self.files    : dict[PurePosixPath, bytes] = {}
		self.dirs     : set[PurePosixPath] = {PurePosixPath("/")}
		self.calls    : list[tuple[str, PurePosixPath]] = []
		self.failures : set[tuple[str, PurePosixPath]] = set()

	@classmethod
	def from_structure(cls, structure:dict[str, Any], root:str|PurePath = "/") -> "MemoryFileSystem":
		'''
		Build a file system from nested dicts: a dict is a directory, anything else is file content (`str`, `bytes` or `None` for an empty file).

		>>> fs = MemoryFileSystem.from_structure({"src": {"docs": {"readme.txt": "v1"}}, "dst": {}})
		>>> fs.snapshot("/src")
		{'docs': {'readme.txt': 'v1'}}
		'''

		fs = cls()
		fs.add_structure(structure, root)
		return fs

	def add_structure(self, structure:dict[str, Any], root:str|PurePath = "/") -> None:
		root = PurePosixPath(root)
		self.dirs.update(root.parents)
		self.dirs.add(root)
		for name, content in structure.items():
			path = root / name
			if isinstance(content, dict):
				self.add_structure(content, path)
			else:
				self.write(path, content)

	def write(self, path:str|PurePath, content:str|bytes|None) -> None:
		'''Create or overwrite a file directly, bypassing `calls` and `failures`.'''

		if content is None:
			data = b""
		elif isinstance(content, str):
			data = content.encode()
		else:
			data = bytes(content)
		self.files[PurePosixPath(path)] = data

	def snapshot(self, root:str|PurePath = "/") -> dict[str, Any]:
		'''The inverse of `from_structure()`, with file contents decoded as UTF-8.'''

		root = PurePosixPath(root)
		tree : dict[str, Any] = {}
		for name, kind in sorted(self.listdir(root)):
			path = root / name
			if kind is Kind.DIR:
				tree[name] = self.snapshot(path)
			else:
				tree[name] = self.files[path].decode()
		return tree

	def fail(self, method:str, path:str|PurePath) -> None:
		self.failures.add((method, PurePosixPath(path)))

	def _check(self, method:str, path:PurePosixPath) -> None:
		if (method, path) in self.failures:
			raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), str(path))

	def _require_dir(self, path:PurePosixPath) -> None:
		if path in self.files:
			raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), str(path))
		if path not in self.dirs:
			raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))

	def _children(self, path:PurePosixPath) -> Sequence[ListEntry]:
		entries = [ListEntry(p.name, Kind.DIR) for p in self.dirs if p.parent == path and p != path]
		entries += [ListEntry(p.name, Kind.FILE) for p in self.files if p.parent == path]
		return entries

	def listdir(self, path:PurePath) -> Sequence[ListEntry]:
		path = PurePosixPath(path)
		self._check("listdir", path)
		self._require_dir(path)
		return self._children(path)

	def exists(self, path:PurePath, kind:Kind) -> bool:
		path = PurePosixPath(path)
		self._check("exists", path)
		if kind is Kind.DIR:
			return path in self.dirs
		return path in self.files

	def read(self, path:PurePath) -> BinaryIO:
		path = PurePosixPath(path)
		self._check("read", path)
		if path in self.dirs:
			raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(path))
		if path not in self.files:
			raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))
		return io.BytesIO(self.files[path])

	def copy(self, src:PurePath, dst:PurePath) -> None:
		src = PurePosixPath(src)
		dst = PurePosixPath(dst)
		self._check("copy", dst)
		if src not in self.files:
			raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(src))
		if dst in self.dirs:
			raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(dst))
		self._require_dir(dst.parent)
		self.calls.append(("copy", dst))
		self.files[dst] = self.files[src]

	def mkdir(self, path:PurePath, *, parents:bool = False) -> None:
		path = PurePosixPath(path)
		self._check("mkdir", path)
		if path in self.dirs or path in self.files:
			raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(path))
		if parents and path.parent not in self.dirs and path.parent not in self.files:
			self.mkdir(path.parent, parents=True)
		self._require_dir(path.parent)
		self.calls.append(("mkdir", path))
		self.dirs.add(path)

	def remove_file(self, path:PurePath) -> None:
		path = PurePosixPath(path)
		self._check("remove_file", path)
		if path in self.dirs:
			raise IsADirectoryError(errno.EISDIR, os.strerror(errno.EISDIR), str(path))
		if path not in self.files:
			raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path))
		self.calls.append(("remove_file", path))
		del self.files[path]

	def remove_dir(self, path:PurePath) -> None:
		path = PurePosixPath(path)
		self._check("remove_dir", path)
		self._require_dir(path)
		if self._children(path):
			raise OSError(errno.ENOTEMPTY, os.strerror(errno.ENOTEMPTY), str(path))
		self.calls.append(("remove_dir", path))
		self.dirs.remove(path)

	def child_count(self, path:PurePath) -> int:
		path = PurePosixPath(path)
		self._check("child_count", path)
		self._require_dir(path)
		return len(self._children(path))
