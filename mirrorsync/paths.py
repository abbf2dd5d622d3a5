# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

from pathlib import PurePath, PurePosixPath

from .errors import PathOutsideRootError

def relativize(root:PurePath, path:PurePath) -> PurePath:
	'''
	Returns `path` relative to `root`. Raises `PathOutsideRootError` if `path` is not `root` or one of its descendants. The check is purely lexical.

	>>> relativize(PurePosixPath("/src"), PurePosixPath("/src/docs/readme.txt"))
	PurePosixPath('docs/readme.txt')
	>>> relativize(PurePosixPath("/src"), PurePosixPath("/src"))
	PurePosixPath('.')
	'''

	try:
		relpath = path.relative_to(root)
	except ValueError:
		raise PathOutsideRootError(root, path) from None
	if ".." in relpath.parts:
		raise PathOutsideRootError(root, path)
	return relpath

def rebase(relpath:PurePath, new_root:PurePath) -> PurePath:
	'''
	Joins `relpath` onto `new_root`. Never touches the file system.

	>>> rebase(PurePosixPath("docs/readme.txt"), PurePosixPath("/replica"))
	PurePosixPath('/replica/docs/readme.txt')
	'''

	if relpath.is_absolute():
		raise ValueError(f"Expected a relative path: {relpath}")
	return new_root / relpath
