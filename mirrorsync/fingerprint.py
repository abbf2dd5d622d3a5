# Copyright (c) 2025 Joe Walter
# GNU General Public License v3.0

import hashlib
from pathlib import PurePath

from .errors import UnreadableFileError
from .fs import FileSystemProvider

# A digest of a file's full contents.
Fingerprint = bytes

class ContentComparator:
	'''
	Decides whether two files hold the same bytes by hashing their full contents.

	Timestamps are never consulted, so a restored source tree with unreliable mtimes is still compared correctly. The price is that every file present on both sides is read once per sync.
	'''

	def __init__(self, fs:FileSystemProvider, *, algorithm:str = "sha256", chunk_size:int = 65536):
		if not isinstance(algorithm, str):
			raise TypeError(f"Bad type for arg 'algorithm' (expected str): {algorithm}")
		if algorithm not in hashlib.algorithms_available or algorithm.startswith("shake_"):
			raise ValueError(f"Unsupported hash algorithm: {algorithm}")
		if not isinstance(chunk_size, int) or chunk_size <= 0:
			raise ValueError(f"chunk_size must be a positive integer: {chunk_size}")
		self.fs         = fs
		self.algorithm  = algorithm
		self.chunk_size = chunk_size

	def fingerprint(self, path:PurePath) -> Fingerprint:
		hasher = hashlib.new(self.algorithm)
		try:
			with self.fs.read(path) as f:
				for block in iter(lambda: f.read(self.chunk_size), b""):
					hasher.update(block)
		except OSError as e:
			raise UnreadableFileError(path) from e
		return hasher.digest()

	@staticmethod
	def equal(a:Fingerprint, b:Fingerprint) -> bool:
		return a == b
