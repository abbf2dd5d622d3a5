import unittest
from pathlib import PurePosixPath as P

from mirrorsync import (
	ActionKind,
	CopyReason,
	MemoryFileSystem,
	ReductionStuckError,
	Results,
	SyncOrchestrator,
)

CREATE_DIR  = ActionKind.CREATE_DIR
COPY_FILE   = ActionKind.COPY_FILE
DELETE_FILE = ActionKind.DELETE_FILE
DELETE_DIR  = ActionKind.DELETE_DIR
SKIP        = ActionKind.SKIP

def run(fs, source="/src", replica="/dst", **kwargs):
	return SyncOrchestrator(P(source), P(replica), fs, **kwargs).run()

def outcomes(results):
	return [(o.action_kind, str(o.path), o.success) for o in results.outcomes]

def changes(results):
	return [(o.action_kind, str(o.path)) for o in results.outcomes if o.action_kind is not SKIP]

class TestScenarios(unittest.TestCase):
	def test_new_tree(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"docs": {
					"readme.txt": "v1",
				},
			},
			"dst": {},
		})
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(outcomes(results), [
			(CREATE_DIR, "docs", True),
			(COPY_FILE, "docs/readme.txt", True),
		])
		self.assertIs(results.outcomes[1].action.reason, CopyReason.NEW)
		self.assertEqual(fs.snapshot("/dst"), {"docs": {"readme.txt": "v1"}})
		self.assertEqual(results.created, 1)
		self.assertEqual(results.copied, 1)

	def test_skip_and_delete(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"a.txt": "x",
			},
			"dst": {
				"a.txt": "x",
				"old.txt": "y",
			},
		})
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(outcomes(results), [
			(SKIP, "a.txt", True),
			(DELETE_FILE, "old.txt", True),
		])
		self.assertEqual(fs.snapshot("/dst"), {"a.txt": "x"})
		self.assertEqual(results.skipped, 1)
		self.assertEqual(results.deleted, 1)

	#~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

	def test_idempotence(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"a": {
					"b": {
						"1.txt": "1",
					},
					"2.txt": "2",
				},
				"e": {},
				"3.txt": "3",
			},
			"dst": {
				"x": {
					"y": {
						"z.txt": "z",
					},
				},
				"3.txt": "old",
			},
		})
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(fs.snapshot("/dst"), fs.snapshot("/src"))

		calls = list(fs.calls)
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(changes(results), [])
		self.assertEqual(results.skipped, 3)
		self.assertEqual(fs.calls, calls)

	def test_update_detection(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"a.txt": "hello",
				"b.txt": "world",
			},
			"dst": {
				"a.txt": "hello",
				"b.txt": "world",
			},
		})
		fs.write("/src/a.txt", "hellp")
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(changes(results), [(COPY_FILE, "a.txt")])
		self.assertIs(results.outcomes[0].action.reason, CopyReason.UPDATED)
		self.assertEqual(results.updated, 1)
		self.assertEqual(fs.snapshot("/dst"), {"a.txt": "hellp", "b.txt": "world"})

	def test_nested_orphan_collapse(self):
		fs = MemoryFileSystem.from_structure({
			"src": {},
			"dst": {
				"a": {
					"b": {
						"c": {
							"file.txt": "z",
						},
					},
				},
			},
		})
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(changes(results), [
			(DELETE_FILE, "a/b/c/file.txt"),
			(DELETE_DIR, "a/b/c"),
			(DELETE_DIR, "a/b"),
			(DELETE_DIR, "a"),
		])
		self.assertEqual(fs.snapshot("/dst"), {})

	def test_orphans_next_to_kept_entries(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"keep": {
					"k.txt": "k",
				},
			},
			"dst": {
				"keep": {
					"k.txt": "k",
					"extra.txt": "e",
					"extra": {
						"deeper": {},
					},
				},
			},
		})
		results = run(fs)
		self.assertTrue(results.success)
		self.assertEqual(fs.snapshot("/dst"), {"keep": {"k.txt": "k"}})
		self.assertEqual(results.deleted, 3)

	def test_reporter(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"a.txt": "a"},
			"dst": {"b.txt": "b"},
		})
		reported = []
		results = run(fs, reporter=reported.append)
		self.assertEqual(reported, results.outcomes)
		self.assertEqual(len(reported), 2)

	def test_summary_is_aligned(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"a.txt": "a"},
			"dst": {},
		})
		lines = list(run(fs).summary())
		self.assertEqual(lines[0].strip(), "Status: Completed")
		self.assertEqual(len({line.index(":") for line in lines}), 1)
		self.assertIn("Copy Success: 1", [line.strip() for line in lines])

#~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

class TestRoots(unittest.TestCase):
	def test_missing_replica_is_created(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"f.txt": "1"},
		})
		results = run(fs, replica="/backup/dst")
		self.assertTrue(results.success)
		self.assertEqual(fs.snapshot("/backup/dst"), {"f.txt": "1"})

	def test_missing_source(self):
		fs = MemoryFileSystem.from_structure({
			"dst": {"keep.txt": "k"},
		})
		results = run(fs)
		self.assertFalse(results.success)
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		self.assertEqual(results.outcomes, [])
		self.assertEqual(fs.snapshot("/dst"), {"keep.txt": "k"})

	def test_unlistable_source(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"a.txt": "a"},
		})
		fs.fail("listdir", "/src")
		results = run(fs)
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		self.assertEqual(fs.calls, [])

	def test_replica_is_a_file(self):
		fs = MemoryFileSystem.from_structure({
			"src": {},
			"dst": "not a directory",
		})
		results = run(fs)
		self.assertIs(results.status, Results.Status.ROOT_ERROR)

	def test_nested_roots(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"f.txt": "1"},
		})
		results = run(fs, replica="/src/mirror")
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		results = run(fs, source="/src", replica="/src")
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		results = run(fs, source="/src", replica="/")
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		self.assertEqual(fs.calls, [])

	def test_replica_cannot_be_created(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"f.txt": "1"},
		})
		fs.fail("mkdir", "/dst")
		results = run(fs)
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		self.assertEqual(results.outcomes, [])

#~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

class TestFailures(unittest.TestCase):
	def test_copy_failure_does_not_stop_the_run(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"a.txt": "1",
				"b.txt": "2",
				"c.txt": "3",
			},
			"dst": {},
		})
		fs.fail("copy", "/dst/b.txt")
		results = run(fs)
		self.assertIs(results.status, Results.Status.COMPLETED)
		self.assertFalse(results.success)
		self.assertEqual(outcomes(results), [
			(COPY_FILE, "a.txt", True),
			(COPY_FILE, "b.txt", False),
			(COPY_FILE, "c.txt", True),
		])
		self.assertIn("CopyError", results.errors[0].reason)
		self.assertEqual(results.failed, 1)
		self.assertEqual(results.copied, 2)
		self.assertEqual(fs.snapshot("/dst"), {"a.txt": "1", "c.txt": "3"})

	def test_unreadable_replica_file(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"a.txt": "1",
				"b.txt": "2",
			},
			"dst": {
				"a.txt": "old",
			},
		})
		fs.fail("read", "/dst/a.txt")
		results = run(fs)
		self.assertFalse(results.success)
		self.assertEqual(outcomes(results), [
			(ActionKind.COMPARE, "a.txt", False),
			(COPY_FILE, "b.txt", True),
		])
		self.assertIn("UnreadableFileError", results.errors[0].reason)
		self.assertEqual(fs.snapshot("/dst"), {"a.txt": "old", "b.txt": "2"})

	def test_failed_directory_skips_its_subtree(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"d": {
					"1.txt": "1",
					"e": {
						"2.txt": "2",
					},
				},
				"z.txt": "z",
			},
			"dst": {},
		})
		fs.fail("mkdir", "/dst/d")
		results = run(fs)
		self.assertEqual(outcomes(results), [
			(CREATE_DIR, "d", False),
			(COPY_FILE, "z.txt", True),
			(COPY_FILE, "d/1.txt", False),
			(CREATE_DIR, "d/e", False),
			(COPY_FILE, "d/e/2.txt", False),
		])
		self.assertEqual(results.failed, 4)
		self.assertEqual(fs.calls, [("copy", P("/dst/z.txt"))])

	def test_scan_failure(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"a": {
					"1.txt": "1",
				},
				"b.txt": "b",
			},
			"dst": {
				"a": {
					"1.txt": "1",
				},
			},
		})
		fs.fail("listdir", "/src/a")
		results = run(fs)
		self.assertFalse(results.success)
		self.assertIn((ActionKind.SCAN, "a", False), outcomes(results))
		self.assertNotIn(DELETE_FILE, [kind for kind, path, success in outcomes(results)])
		self.assertEqual(fs.snapshot("/dst"), {"a": {"1.txt": "1"}, "b.txt": "b"})

	def test_source_entry_that_cannot_be_looked_at_is_kept(self):
		# a source directory that can be listed but not searched
		fs = MemoryFileSystem.from_structure({
			"src": {
				"d": {
					"f.txt": "same",
					"e": {},
				},
			},
			"dst": {
				"d": {
					"f.txt": "same",
					"e": {
						"g.txt": "g",
					},
				},
			},
		})
		fs.fail("read", "/src/d/f.txt")
		fs.fail("exists", "/src/d/f.txt")
		fs.fail("exists", "/src/d/e")
		results = run(fs)
		self.assertFalse(results.success)
		self.assertEqual(outcomes(results), [
			(ActionKind.COMPARE, "d/f.txt", False),
			(ActionKind.SCAN, "d/e", False),
			(ActionKind.SCAN, "d/f.txt", False),
		])
		self.assertNotIn(DELETE_FILE, [kind for kind, path, success in outcomes(results)])
		self.assertNotIn(DELETE_DIR, [kind for kind, path, success in outcomes(results)])
		self.assertEqual(fs.snapshot("/dst"), {"d": {"e": {"g.txt": "g"}, "f.txt": "same"}})
		self.assertEqual(fs.calls, [])

	def test_replica_root_cannot_be_looked_at(self):
		fs = MemoryFileSystem.from_structure({
			"src": {"f.txt": "1"},
		})
		fs.fail("exists", "/dst")
		results = run(fs)
		self.assertIs(results.status, Results.Status.ROOT_ERROR)
		self.assertEqual(fs.calls, [])

	def test_stuck_directory(self):
		fs = MemoryFileSystem.from_structure({
			"src": {},
			"dst": {
				"a": {
					"b": {},
				},
			},
		})
		fs.fail("remove_dir", "/dst/a/b")
		results = run(fs)
		self.assertIs(results.status, Results.Status.COMPLETED)
		self.assertFalse(results.success)
		self.assertEqual(outcomes(results), [(DELETE_DIR, "a/b", False)])
		self.assertIsInstance(results.stuck, ReductionStuckError)
		self.assertEqual(results.stuck.dirs, [P("a")])
		self.assertEqual(fs.snapshot("/dst"), {"a": {"b": {}}})

#~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

class TestKindMismatch(unittest.TestCase):
	def test_file_where_source_has_directory(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"x": {
					"f.txt": "1",
				},
			},
			"dst": {
				"x": "file",
			},
		})
		with self.assertLogs("mirrorsync", level="WARNING") as cm:
			results = run(fs)
		self.assertTrue(any("not replacing it: x" in line for line in cm.output))
		self.assertFalse(results.success)
		self.assertEqual(outcomes(results), [
			(CREATE_DIR, "x", False),
			(COPY_FILE, "x/f.txt", False),
		])
		self.assertEqual(fs.snapshot("/dst"), {"x": "file"})
		self.assertEqual(fs.calls, [])

	def test_directory_where_source_has_file(self):
		fs = MemoryFileSystem.from_structure({
			"src": {
				"x": "file",
			},
			"dst": {
				"x": {
					"inner.txt": "i",
				},
			},
		})
		with self.assertLogs("mirrorsync", level="WARNING"):
			results = run(fs)
		self.assertFalse(results.success)
		self.assertEqual(outcomes(results), [(COPY_FILE, "x", False)])
		self.assertEqual(fs.snapshot("/dst"), {"x": {"inner.txt": "i"}})

if __name__ == "__main__":
	unittest.main()
