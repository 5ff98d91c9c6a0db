"""Tests for file intake and path normalization."""

import pytest

from codescope.config import AnalyzerConfig
from codescope.intake import FileIntake, detect_language, is_test_file, node_id, normalize_path
from codescope.models import SourceFile


class TestPathHelpers:
    """Path normalization, node IDs and classification."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("./src/a.ts", "src/a.ts"),
            ("src\\lib\\util.ts", "src/lib/util.ts"),
            ("src//deep/../a.ts", "src/a.ts"),
            ("  src/a.ts ", "src/a.ts"),
        ],
    )
    def test_normalize_path(self, raw, expected):
        """Separators, ./ prefixes and .. segments are normalized."""
        assert normalize_path(raw) == expected

    @pytest.mark.parametrize(
        "path,expected",
        [
            ("src/app.tsx", "src/app"),
            ("src/lib/index.ts", "src/lib"),
            ("src\\lib\\index.js", "src/lib"),
            ("components/Card.vue", "components/Card"),
            ("index.ts", "index"),
        ],
    )
    def test_node_id(self, path, expected):
        """Extensions and trailing /index are stripped."""
        assert node_id(path) == expected

    def test_is_test_file(self):
        """Spec/test suffixes and test directories mark test files."""
        assert is_test_file("src/a.test.ts")
        assert is_test_file("src/a.spec.tsx")
        assert is_test_file("src/__tests__/a.ts")
        assert not is_test_file("src/testing.ts")
        assert not is_test_file("src/contest/a.ts")

    def test_detect_language_prefers_longest_extension(self):
        """The most specific extension wins."""
        extensions = {".ts": "typescript", ".d.ts": "declaration"}
        assert detect_language("src/a.d.ts", extensions) == "declaration"
        assert detect_language("src/a.ts", extensions) == "typescript"
        assert detect_language("README.md", extensions) is None


class TestFileIntake:
    """Filtering, skipping and budget enforcement."""

    def test_accepts_mappings_and_fills_language(self, config):
        """Raw mappings become SourceFiles with normalized path and language."""
        result = FileIntake(config).run([{"path": "./src/a.tsx", "content": "export {}"}])
        (file,) = result.files
        assert isinstance(file, SourceFile)
        assert file.path == "src/a.tsx"
        assert file.language == "tsx"
        assert file.size == len("export {}")
        assert result.skipped == []

    def test_keeps_caller_language(self, config):
        """A language supplied by the caller is kept."""
        result = FileIntake(config).run(
            [SourceFile(path="src/a.js", content="x", language="jsx")]
        )
        assert result.files[0].language == "jsx"

    def test_silently_drops_non_source_files(self, config):
        """Files outside the extension allow-list are dropped without a skip entry."""
        result = FileIntake(config).run(
            [
                {"path": "README.md", "content": "# hi"},
                {"path": "styles/app.css", "content": "a {}"},
                {"path": "src/a.ts", "content": "export {}"},
            ]
        )
        assert [f.path for f in result.files] == ["src/a.ts"]
        assert result.skipped == []

    def test_counts_and_excludes_test_files(self, config):
        """Test files are counted for coverage and never analyzed."""
        result = FileIntake(config).run(
            [
                {"path": "src/a.ts", "content": "export {}"},
                {"path": "src/a.test.ts", "content": "test()"},
                {"path": "tests/b.ts", "content": "test()"},
            ]
        )
        assert [f.path for f in result.files] == ["src/a.ts"]
        assert result.test_files == 2

    def test_vendored_test_files_not_counted(self, config):
        """Tests shipped inside dependencies or build output do not count."""
        files = [{"path": "src/a.ts", "content": "export {}"}]
        files += [
            {"path": f"node_modules/x/t{i}.test.js", "content": "test()"} for i in range(5)
        ]
        files.append({"path": "dist/__tests__/a.js", "content": "test()"})
        files.append({"path": "src/a.spec.ts", "content": "test()"})
        result = FileIntake(config).run(files)
        assert [f.path for f in result.files] == ["src/a.ts"]
        assert result.test_files == 1

    def test_excluded_directories_and_generated_files(self, config):
        """Vendored, built and declaration files are excluded."""
        result = FileIntake(config).run(
            [
                {"path": "node_modules/react/index.js", "content": "x"},
                {"path": "dist/app.js", "content": "x"},
                {"path": "src/types.d.ts", "content": "declare const x: 1"},
                {"path": "public/vendor.min.js", "content": "x"},
                {"path": "src/a.ts", "content": "export {}"},
            ]
        )
        assert [f.path for f in result.files] == ["src/a.ts"]

    def test_duplicate_node_ids_keep_first(self, config):
        """Two paths with the same node ID keep the first occurrence."""
        result = FileIntake(config).run(
            [
                {"path": "src/x.ts", "content": "first"},
                {"path": "src/x.js", "content": "second"},
            ]
        )
        assert [f.content for f in result.files] == ["first"]

    def test_oversized_file_is_skipped(self):
        """Files above max_file_bytes are skipped with a reason."""
        config = AnalyzerConfig(max_file_bytes=10)
        result = FileIntake(config).run([{"path": "src/big.ts", "content": "x" * 11}])
        assert result.files == []
        (skipped,) = result.skipped
        assert skipped.path == "src/big.ts"
        assert "file too large" in skipped.reason

    def test_minified_file_is_skipped(self, config):
        """A line longer than max_line_length marks minified content."""
        result = FileIntake(config).run(
            [{"path": "src/bundle.js", "content": "var a=1;" * 200}]
        )
        assert result.files == []
        assert result.skipped[0].reason == "minified or generated content"

    def test_total_size_budget(self):
        """Files beyond the cumulative budget are skipped and flagged."""
        config = AnalyzerConfig(max_total_bytes=10)
        result = FileIntake(config).run(
            [
                {"path": "src/a.ts", "content": "12345678"},
                {"path": "src/b.ts", "content": "12345678"},
            ]
        )
        assert [f.path for f in result.files] == ["src/a.ts"]
        assert result.budget_exceeded
        assert result.total_bytes == 8
        assert result.skipped[0].reason == "total size budget exceeded"

    def test_malformed_records_are_dropped(self, config):
        """Records that fail validation are dropped."""
        result = FileIntake(config).run(
            [{"path": "src/a.ts"}, {"path": "src/b.ts", "content": "ok"}]
        )
        assert [f.path for f in result.files] == ["src/b.ts"]
