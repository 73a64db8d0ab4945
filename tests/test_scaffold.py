"""Tests for memdock.scaffold: slash-command files."""

from unittest.mock import patch

import pytest

from memdock.errors import ScaffoldError
from memdock.scaffold import DEFAULT_TEMPLATES, CommandTemplate, materialize, render_command


class TestRenderCommand:
    def test_front_matter(self):
        text = render_command(CommandTemplate("memory-x", "Do a thing", "Body $1"))
        assert text == "---\ndescription: Do a thing\n---\n\nBody $1\n"


class TestDefaultTemplates:
    def test_names(self):
        assert [t.name for t in DEFAULT_TEMPLATES] == [
            "memory-status",
            "memory-save",
            "memory-search",
            "memory-recall",
            "memory-stats",
            "memory-export",
            "memory-clear",
        ]

    @pytest.mark.parametrize("name", ["memory-save", "memory-search", "memory-recall"])
    def test_argument_placeholder(self, name):
        template = next(t for t in DEFAULT_TEMPLATES if t.name == name)
        assert "$1" in template.body


class TestMaterialize:
    def test_writes_one_file_per_template(self, tmp_path):
        target = tmp_path / ".claude" / "commands"
        paths = materialize(target, DEFAULT_TEMPLATES)

        assert len(paths) == len(DEFAULT_TEMPLATES)
        assert sorted(p.name for p in target.iterdir()) == sorted(
            f"{t.name}.md" for t in DEFAULT_TEMPLATES
        )
        assert (target / "memory-status.md").read_text().startswith(
            "---\ndescription: Check memory service status"
        )

    def test_overwrites_existing_files(self, tmp_path):
        (tmp_path / "memory-save.md").write_text("stale")
        materialize(tmp_path, DEFAULT_TEMPLATES)
        assert "stale" not in (tmp_path / "memory-save.md").read_text()

    def test_leaves_unrelated_files_alone(self, tmp_path):
        (tmp_path / "my-command.md").write_text("mine")
        materialize(tmp_path, DEFAULT_TEMPLATES)
        assert (tmp_path / "my-command.md").read_text() == "mine"

    def test_rerun_is_identical(self, tmp_path):
        materialize(tmp_path, DEFAULT_TEMPLATES)
        first = {p.name: p.read_bytes() for p in tmp_path.iterdir()}
        materialize(tmp_path, DEFAULT_TEMPLATES)
        assert {p.name: p.read_bytes() for p in tmp_path.iterdir()} == first

    def test_write_failure(self, tmp_path):
        with patch("pathlib.Path.write_text", side_effect=OSError("read-only")):
            with pytest.raises(ScaffoldError, match="read-only"):
                materialize(tmp_path / "commands", DEFAULT_TEMPLATES)
