"""Tests for memdock.settings: merging the MCP server entry into settings.json."""

import json
from datetime import datetime
from unittest.mock import patch

import pytest

from memdock.errors import SettingsWriteError
from memdock.settings import MCP_NAMESPACE, backup_path_for, merge_entry, read_entry

ENTRY = {"type": "http", "url": "http://localhost:8000/mcp"}
NOW = datetime(2026, 1, 2, 3, 4, 5)


@pytest.fixture
def settings_file(tmp_path):
    return tmp_path / ".claude" / "settings.json"


def _write(path, data):
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, str):
        path.write_text(data)
    else:
        path.write_text(json.dumps(data, indent=2))


class TestMergeIntoMissingDocument:
    def test_creates_document_and_parents(self, settings_file):
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY)

        assert result.created is True
        assert result.changed is True
        assert result.backup_path is None
        assert json.loads(settings_file.read_text()) == {"mcpServers": {"memory": ENTRY}}

    def test_output_is_pretty_printed(self, settings_file):
        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY)
        text = settings_file.read_text()
        assert text.startswith('{\n  "mcpServers": {\n')
        assert text.endswith("}\n")


class TestPreservesUnrelatedContent:
    def test_keeps_top_level_keys_and_sibling_servers(self, settings_file):
        other = {"command": "npx", "args": ["other-server"]}
        _write(settings_file, {"foo": 1, "mcpServers": {"other": other}})

        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)

        doc = json.loads(settings_file.read_text())
        assert doc["foo"] == 1
        assert doc["mcpServers"]["other"] == other
        assert doc["mcpServers"]["memory"] == ENTRY

    def test_replaces_only_the_named_entry(self, settings_file):
        _write(
            settings_file,
            {"mcpServers": {"memory": {"type": "http", "url": "http://old/mcp"}, "x": {"a": 1}}},
        )

        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)

        doc = json.loads(settings_file.read_text())
        assert doc["mcpServers"] == {"memory": ENTRY, "x": {"a": 1}}

    def test_preserves_key_order(self, settings_file):
        _write(settings_file, {"zeta": 1, "alpha": 2, "hooks": {"SessionStart": []}})

        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)

        assert list(json.loads(settings_file.read_text())) == [
            "zeta",
            "alpha",
            "hooks",
            "mcpServers",
        ]

    def test_adds_namespace_when_absent(self, settings_file):
        _write(settings_file, {"theme": "dark"})
        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        doc = json.loads(settings_file.read_text())
        assert doc == {"theme": "dark", "mcpServers": {"memory": ENTRY}}

    def test_non_object_namespace_replaced_with_warning(self, settings_file):
        _write(settings_file, {"mcpServers": ["bad"]})
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert any("not an object" in w for w in result.warnings)
        assert json.loads(settings_file.read_text())["mcpServers"] == {"memory": ENTRY}


class TestIdempotence:
    def test_second_merge_is_byte_identical(self, settings_file):
        _write(settings_file, {"foo": 1, "mcpServers": {"other": {"type": "stdio"}}})

        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        first = settings_file.read_bytes()
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        second = settings_file.read_bytes()

        assert first == second
        assert result.changed is False

    def test_unchanged_document_is_not_backed_up_again(self, settings_file, tmp_path):
        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY)
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert result.backup_path is None
        assert not list(settings_file.parent.glob("settings.json.backup-*"))


class TestBackups:
    def test_backup_holds_original_bytes(self, settings_file):
        original = '{"foo": 1}'
        _write(settings_file, original)

        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)

        assert result.backup_path == settings_file.with_name(
            "settings.json.backup-20260102-030405"
        )
        assert result.backup_path.read_text() == original

    def test_backups_are_not_pruned(self, settings_file):
        _write(settings_file, {"a": 1})
        merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        merge_entry(
            settings_file,
            MCP_NAMESPACE,
            "memory",
            {"type": "http", "url": "http://localhost:9000/mcp"},
            now=datetime(2026, 1, 2, 3, 4, 6),
        )
        assert len(list(settings_file.parent.glob("settings.json.backup-*"))) == 2

    def test_backup_path_format(self, tmp_path):
        assert backup_path_for(tmp_path / "s.json", NOW).name == "s.json.backup-20260102-030405"

    def test_backup_failure_raises_and_leaves_document(self, settings_file):
        _write(settings_file, {"a": 1})
        with patch("memdock.settings.shutil.copy2", side_effect=OSError("denied")):
            with pytest.raises(SettingsWriteError):
                merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert json.loads(settings_file.read_text()) == {"a": 1}

    def test_write_failure_raises_settings_write_error(self, settings_file):
        _write(settings_file, {"a": 1})
        with patch("memdock.settings.atomic_write_text", side_effect=OSError("denied")):
            with pytest.raises(SettingsWriteError):
                merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert json.loads(settings_file.read_text()) == {"a": 1}


class TestUnparsableDocument:
    def test_proceeds_with_empty_document_and_warns(self, settings_file):
        _write(settings_file, "{ this is not json")

        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)

        assert result.warnings
        assert "invalid" in result.warnings[0]
        assert json.loads(settings_file.read_text()) == {"mcpServers": {"memory": ENTRY}}

    def test_unparsable_content_is_kept_in_backup(self, settings_file):
        _write(settings_file, "{ broken")
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert result.backup_path.read_text() == "{ broken"

    def test_non_object_document_starts_fresh(self, settings_file):
        _write(settings_file, "[1, 2, 3]")
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert any("not a JSON object" in w for w in result.warnings)

    def test_empty_file_is_treated_as_empty_document(self, settings_file):
        _write(settings_file, "")
        result = merge_entry(settings_file, MCP_NAMESPACE, "memory", ENTRY, now=NOW)
        assert result.warnings == []
        assert json.loads(settings_file.read_text()) == {"mcpServers": {"memory": ENTRY}}

    def test_declined_discard_aborts_without_changes(self, settings_file):
        _write(settings_file, "{ broken")
        prompts = []

        def decline(msg):
            prompts.append(msg)
            return False

        result = merge_entry(
            settings_file, MCP_NAMESPACE, "memory", ENTRY, confirm_discard=decline, now=NOW
        )

        assert result.aborted is True
        assert result.changed is False
        assert len(prompts) == 1
        assert settings_file.read_text() == "{ broken"
        assert not list(settings_file.parent.glob("settings.json.backup-*"))

    def test_confirm_not_asked_for_valid_document(self, settings_file):
        _write(settings_file, {"a": 1})
        asked = []
        merge_entry(
            settings_file,
            MCP_NAMESPACE,
            "memory",
            ENTRY,
            confirm_discard=lambda m: asked.append(m) or True,
            now=NOW,
        )
        assert asked == []


class TestReadEntry:
    def test_reads_entry(self, settings_file):
        _write(settings_file, {"mcpServers": {"memory": ENTRY}})
        assert read_entry(settings_file, MCP_NAMESPACE, "memory") == ENTRY

    def test_missing_file(self, settings_file):
        assert read_entry(settings_file, MCP_NAMESPACE, "memory") is None

    def test_invalid_json(self, settings_file):
        _write(settings_file, "nope")
        assert read_entry(settings_file, MCP_NAMESPACE, "memory") is None
