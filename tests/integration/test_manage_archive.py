"""
Integration tests for the manage_archive maintenance script.
"""

import importlib.util
import json
import zipfile
from pathlib import Path

import pytest

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "scripts" / "manage_archive.py"


@pytest.fixture(scope="module")
def manage_archive():
    spec = importlib.util.spec_from_file_location("manage_archive", SCRIPT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'cli.db'}"


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestImportCommand:
    """import reads JSON files and zip exports."""

    def test_import_json_then_stats(self, manage_archive, database_url, tmp_path, claude_conversation, capsys):
        export = write_json(tmp_path / "conversations.json", [claude_conversation])

        assert manage_archive.main(["--database-url", database_url, "import", str(export)]) == 0
        assert manage_archive.main(["--database-url", database_url, "stats"]) == 0

        output = capsys.readouterr().out
        assert "total: 1" in output
        assert "claude: 1" in output

    def test_import_zip(self, manage_archive, database_url, tmp_path, claude_conversation, chatgpt_conversation):
        archive = tmp_path / "export.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("conversations.json", json.dumps([chatgpt_conversation]))
            zf.writestr("claude/conversations.json", json.dumps([claude_conversation]))
            zf.writestr("README.txt", "not json")

        assert manage_archive.main(["--database-url", database_url, "import", str(archive)]) == 0

        from convokeep.db.storage_manager import StorageManager
        manager = StorageManager(database_url)
        try:
            assert manager.get_conversations({"count_only": True}) == 2
        finally:
            manager.close()

    def test_import_invalid_json_fails(self, manage_archive, database_url, tmp_path):
        broken = tmp_path / "broken.json"
        broken.write_text("{not json", encoding="utf-8")

        assert manage_archive.main(["--database-url", database_url, "import", str(broken)]) == 1

    def test_import_bad_zip_fails(self, manage_archive, database_url, tmp_path):
        fake = tmp_path / "fake.zip"
        fake.write_text("plain text", encoding="utf-8")

        assert manage_archive.main(["--database-url", database_url, "import", str(fake)]) == 1


class TestExportAndTags:
    """export writes a backup; tags lists, renames and deletes."""

    def test_export_and_reimport(self, manage_archive, database_url, tmp_path, native_factory):
        source = write_json(tmp_path / "native.json", [native_factory("a", tags=["work"])])
        output = tmp_path / "backup.json"

        manage_archive.main(["--database-url", database_url, "import", str(source)])
        assert manage_archive.main(["--database-url", database_url, "export", "--output", str(output)]) == 0

        backup = json.loads(output.read_text(encoding="utf-8"))
        assert backup["source"] == "convokeep"
        assert backup["conversation_count"] == 1

        other_url = f"sqlite:///{tmp_path / 'other.db'}"
        assert manage_archive.main(["--database-url", other_url, "import", str(output)]) == 0

    def test_tag_commands(self, manage_archive, database_url, tmp_path, native_factory, capsys):
        source = write_json(tmp_path / "native.json", [native_factory("a", tags=["work"]),
                                                       native_factory("b", tags=["work", "home"])])
        manage_archive.main(["--database-url", database_url, "import", str(source)])
        capsys.readouterr()

        manage_archive.main(["--database-url", database_url, "tags"])
        listing = capsys.readouterr().out.splitlines()
        assert [line.split() for line in listing] == [["2", "work"], ["1", "home"]]

        manage_archive.main(["--database-url", database_url, "tags", "--rename", "work", "job"])
        manage_archive.main(["--database-url", database_url, "tags", "--delete", "home"])
        manage_archive.main(["--database-url", database_url, "tags"])
        assert [line.split() for line in capsys.readouterr().out.splitlines()] == [["2", "job"]]
