"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest
import respx
from httpx import Response
from typer.testing import CliRunner

from cvetrack.cli import app
from cvetrack.config import ENV_KEYS
from cvetrack.errors import StoreUnavailableError

from conftest import make_document

BASE_URL = "https://advisories.example/cves"

runner = CliRunner()


@pytest.fixture
def cli_env(monkeypatch: pytest.MonkeyPatch, temp_dir: Path, db_url: str) -> Path:
    """Point the CLI at a temp store and an isolated home and working directory."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(Path, "home", lambda: temp_dir)
    monkeypatch.chdir(temp_dir)
    monkeypatch.setenv("CVETRACK_DB_URL", db_url)
    monkeypatch.setenv("CVETRACK_REMOTE_BASE_URL", BASE_URL)
    return temp_dir


def _write(path: Path, document) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document))
    return path


class TestIngestCommand:
    """Tests for the ingest command."""

    def test_ingest_directory(self, cli_env: Path, full_document) -> None:
        _write(cli_env / "feed" / "a.json", make_document("CVE-2024-0001"))
        _write(cli_env / "feed" / "nested" / "b.json", full_document)

        result = runner.invoke(app, ["ingest", str(cli_env / "feed")])
        assert result.exit_code == 0, result.output
        assert "2/2 ingested, 2 new" in result.output

        shown = runner.invoke(app, ["show", "CVE-2023-4567"])
        assert shown.exit_code == 0
        assert "CVE-2023-4567" in shown.output
        assert "CRITICAL" in shown.output
        assert "Acme / Widget" in shown.output

    def test_ingest_with_failures(self, cli_env: Path) -> None:
        _write(cli_env / "feed" / "a.json", make_document())
        (cli_env / "feed" / "b.json").write_text("{broken")

        result = runner.invoke(app, ["ingest", str(cli_env / "feed"), "--workers", "2"])
        assert result.exit_code == 1
        assert "1/2 ingested" in result.output

    def test_ingest_empty_directory(self, cli_env: Path) -> None:
        (cli_env / "empty").mkdir()
        result = runner.invoke(app, ["ingest", str(cli_env / "empty")])
        assert result.exit_code == 0
        assert "No JSON files found" in result.output

    def test_ingest_missing_path(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["ingest", str(cli_env / "missing")])
        assert result.exit_code == 1
        assert "No such file or directory" in result.output

    def test_ingest_bad_policy(self, cli_env: Path) -> None:
        _write(cli_env / "a.json", make_document())
        result = runner.invoke(app, ["ingest", str(cli_env / "a.json"), "--policy", "append"])
        assert result.exit_code == 1
        assert "Unknown policy" in result.output

    def test_store_unavailable(self, cli_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def _unavailable(db_url):
            raise StoreUnavailableError("Cannot connect to store: refused")

        monkeypatch.setattr("cvetrack.cli.init_db", _unavailable)
        _write(cli_env / "a.json", make_document())
        result = runner.invoke(app, ["ingest", str(cli_env / "a.json")])
        assert result.exit_code == 2
        assert "Store unavailable" in result.output


class TestFetchCommand:
    """Tests for the fetch command."""

    def test_fetch_and_ingest(self, cli_env: Path) -> None:
        payload = json.dumps(make_document("CVE-2024-3094")).encode()
        with respx.mock:
            respx.get(f"{BASE_URL}/2024/3xxx/CVE-2024-3094.json").mock(
                return_value=Response(200, content=payload)
            )
            result = runner.invoke(app, ["fetch", "CVE-2024-3094"])
        assert result.exit_code == 0, result.output
        assert "1/1 ingested" in result.output

    def test_fetch_not_found(self, cli_env: Path) -> None:
        with respx.mock:
            respx.get(f"{BASE_URL}/2024/3xxx/CVE-2024-3094.json").mock(return_value=Response(404))
            result = runner.invoke(app, ["fetch", "CVE-2024-3094"])
        assert result.exit_code == 1
        assert "Nothing fetched" in result.output


class TestInspectCommands:
    """Tests for validate, show, product and decode."""

    def test_validate_valid(self, cli_env: Path, minimal_document) -> None:
        path = _write(cli_env / "ok.json", minimal_document)
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 0
        assert "is valid" in result.output

    def test_validate_invalid(self, cli_env: Path) -> None:
        path = _write(cli_env / "bad.json", make_document(descriptions=[]))
        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "violation(s)" in result.output

    def test_validate_json_report(self, cli_env: Path) -> None:
        path = _write(cli_env / "bad.json", make_document(descriptions=[]))
        result = runner.invoke(app, ["validate", "--json", str(path)])
        assert result.exit_code == 1
        assert '"valid": false' in result.output
        assert "containers.cna.descriptions" in result.output

    def test_show_unknown(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["show", "CVE-1999-0001"])
        assert result.exit_code == 1
        assert "not found" in result.output

    def test_product(self, cli_env: Path, full_document) -> None:
        _write(cli_env / "full.json", full_document)
        assert runner.invoke(app, ["ingest", str(cli_env / "full.json")]).exit_code == 0

        result = runner.invoke(app, ["product", "Acme", "Widget"])
        assert result.exit_code == 0
        assert "Acme / Widget" in result.output
        assert "(revision 1)" in result.output
        assert "Linux, Windows" in result.output
        assert "2.3.7: unaffected" in result.output

    def test_product_unknown(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["product", "Nobody", "Nothing"])
        assert result.exit_code == 1
        assert "in the catalog" in result.output

    def test_decode(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["decode", "CVSS:3.1/AV:N/AC:L/PR:N/UI:N/S:U/C:H/I:H/A:H"])
        assert result.exit_code == 0
        assert "CVSS 3.1" in result.output
        assert "attackVector" in result.output
        assert "NETWORK" in result.output

    def test_decode_unknown(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["decode", "nonsense"])
        assert result.exit_code == 1
        assert "Cannot determine" in result.output

    def test_version(self, cli_env: Path) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert result.output.startswith("cvetrack ")
