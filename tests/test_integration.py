"""End-to-end runs of init followed by generate on a scratch Next.js project."""

import json
import shutil
from pathlib import Path

from click.testing import CliRunner

from api_spec_gen.cli import main

FIXTURES = Path(__file__).parent / "fixtures"


def _scaffold(tmp_path, monkeypatch, schema: str = "typescript") -> Path:
    project = tmp_path / "web"
    shutil.copytree(FIXTURES / "ts_project" / "src", project / "src")
    monkeypatch.chdir(project)
    result = CliRunner().invoke(main, ["init", "--schema", schema, "--no-install"])
    assert result.exit_code == 0, result.output
    return project


class TestInitThenGenerate:
    def test_full_pipeline(self, tmp_path, monkeypatch):
        project = _scaffold(tmp_path, monkeypatch)
        assert (project / "src" / "app" / "api-docs" / "page.tsx").exists()

        result = CliRunner().invoke(main, ["generate"])
        assert result.exit_code == 0, result.output
        assert "Warning" not in result.output

        spec = json.loads((project / "public" / "openapi.json").read_text())
        assert spec["openapi"] == "3.0.0"
        assert spec["info"]["title"] == "API Documentation"
        assert "ui" not in spec

        get_order = spec["paths"]["/orders/{id}"]["get"]
        assert list(get_order["responses"]) == ["200", "400", "500", "404"]

        responses = spec["components"]["responses"]
        assert set(responses) == {"400", "401", "403", "404", "500"}
        assert responses["404"]["content"]["application/json"]["schema"]["properties"]["error"]["example"] == "Resource not found"

        create_order = spec["paths"]["/orders"]["post"]
        assert list(create_order["responses"]) == ["201", "400", "401", "403", "500"]

    def test_regeneration_is_byte_identical(self, tmp_path, monkeypatch):
        _scaffold(tmp_path, monkeypatch)
        output = Path("public") / "openapi.json"

        assert CliRunner().invoke(main, ["generate"]).exit_code == 0
        first = output.read_bytes()
        assert CliRunner().invoke(main, ["generate"]).exit_code == 0
        assert output.read_bytes() == first

    def test_zod_schema_type_still_resolves_interfaces(self, tmp_path, monkeypatch):
        project = _scaffold(tmp_path, monkeypatch, schema="zod")

        result = CliRunner().invoke(main, ["generate", "--debug"])
        assert result.exit_code == 0, result.output

        spec = json.loads((project / "public" / "openapi.json").read_text())
        assert spec["components"]["schemas"]["Order"]["required"] == ["id", "status", "items", "createdAt"]
