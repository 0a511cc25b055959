import json
from unittest import mock

import pytest

from nl2cypher.pipeline.cli import main
from nl2cypher.pipeline.llm_client import GenerationFailed


def _fake_generate(text=None, error=None):
    def generate(backend, system_prompt, user_prompt, **kwargs):
        if error is not None:
            raise error(backend, "HTTP 503")
        return text

    return generate


@pytest.fixture
def patch_generate():
    def _patch(**kwargs):
        return mock.patch("nl2cypher.pipeline.pipeline.generate_text", _fake_generate(**kwargs))

    return _patch


def test_prints_generated_statement(patch_generate, capsys):
    with patch_generate(text="MATCH (m:Movie) RETURN m.title"):
        code = main(["--nl", "movie titles", "--sample-db", "movies", "--no-spinner"])

    assert code == 0
    assert capsys.readouterr().out.strip().endswith("MATCH (m:Movie) RETURN m.title LIMIT 100")


def test_fallback_still_exits_zero(patch_generate, capsys):
    with patch_generate(error=GenerationFailed):
        code = main(["--nl", "find action movies", "--sample-db", "movies", "--no-spinner", "--verbose"])

    out = capsys.readouterr().out
    assert code == 0
    assert "Provenance: fallback" in out
    assert 'MATCH (m:Movie) WHERE m.genres CONTAINS "Action" RETURN m LIMIT 100' in out
    assert "Token usage" in out


def test_json_output_with_explanation(patch_generate, tmp_path, capsys):
    results = tmp_path / "results.json"
    results.write_text(json.dumps({"records": [{"m": {"labels": ["Movie"], "properties": {"title": "Heat"}}}]}))
    schema = tmp_path / "schema.txt"
    schema.write_text("Movie: title, releaseYear\n")

    with patch_generate(text="MATCH (m:Movie) RETURN m.title LIMIT 5"):
        code = main(
            ["--nl", "movie titles", "--schema-file", str(schema), "--results-file", str(results), "--json", "--no-spinner"]
        )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["query"]["statement"] == "MATCH (m:Movie) RETURN m.title LIMIT 5"
    assert payload["query"]["provenance"] == "generated"
    assert payload["explanation"]["text"] == "MATCH (m:Movie) RETURN m.title LIMIT 5"


def test_inline_json_schema(patch_generate, capsys):
    schema = json.dumps({"nodes": [{"label": "City", "properties": [{"name": "name"}]}], "relationships": []})
    with patch_generate(text="MATCH (c:City) RETURN c.name"):
        code = main(["--nl", "city names", "--schema", schema, "--no-spinner"])

    assert code == 0
    assert "MATCH (c:City) RETURN c.name LIMIT 100" in capsys.readouterr().out


@pytest.mark.parametrize(
    "argv",
    [
        ["--sample-db", "movies"],
        ["--nl", "people"],
        ["--nl", "people", "--schema", '{"nodes": "Person", "relationships": []}'],
        ["--nl", "people", "--schema-file", "/nonexistent/schema.json"],
        ["--nl", "people", "--sample-db", "movies", "--provider", "mistral"],
        ["--nl", "people", "--sample-db", "movies", "--results-file", "/nonexistent/results.json"],
    ],
)
def test_invalid_input_exits_one(argv, capsys):
    with mock.patch("nl2cypher.pipeline.pipeline.generate_text") as generate:
        assert main(argv + ["--no-spinner"]) == 1
    generate.assert_not_called()
    assert "error:" in capsys.readouterr().err


def test_status_prints_backend_configuration(capsys):
    assert main(["--status", "--provider", "anthropic"]) == 0

    status = json.loads(capsys.readouterr().out)
    assert status["provider"] == "anthropic"
    assert set(status) == {"provider", "model", "api_key_configured", "base_url"}


def test_sample_suite(patch_generate, tmp_path, capsys):
    manifest = tmp_path / "suite.json"
    manifest.write_text(json.dumps([{"name": "movies", "sample_db": "movies", "queries": ["titles", "actors"]}]))

    with patch_generate(text="MATCH (m:Movie) RETURN m.title"):
        assert main(["--sample-suite", str(manifest)]) == 0
    assert "Results: 2/2 generated, 0 fallback" in capsys.readouterr().out

    with patch_generate(error=GenerationFailed):
        assert main(["--sample-suite", str(manifest)]) == 2


def test_log_dir_writes_run_artifacts(patch_generate, tmp_path):
    with patch_generate(text="MATCH (m:Movie) RETURN m.title"):
        main(["--nl", "movie titles", "--sample-db", "movies", "--log-dir", str(tmp_path), "--no-spinner"])

    runs = [p for p in tmp_path.iterdir() if p.is_dir()]
    assert len(runs) == 1
    assert (runs[0] / "summary.json").exists()


def test_long_inline_json_schema(patch_generate, capsys):
    nodes = [{"label": f"Label{idx}", "properties": [{"name": "name"}, {"name": "createdAt"}]} for idx in range(20)]
    schema = json.dumps({"nodes": nodes, "relationships": []})
    assert len(schema) > 255

    with patch_generate(text="MATCH (n:Label7) RETURN n.name"):
        code = main(["--nl", "list labels", "--schema", schema, "--no-spinner"])

    assert code == 0
    assert "MATCH (n:Label7) RETURN n.name LIMIT 100" in capsys.readouterr().out


def test_long_inline_text_schema(patch_generate, capsys):
    schema = "Person: " + ", ".join(f"property{idx}" for idx in range(40))
    assert len(schema) > 255

    with patch_generate(text="MATCH (p:Person) RETURN p.property3"):
        code = main(["--nl", "people", "--schema", schema, "--no-spinner"])

    assert code == 0
    assert "MATCH (p:Person) RETURN p.property3 LIMIT 100" in capsys.readouterr().out


def test_schema_option_accepts_a_path(patch_generate, tmp_path, capsys):
    schema = tmp_path / "schema.txt"
    schema.write_text("City: name\n")

    with patch_generate(text="MATCH (c:City) RETURN c.name"):
        code = main(["--nl", "cities", "--schema", str(schema), "--no-spinner", "--json"])

    assert code == 0
    assert json.loads(capsys.readouterr().out)["query"]["provenance"] == "generated"
