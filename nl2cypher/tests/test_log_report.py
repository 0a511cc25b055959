from nl2cypher.pipeline.llm_client import Backend, GenerationFailed
from nl2cypher.pipeline.log_report import main, summarize
from nl2cypher.pipeline.pipeline import NL2CypherPipeline


def _generator(text=None, error=None):
    def generate(backend, system_prompt, user_prompt, **kwargs):
        if error is not None:
            raise error
        return text

    return generate


def test_summarize_counts_runs(tmp_path, movies_schema):
    log_dir = str(tmp_path)
    NL2CypherPipeline(backend="gemini", generate=_generator("MATCH (n) RETURN n LIMIT 100"), log_dir=log_dir).synthesize_query(
        "find action movies", movies_schema
    )
    NL2CypherPipeline(backend="gemini", generate=_generator("MATCH (m:Movie) RETURN m.title"), log_dir=log_dir).synthesize_query(
        "movie titles", movies_schema
    )
    NL2CypherPipeline(
        backend="gemini", generate=_generator(error=GenerationFailed(Backend.GEMINI, "HTTP 500")), log_dir=log_dir
    ).summarize_results("MATCH (m:Movie) RETURN m LIMIT 100", [], "movies")

    report = summarize(log_dir)

    assert report["total_runs"] == 3
    assert report["status_counts"] == {"rejected": 1, "accepted": 1, "generation_failed": 1}
    assert report["kind_counts"] == {"query": 2, "explain": 1}
    assert report["provenance_counts"] == {"fallback": 2, "generated": 1}
    assert report["top_rejections"] == [("overly generic statement", 1)]


def test_summarize_empty_directory(tmp_path):
    report = summarize(str(tmp_path / "missing"))

    assert report["total_runs"] == 0
    assert report["top_errors"] == []


def test_main_prints_report(tmp_path, capsys, movies_schema):
    NL2CypherPipeline(
        backend="openai", generate=_generator(error=GenerationFailed(Backend.OPENAI, "HTTP 401")), log_dir=str(tmp_path)
    ).synthesize_query("people", movies_schema)

    assert main(["--logs", str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert "Total runs: 1" in out
    assert "generation_failed: 1" in out
    assert "HTTP 401" in out
