from __future__ import annotations

import json

import pytest

from jvm_analyzer.adapters.mock_adapter import MockAdapter
from jvm_analyzer.adapters.registry import Provider
from jvm_analyzer.config import Settings
from jvm_analyzer.errors import (
    BackendUnavailable,
    ConfigurationError,
    ModelInvocationError,
    UnsupportedArtifactType,
)
from jvm_analyzer.models import (
    ArtifactType,
    FlameGraphSummary,
    HeapEntry,
    HeapHistogramSummary,
    ThreadDumpSummary,
)
from jvm_analyzer.pipeline import AnalysisPipeline

THREAD_JSON = json.dumps(
    {"type": "jstack", "totalThreads": "10", "byState": {"RUNNABLE": "4", "BLOCKED": "1"}}
)


def test_thread_dump_runs_summary_then_analysis(make_pipeline, thread_dump_text):
    pipeline, adapter = make_pipeline(THREAD_JSON, "Two threads contend on Cache.get.")

    result = pipeline.analyze_file("thread-dump", thread_dump_text)

    assert result.summary == ThreadDumpSummary(total_threads=10, by_state={"RUNNABLE": 4, "BLOCKED": 1})
    assert result.analysis_text == "Two threads contend on Cache.get."
    assert "precise data extractor" in adapter.prompts[0]
    assert "senior JVM performance engineer" in adapter.prompts[1]
    assert all(thread_dump_text in prompt for prompt in adapter.prompts)
    assert adapter.models == ["scripted-model", "scripted-model"]


def test_wire_names_are_accepted_and_model_override_is_used(make_pipeline, flame_text):
    pipeline, adapter = make_pipeline(
        'Result: {"totalSamples": 825, "topFunctions": [{"name": "a", "samples": 5}]}',
        "hot path: HashMap.resize",
    )

    result = pipeline.analyze_file("flame", flame_text, model="custom-model")

    assert isinstance(result.summary, FlameGraphSummary)
    assert result.summary.total_samples == 825
    assert adapter.models == ["custom-model", "custom-model"]


def test_non_conformant_payload_is_recorded_as_warning(make_pipeline, thread_dump_text):
    pipeline, _ = make_pipeline(THREAD_JSON, "analysis")

    result = pipeline.analyze_file(ArtifactType.THREAD_DUMP, thread_dump_text)

    assert any(warning.startswith("summary: totalThreads:") for warning in result.warnings)


def test_heap_garbage_recovers_locally(make_pipeline):
    raw = "   1:     1,234     56,789  com.example.Foo\n   2:     10     1,000  com.example.Bar\n"
    pipeline, adapter = make_pipeline("garbage", "still garbage", "more garbage", "Heap looks leaky.")

    result = pipeline.analyze_file("heap-histogram", raw)

    assert result.summary.top_by_bytes[0] == HeapEntry(
        class_name="com.example.Foo", bytes=56_789, instances=1_234
    )
    assert result.summary.total_bytes == 57_789
    assert result.analysis_text == "Heap looks leaky."
    assert len(adapter.prompts) == 4
    assert any("aggregated 2 histogram rows locally" in warning for warning in result.warnings)


def test_heap_garbage_without_rows_is_empty_not_error(make_pipeline):
    pipeline, adapter = make_pipeline("garbage", "garbage again", "analysis text")

    result = pipeline.analyze_file("jmap", "nothing that looks like a histogram")

    assert result.summary == HeapHistogramSummary(total_bytes=0, top_by_bytes=[])
    assert result.to_dict()["summary"] == {"type": "jmap", "totalBytes": 0, "topByBytes": []}
    assert len(adapter.prompts) == 3


def test_heap_first_summary_backend_error_is_absorbed(make_pipeline, histogram_text):
    good = json.dumps({"topByBytes": [{"className": "[B", "bytes": "2,000,000", "instances": "15,000"}]})
    pipeline, adapter = make_pipeline(
        BackendUnavailable("Gemini", "gemini-flash-latest", "503", "try later"),
        good,
        "analysis",
    )

    result = pipeline.analyze_file("heap-histogram", histogram_text)

    assert result.summary.total_bytes == 2_000_000
    assert result.summary.top_by_bytes == [HeapEntry(class_name="[B", bytes=2_000_000, instances=15_000)]
    assert result.warnings[0].startswith("summary: backend error:")


def test_heap_usable_first_answer_skips_fallback(make_pipeline, histogram_text):
    good = json.dumps({"totalBytes": 100, "topByBytes": [{"className": "X", "bytes": 100, "instances": 1}]})
    pipeline, adapter = make_pipeline(good, "analysis")

    result = pipeline.analyze_file("heap-histogram", histogram_text)

    assert result.summary.total_bytes == 100
    assert len(adapter.prompts) == 2


def test_thread_dump_summary_error_propagates(make_pipeline, thread_dump_text):
    error = ModelInvocationError("Gemini", "bad-model", "404 not found", "set GEMINI_MODEL")
    pipeline, _ = make_pipeline(error)

    with pytest.raises(ModelInvocationError) as excinfo:
        pipeline.analyze_file("thread-dump", thread_dump_text)

    assert excinfo.value is error


def test_analysis_error_propagates_for_heap(make_pipeline, histogram_text):
    good = json.dumps({"totalBytes": 1, "topByBytes": [{"className": "X", "bytes": 1, "instances": 1}]})
    pipeline, _ = make_pipeline(good, BackendUnavailable("Ollama", "llama3", "refused", "start it"))

    with pytest.raises(BackendUnavailable):
        pipeline.analyze_file("heap-histogram", histogram_text)


def test_unsupported_artifact_raises_before_any_call(make_pipeline):
    pipeline, adapter = make_pipeline()

    with pytest.raises(UnsupportedArtifactType):
        pipeline.analyze_file("gc-log", "text")
    assert adapter.prompts == []


def test_unknown_provider_is_a_configuration_error(make_pipeline, thread_dump_text):
    pipeline, _ = make_pipeline()

    with pytest.raises(ConfigurationError):
        pipeline.analyze_file("thread-dump", thread_dump_text, provider="openai")


def test_provider_defaults_from_settings_and_adapters_are_reused(thread_dump_text):
    built = []

    def factory(provider, settings):
        built.append(provider)
        return MockAdapter()

    pipeline = AnalysisPipeline(Settings(provider="ollama"), adapter_factory=factory)
    pipeline.analyze_file("thread-dump", thread_dump_text)
    pipeline.analyze_file("thread-dump", thread_dump_text)

    assert built == [Provider.OLLAMA]


def test_bundle_keeps_partial_results(make_pipeline, thread_dump_text, histogram_text, flame_text):
    heap_json = json.dumps({"totalBytes": 5, "topByBytes": [{"className": "X", "bytes": 5, "instances": 1}]})
    pipeline, _ = make_pipeline(
        THREAD_JSON,
        "thread analysis",
        heap_json,
        BackendUnavailable("Gemini", "gemini-flash-latest", "timed out", "try later"),
        '{"totalSamples": 3, "topFunctions": []}',
        "flame analysis",
    )

    bundle = pipeline.run_bundle(
        {"flame": flame_text, "jstack": thread_dump_text, "heap-histogram": histogram_text}
    )

    assert set(bundle.results) == {ArtifactType.THREAD_DUMP, ArtifactType.FLAME_GRAPH}
    assert set(bundle.errors) == {ArtifactType.HEAP_HISTOGRAM}
    assert not bundle.ok
    assert bundle.combined_text() == "--- JSTACK ---\nthread analysis\n\n--- FLAME ---\nflame analysis"
    payload = bundle.to_dict()
    assert payload["errors"]["jmap"]["kind"] == "BackendUnavailable"
    assert payload["errors"]["jmap"]["hint"] == "try later"
    assert payload["results"]["jstack"]["summary"]["totalThreads"] == 10


def test_bundle_rejects_duplicate_artifact_types(make_pipeline):
    pipeline, _ = make_pipeline()

    with pytest.raises(ConfigurationError):
        pipeline.run_bundle({"jstack": "a", "thread-dump": "b"})


def test_mock_garbage_scenario_exercises_fallback(settings, histogram_text):
    adapter = MockAdapter(scenario="garbage")
    pipeline = AnalysisPipeline(settings, adapter_factory=lambda provider, _settings: adapter)

    result = pipeline.analyze_file("heap-histogram", histogram_text)

    assert len(adapter.calls) == 4
    assert result.summary.total_bytes == 3_456_789
    assert result.analysis_text.startswith("Mock analysis")


DEEPLY_NESTED = 'Sure! {"a": ' + "[" * 100_000 + "]" * 100_000 + "}"
HEAP_JSON = json.dumps({"totalBytes": 5, "topByBytes": [{"className": "X", "bytes": 5, "instances": 1}]})


def test_heap_deeply_nested_reply_still_reaches_fallback(make_pipeline, histogram_text):
    pipeline, adapter = make_pipeline(DEEPLY_NESTED, HEAP_JSON, "analysis")

    result = pipeline.analyze_file("heap-histogram", histogram_text)

    assert result.summary.total_bytes == 5
    assert "<rank>: <instances> <bytes> <class name>" in adapter.prompts[1]
    assert any(warning.startswith("summary: response was not a JSON object") for warning in result.warnings)


def test_bundle_records_unknown_entry_and_keeps_the_rest(make_pipeline, thread_dump_text):
    pipeline, _ = make_pipeline(THREAD_JSON, "thread analysis")

    bundle = pipeline.run_bundle({"jstack": thread_dump_text, "gc-log": "x"})

    assert set(bundle.results) == {ArtifactType.THREAD_DUMP}
    assert set(bundle.errors) == {"gc-log"}
    assert not bundle.ok
    payload = bundle.to_dict()
    assert payload["errors"]["gc-log"]["kind"] == "UnsupportedArtifactType"
    assert payload["results"]["jstack"]["analysis"] == "thread analysis"


def test_bundle_survives_deeply_nested_heap_reply(make_pipeline, thread_dump_text, histogram_text):
    pipeline, _ = make_pipeline(THREAD_JSON, "thread analysis", DEEPLY_NESTED, HEAP_JSON, "heap analysis")

    bundle = pipeline.run_bundle({"jstack": thread_dump_text, "jmap": histogram_text})

    assert bundle.ok
    assert bundle.combined_text() == "--- JSTACK ---\nthread analysis\n\n--- JMAP ---\nheap analysis"
