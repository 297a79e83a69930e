from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Sequence

from jvm_analyzer.adapters.mock_adapter import MockAdapter
from jvm_analyzer.adapters.registry import Provider
from jvm_analyzer.config import load_settings
from jvm_analyzer.errors import AnalyzerError
from jvm_analyzer.models import ArtifactType, BundleResult, entry_name
from jvm_analyzer.pipeline import AnalysisPipeline
from jvm_analyzer.utils.io import read_text, write_json, write_text
from jvm_analyzer.utils.time import utc_timestamp

EXIT_USAGE = 1
EXIT_PARTIAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Summarize and analyze JVM diagnostics (jstack, jmap -histo, folded stacks) with an LLM."
    )
    parser.add_argument("--thread-dump", type=Path, help="jstack thread dump file")
    parser.add_argument("--heap-histogram", type=Path, help="jmap -histo output file")
    parser.add_argument("--flame-graph", type=Path, help="folded-stack flame graph file")
    parser.add_argument("--provider", choices=[p.value for p in Provider], help="LLM backend (default: LLM_PROVIDER)")
    parser.add_argument("--model", help="Model name override for the selected backend")
    parser.add_argument("--mode", choices=["live", "mock"], default="live")
    parser.add_argument("--env-file", type=Path, help="Path to a .env file")
    parser.add_argument("--out", type=Path, help="Directory for run outputs (a timestamped subfolder is created)")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def _collect_inputs(args: argparse.Namespace) -> Dict[ArtifactType, Path]:
    candidates = {
        ArtifactType.THREAD_DUMP: args.thread_dump,
        ArtifactType.HEAP_HISTOGRAM: args.heap_histogram,
        ArtifactType.FLAME_GRAPH: args.flame_graph,
    }
    return {artifact: path for artifact, path in candidates.items() if path is not None}


def _render(bundle: BundleResult) -> str:
    lines: List[str] = []
    for artifact, result in bundle.results.items():
        lines.append(f"--- {artifact.wire_name.upper()} summary ---")
        summary = result.summary.to_dict() if result.summary is not None else None
        lines.append(json.dumps(summary, indent=2))
        for warning in result.warnings:
            lines.append(f"[warning] {warning}")
        lines.append("")
    lines.append(bundle.combined_text())
    for key, error in bundle.errors.items():
        lines.append("")
        lines.append(f"[error] {entry_name(key)}: {error.message}")
        if error.hint:
            lines.append(f"[hint] {error.hint}")
    return "\n".join(lines)


def _write_outputs(out_dir: Path, bundle: BundleResult) -> Path:
    run_dir = out_dir / utc_timestamp()
    write_json(run_dir / "results.json", bundle.to_dict())
    write_text(run_dir / "analysis.md", bundle.combined_text() + "\n")
    return run_dir


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    inputs = _collect_inputs(args)
    if not inputs:
        parser.print_usage(sys.stderr)
        print("At least one of --thread-dump, --heap-histogram, --flame-graph is required.", file=sys.stderr)
        return EXIT_USAGE

    texts: Dict[ArtifactType, str] = {}
    for artifact, path in inputs.items():
        if not path.is_file():
            print(f"File not found: {path.resolve()}", file=sys.stderr)
            return EXIT_USAGE
        texts[artifact] = read_text(path)

    try:
        settings = load_settings(args.env_file)
    except AnalyzerError as exc:
        print(f"Error: {exc.message}\n{exc.hint}", file=sys.stderr)
        return EXIT_USAGE

    if args.mode == "mock":
        pipeline = AnalysisPipeline(settings, adapter_factory=lambda provider, _settings: MockAdapter())
    else:
        pipeline = AnalysisPipeline(settings)

    try:
        bundle = pipeline.run_bundle(texts, provider=args.provider, model=args.model)
    except AnalyzerError as exc:
        print(f"Error: {exc.message}\n{exc.hint}", file=sys.stderr)
        return EXIT_USAGE

    print(_render(bundle))
    if args.out:
        run_dir = _write_outputs(args.out, bundle)
        print(f"\nOutputs written to {run_dir}")
    return 0 if bundle.ok else EXIT_PARTIAL


if __name__ == "__main__":
    sys.exit(main())
