from __future__ import annotations

import textwrap
from typing import Callable, List, Sequence, Union

import pytest

from jvm_analyzer.adapters.llm_base import LLMAdapter
from jvm_analyzer.config import Settings
from jvm_analyzer.pipeline import AnalysisPipeline

Scripted = Union[str, Exception]


class ScriptedAdapter(LLMAdapter):
    """Returns (or raises) the queued responses in order and records prompts."""

    name = "scripted"

    def __init__(self, responses: Sequence[Scripted]) -> None:
        self.responses: List[Scripted] = list(responses)
        self.prompts: List[str] = []
        self.models: List[str] = []

    def default_model(self) -> str:
        return "scripted-model"

    def generate(self, prompt: str, model: str | None = None) -> str:
        self.prompts.append(prompt)
        self.models.append(model or self.default_model())
        if not self.responses:
            raise AssertionError(f"Unexpected model call #{len(self.prompts)}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def make_pipeline(settings: Settings) -> Callable[..., tuple[AnalysisPipeline, ScriptedAdapter]]:
    def _make(*responses: Scripted) -> tuple[AnalysisPipeline, ScriptedAdapter]:
        adapter = ScriptedAdapter(responses)
        pipeline = AnalysisPipeline(settings, adapter_factory=lambda provider, _settings: adapter)
        return pipeline, adapter

    return _make


@pytest.fixture
def histogram_text() -> str:
    return textwrap.dedent(
        """\
         num     #instances         #bytes  class name (module)
        -------------------------------------------------------
           1:         15,000      2,000,000  [B (java.base@17.0.2)
           2:         37,500        900,000  java.lang.String (java.base@17.0.2)
           3:          1,234         56,789  com.example.Foo
           4:         15,625        500,000  java.util.HashMap$Node (java.base@17.0.2)
        Total        69,359      3,456,789
        """
    )


@pytest.fixture
def thread_dump_text() -> str:
    return textwrap.dedent(
        """\
        2024-05-01 10:00:00
        Full thread dump OpenJDK 64-Bit Server VM (17.0.2+8-86 mixed mode, sharing):

        "main" #1 prio=5 os_prio=0 cpu=120.00ms elapsed=10.00s tid=0x00007f nid=0x1 runnable
           java.lang.Thread.State: RUNNABLE
                at com.example.App.main(App.java:10)

        "worker-1" #12 prio=5 os_prio=0 tid=0x00007e nid=0x2 waiting for monitor entry
           java.lang.Thread.State: BLOCKED (on object monitor)
                at com.example.Cache.get(Cache.java:42)
                - waiting to lock <0x000000076ab62208> (a java.lang.Object)
        """
    )


@pytest.fixture
def flame_text() -> str:
    return textwrap.dedent(
        """\
        java.lang.Thread.run;com.example.Worker.loop;java.util.HashMap.resize 420
        java.lang.Thread.run;com.example.OrderService.price 310
        java.lang.Thread.run;com.example.Worker.loop;java.lang.String.format 95
        """
    )
