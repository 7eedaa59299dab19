"""
Tests for the generate -> execute -> render cycle.
"""

import asyncio

import pytest

from codecanvas.core.config import CodeCanvasConfig, RuntimeConfig
from codecanvas.core.exceptions import (
    ExecutionTimeoutError,
    GenerationError,
    RenderError,
    RuntimeUninitializedError,
    ScriptEvaluationError,
)
from codecanvas.models import EndpointGenerationClient, StaticCodeGenerator
from codecanvas.orchestrator import (
    Orchestrator,
    OrchestratorState,
    StatusLevel,
    TriggerControl,
)
from codecanvas.results import ResultKind
from codecanvas.runtime import RuntimeSession

S = OrchestratorState
HAPPY_PATH = [S.GENERATING, S.EXECUTING, S.RENDERING, S.IDLE]


class ScriptedGenerator:
    """Replays a list of replies; exceptions in the list are raised."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    async def generate(self, prompt):
        self.prompts.append(prompt)
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class GatedGenerator:
    """Blocks until released so tests can observe an in-flight cycle."""

    def __init__(self, code):
        self.code = code
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def generate(self, prompt):
        self.started.set()
        await self.release.wait()
        return self.code


@pytest.fixture
def make_orchestrator(session, renderer, container):
    statuses = []

    def factory(generator, **kwargs):
        kwargs.setdefault("on_status", statuses.append)
        orchestrator = Orchestrator(
            session=session,
            generator=generator,
            renderer=renderer,
            container=container,
            **kwargs,
        )
        orchestrator.statuses = statuses
        return orchestrator

    return factory


class TestSuccessfulCycle:
    @pytest.mark.asyncio
    async def test_text_cycle(self, make_orchestrator, container):
        orchestrator = make_orchestrator(ScriptedGenerator("print('done')"))

        report = await orchestrator.run("print done")

        assert report.succeeded
        assert report.result.kind is ResultKind.TEXT
        assert report.result.content == "done"
        assert report.code == "print('done')"
        assert report.state is S.IDLE
        assert report.elapsed_ms is not None and report.elapsed_ms >= 0
        assert orchestrator.state_history == HAPPY_PATH
        assert orchestrator.status.message == "Done"
        assert orchestrator.status.level is StatusLevel.SUCCESS
        assert orchestrator.trigger.enabled
        assert container.text_content() == "done"

    @pytest.mark.asyncio
    async def test_markup_cycle_skips_evaluation(self, make_orchestrator, container):
        orchestrator = make_orchestrator(StaticCodeGenerator("```html\n<div>hi</div>\n```"))

        report = await orchestrator.run("a greeting")

        assert report.result.kind is ResultKind.MARKUP
        assert "hi" in container.find("iframe").attributes["srcdoc"]
        messages = [entry.message for entry in orchestrator.console_log.entries]
        assert "HTML detected, rendering without execution" in messages

    @pytest.mark.asyncio
    async def test_structured_cycle(self, make_orchestrator):
        orchestrator = make_orchestrator(ScriptedGenerator("import json\njson.dumps([1, 2, 3])"))

        report = await orchestrator.run("list")

        assert report.result.kind is ResultKind.STRUCTURED
        assert report.result.content == "[\n  1,\n  2,\n  3\n]"

    @pytest.mark.asyncio
    async def test_empty_cycle(self, make_orchestrator):
        orchestrator = make_orchestrator(ScriptedGenerator("x = 1"))

        report = await orchestrator.run("assign")

        assert report.result.kind is ResultKind.EMPTY
        assert report.succeeded

    @pytest.mark.asyncio
    async def test_status_sequence(self, make_orchestrator):
        orchestrator = make_orchestrator(ScriptedGenerator("1 + 1"))

        await orchestrator.run("add")

        assert [status.message for status in orchestrator.statuses] == [
            "Generating code...",
            "Executing code...",
            "Done",
        ]

    @pytest.mark.asyncio
    async def test_namespace_persists_across_cycles(self, make_orchestrator):
        orchestrator = make_orchestrator(ScriptedGenerator("total = 40", "total + 2"))

        await orchestrator.run("define")
        report = await orchestrator.run("use")

        assert report.result.content == "42"

    @pytest.mark.asyncio
    async def test_pre_request_delay(self, make_orchestrator, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("codecanvas.orchestrator.asyncio.sleep", fake_sleep)
        orchestrator = make_orchestrator(ScriptedGenerator("1"), pre_request_delay=1.0)

        await orchestrator.run("one")

        assert delays == [1.0]


class TestFailures:
    @pytest.mark.asyncio
    async def test_rate_limited_generation(self, make_orchestrator, container):
        generator = ScriptedGenerator(
            GenerationError("Too many requests.", status_code=429, rate_limited=True),
            "print('ok')",
        )
        orchestrator = make_orchestrator(generator)

        report = await orchestrator.run("first")

        assert not report.succeeded
        assert isinstance(report.error, GenerationError)
        assert report.state is S.ERROR
        assert orchestrator.state_history == [S.GENERATING, S.ERROR]
        assert orchestrator.status.level is StatusLevel.ERROR
        assert "1-2 minutes" in orchestrator.status.message
        assert orchestrator.trigger.enabled
        assert container.find("div", class_="placeholder error") is not None

        report = await orchestrator.run("second")

        assert report.succeeded
        assert orchestrator.state_history == HAPPY_PATH
        assert container.text_content() == "ok"

    @pytest.mark.asyncio
    async def test_script_error(self, make_orchestrator, container):
        orchestrator = make_orchestrator(ScriptedGenerator("raise ValueError('boom')"))

        report = await orchestrator.run("explode")

        assert isinstance(report.error, ScriptEvaluationError)
        assert report.result.kind is ResultKind.ERROR
        assert report.code == "raise ValueError('boom')"
        assert orchestrator.state_history == [S.GENERATING, S.EXECUTING, S.ERROR]
        assert "ValueError: boom" in container.text_content()
        assert orchestrator.generated_code == "raise ValueError('boom')"

    @pytest.mark.asyncio
    async def test_timeout(self, make_orchestrator):
        orchestrator = make_orchestrator(
            ScriptedGenerator("while True:\n    pass"), execution_timeout=0.1
        )

        report = await orchestrator.run("spin")

        assert isinstance(report.error, ExecutionTimeoutError)
        assert orchestrator.state_history == [S.GENERATING, S.EXECUTING, S.ERROR]
        assert orchestrator.session.initialized

    @pytest.mark.asyncio
    async def test_uninitialized_session(self, bare_config, renderer, container):
        orchestrator = Orchestrator(
            session=RuntimeSession(bare_config),
            generator=ScriptedGenerator("1"),
            renderer=renderer,
            container=container,
        )

        report = await orchestrator.run("one")

        assert isinstance(report.error, RuntimeUninitializedError)
        assert "not ready" in container.text_content()

    @pytest.mark.asyncio
    async def test_render_failure(self, make_orchestrator, container):
        orchestrator = make_orchestrator(ScriptedGenerator("'image/png;base64,@@@'"))

        report = await orchestrator.run("broken plot")

        assert isinstance(report.error, RenderError)
        assert orchestrator.state_history == [S.GENERATING, S.EXECUTING, S.RENDERING, S.ERROR]
        assert "Invalid base64" in container.text_content()

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, make_orchestrator):
        orchestrator = make_orchestrator(ScriptedGenerator(KeyError("weird")))

        report = await orchestrator.run("x")

        assert isinstance(report.error, KeyError)
        assert orchestrator.state is S.ERROR
        assert orchestrator.trigger.enabled


class TestGuards:
    @pytest.mark.asyncio
    async def test_empty_prompt(self, make_orchestrator):
        generator = ScriptedGenerator()
        orchestrator = make_orchestrator(generator)

        assert await orchestrator.run("   ") is None
        assert orchestrator.status.message == "Enter a request"
        assert orchestrator.status.level is StatusLevel.WARNING
        assert generator.prompts == []
        assert orchestrator.state is S.IDLE

    @pytest.mark.asyncio
    async def test_single_flight(self, make_orchestrator):
        generator = GatedGenerator("print('once')")
        orchestrator = make_orchestrator(generator)

        first = asyncio.create_task(orchestrator.run("first"))
        await generator.started.wait()

        assert orchestrator.busy
        assert not orchestrator.trigger.enabled
        assert orchestrator.state is S.GENERATING
        assert await orchestrator.run("second") is None
        assert orchestrator.status.message == "A request is already running"

        generator.release.set()
        report = await first

        assert report.succeeded
        assert orchestrator.trigger.enabled
        assert not orchestrator.busy

    @pytest.mark.asyncio
    async def test_disabled_trigger_blocks_run(self, make_orchestrator):
        trigger = TriggerControl(enabled=False)
        orchestrator = make_orchestrator(ScriptedGenerator("1"), trigger=trigger)

        assert await orchestrator.run("x") is None

    @pytest.mark.asyncio
    async def test_console_log_cleared_each_cycle(self, make_orchestrator):
        orchestrator = make_orchestrator(ScriptedGenerator("print('a')", "print('b')"))

        await orchestrator.run("a")
        first_count = len(orchestrator.console_log)
        await orchestrator.run("b")

        assert len(orchestrator.console_log) == first_count
        assert orchestrator.console_log.entries[0].message == "Requesting code..."


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_prepare(self, bare_config, renderer, container):
        statuses = []
        orchestrator = Orchestrator(
            session=RuntimeSession(bare_config),
            generator=ScriptedGenerator(),
            renderer=renderer,
            container=container,
            on_status=statuses.append,
        )

        assert await orchestrator.prepare()
        assert orchestrator.session.initialized
        assert [s.message for s in statuses] == ["Initializing Python runtime...", "Ready"]
        assert statuses[-1].level is StatusLevel.SUCCESS

    @pytest.mark.asyncio
    async def test_prepare_failure(self, renderer, container):
        session = RuntimeSession(RuntimeConfig(capabilities=["definitely_not_installed_pkg"]))
        orchestrator = Orchestrator(
            session=session,
            generator=ScriptedGenerator(),
            renderer=renderer,
            container=container,
        )

        assert not await orchestrator.prepare()
        assert orchestrator.status.level is StatusLevel.ERROR
        assert "definitely_not_installed_pkg" in orchestrator.status.message
        assert not session.initialized

    @pytest.mark.asyncio
    async def test_clear_all(self, make_orchestrator, container):
        orchestrator = make_orchestrator(ScriptedGenerator("raise RuntimeError('x')"))
        await orchestrator.run("fail")

        orchestrator.clear_all()

        assert orchestrator.state is S.IDLE
        assert orchestrator.generated_code == ""
        assert orchestrator.elapsed_ms is None
        assert len(orchestrator.console_log) == 0
        assert orchestrator.status.message == "Ready"
        assert "The result will appear here" in container.text_content()

    def test_from_config(self, tmp_path):
        config = CodeCanvasConfig()
        config.runtime.capabilities = []
        config.runtime.timeout_seconds = 7.0
        config.generation.endpoint = "http://gen.local/api"
        config.generation.pre_request_delay_seconds = 0.5
        config.render.artifact_dir = str(tmp_path)

        orchestrator = Orchestrator.from_config(config)

        assert orchestrator.session is RuntimeSession.shared()
        assert isinstance(orchestrator.generator, EndpointGenerationClient)
        assert orchestrator.generator.endpoint == "http://gen.local/api"
        assert orchestrator.pre_request_delay == 0.5
        assert orchestrator.execution_timeout == 7.0
        assert orchestrator.renderer.store.directory == tmp_path


class TestAbortedCycles:
    @pytest.mark.asyncio
    async def test_system_exit_in_script_is_a_script_error(self, make_orchestrator, container):
        orchestrator = make_orchestrator(ScriptedGenerator("raise SystemExit(3)", "print('again')"))

        report = await orchestrator.run("exit")

        assert isinstance(report.error, ScriptEvaluationError)
        assert orchestrator.state is S.ERROR
        assert "SystemExit: 3" in container.text_content()

        report = await orchestrator.run("again")

        assert report is not None and report.succeeded
        assert container.text_content() == "again"

    @pytest.mark.asyncio
    async def test_cancelled_cycle_does_not_stay_busy(self, make_orchestrator):
        generator = GatedGenerator("print('never')")
        orchestrator = make_orchestrator(generator)

        task = asyncio.create_task(orchestrator.run("first"))
        await generator.started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert orchestrator.state is S.ERROR
        assert not orchestrator.busy
        assert orchestrator.trigger.enabled

        orchestrator.generator = ScriptedGenerator("print('recovered')")
        report = await orchestrator.run("second")

        assert report.succeeded
