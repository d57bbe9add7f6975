"""Runtime owning every connection actor and probe of a test session."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import partial
from types import TracebackType

from loguru import logger

from sockprobe.actor import ConnectionActor, Correlate
from sockprobe.config import Settings
from sockprobe.endpoint import ConnectionEndpoint, Opener
from sockprobe.errors import ConfigurationError, ExpectTimeoutError, SockProbeError
from sockprobe.logging_utils import bind_unit
from sockprobe.probe import Probe

Scenario = Callable[["ProbeRuntime", Probe], Awaitable[None]]


@dataclass(frozen=True)
class UnitOutcome:
    """Result of one scenario run by ``ProbeRuntime.run_units``."""

    name: str
    error: BaseException | None = None
    elapsed: float = 0.0

    @property
    def passed(self) -> bool:
        return self.error is None


class ProbeRuntime:
    """Create actors and probes, and tear all of them down on exit."""

    def __init__(self, settings: Settings | None = None, *, opener: Opener | None = None) -> None:
        self.settings = settings or Settings()
        self._opener = opener or partial(ConnectionEndpoint.open, open_timeout=self.settings.open_timeout_seconds)
        self._actors: list[ConnectionActor] = []
        self._probes: list[Probe] = []
        self._closed = False

    async def __aenter__(self) -> ProbeRuntime:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.shutdown()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def actors(self) -> list[ConnectionActor]:
        return list(self._actors)

    @property
    def probes(self) -> list[Probe]:
        return list(self._probes)

    async def spawn_connection(
        self,
        uri: str | None = None,
        *,
        correlate: Correlate | None = None,
        name: str | None = None,
    ) -> ConnectionActor:
        self._ensure_open()
        target = uri or self.settings.web_socket_uri
        if not target:
            raise ConfigurationError("no endpoint URI given and SOCKPROBE_WEB_SOCKET_URI is not set")
        actor = await ConnectionActor.spawn(
            target,
            opener=self._opener,
            name=name or f"connection-{len(self._actors) + 1}",
            correlate=correlate,
            mailbox_size=self.settings.mailbox_size,
        )
        if self._closed:
            # shut down while the endpoint was opening
            await actor.stop()
            raise RuntimeError("probe runtime is shut down")
        self._actors.append(actor)
        return actor

    def create_probe(self, name: str | None = None) -> Probe:
        self._ensure_open()
        probe = Probe(
            name or f"probe-{len(self._probes) + 1}",
            expect_timeout=self.settings.expect_timeout_seconds,
            no_message_window=self.settings.no_message_window_seconds,
            mailbox_size=self.settings.mailbox_size,
        )
        self._probes.append(probe)
        return probe

    async def run_units(self, *scenarios: Scenario, timeout: float | None = None) -> list[UnitOutcome]:
        """Run scenarios concurrently, each with its own probe.

        A failing scenario is reported in its outcome and never interrupts the others.
        """
        return list(await asyncio.gather(*(self._run_unit(scenario, timeout) for scenario in scenarios)))

    async def shutdown(self) -> None:
        """Stop every actor and close every probe. Unsent stimuli are lost."""
        if self._closed:
            return
        self._closed = True
        for probe in self._probes:
            probe.close()
        results = await asyncio.gather(*(actor.stop() for actor in self._actors), return_exceptions=True)
        for actor, result in zip(self._actors, results, strict=True):
            if isinstance(result, BaseException):
                logger.opt(exception=result).warning("runtime.actor.stop.failed address={}", actor.address)
        logger.info("runtime.shutdown actors={} probes={}", len(self._actors), len(self._probes))

    async def _run_unit(self, scenario: Scenario, timeout: float | None) -> UnitOutcome:
        name = getattr(scenario, "__name__", "unit")
        probe = self.create_probe(name)
        bind_unit(name)
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            if timeout is None:
                await scenario(self, probe)
            else:
                await asyncio.wait_for(scenario(self, probe), timeout=timeout)
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except BaseException as exc:
            error = exc
            if isinstance(exc, TimeoutError) and timeout is not None:
                error = ExpectTimeoutError(f"unit {name} did not finish within {timeout:.3f}s")
            level = "INFO" if isinstance(error, (SockProbeError, AssertionError)) else "ERROR"
            logger.log(level, "unit.failed name={} error={!r}", name, error)
            return UnitOutcome(name, error, loop.time() - started)
        finally:
            probe.close()
        logger.info("unit.passed name={}", name)
        return UnitOutcome(name, None, loop.time() - started)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("probe runtime is shut down")
