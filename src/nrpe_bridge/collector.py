"""Scrape orchestration: run a batch of commands against one agent.

One scrape is a sequential loop over the configured commands with a fresh
connection per command. Samples for a command are complete before the next
command starts, and within a command the fixed status samples precede any
perfdata samples.
"""

from __future__ import annotations

import ssl
import time
from collections.abc import Sequence
from typing import Final

from nrpe_bridge.const import DEFAULT_NRPE_PORT, NRPE_BRIDGE_CONNECT_TIMEOUT, NRPE_BRIDGE_IO_TIMEOUT
from nrpe_bridge.correlation import correlation_context, get_correlation_id
from nrpe_bridge.logging_abstraction import get_logger
from nrpe_bridge.metrics import registry
from nrpe_bridge.metrics.types import MetricKind, MetricSample
from nrpe_bridge.perfdata.naming import NamingConfig, derive_samples
from nrpe_bridge.perfdata.parser import parse_perfdata
from nrpe_bridge.profiles import CommandSpec
from nrpe_bridge.protocol.exceptions import NrpeProtocolError
from nrpe_bridge.protocol.nrpe_protocol import NrpeProtocol
from nrpe_bridge.protocol.packet_types import NRPE_PACKET_VERSION_2, NrpeStatus
from nrpe_bridge.transport.exceptions import DialError
from nrpe_bridge.transport.session import run_command
from nrpe_bridge.transport.socket_abstraction import split_target, tcp_stream_factory
from nrpe_bridge.transport.types import CommandResult, StreamFactory

logger = get_logger(__name__)

UP_METRIC: Final = "nrpe_up"
UP_HELP: Final = "Indicates whether or not nrpe agent is up"
COMMAND_OK_METRIC: Final = "nrpe_command_ok"
COMMAND_OK_HELP: Final = (
    "Indicates whether or not the command was a success (0: cmd status code did not equal 0 | 1: ok)"
)
COMMAND_STATUS_METRIC: Final = "nrpe_command_status"
COMMAND_STATUS_HELP: Final = (
    "Indicates the status of the command (nrpe status: 0: OK | 1: WARNING | 2: CRITICAL | 3: UNKNOWN)"
)
COMMAND_DURATION_METRIC: Final = "nrpe_command_duration"
COMMAND_DURATION_HELP: Final = "Length of time the NRPE command took"
SCRAPE_DURATION_METRIC: Final = "nrpe_scrape_duration"
SCRAPE_DURATION_HELP: Final = "Length of time the NRPE commands took"
COMMAND_LABEL: Final = "command"


def _gauge(name: str, help_text: str, value: float, command: str | None = None) -> MetricSample:
    if command is None:
        return MetricSample(name=name, help=help_text, kind=MetricKind.GAUGE, value=value)
    return MetricSample(
        name=name,
        help=help_text,
        kind=MetricKind.GAUGE,
        value=value,
        label_keys=(COMMAND_LABEL,),
        label_values=(command,),
    )


class NrpeCollector:
    """Runs a list of commands against one NRPE agent and returns metric samples.

    The collector holds only read-only configuration, so one instance may be
    scraped concurrently; every scrape owns its own connections.
    """

    def __init__(
        self,
        target: str,
        commands: Sequence[CommandSpec],
        *,
        stream_factory: StreamFactory | None = None,
        ssl_context: ssl.SSLContext | None = None,
        protocol: NrpeProtocol | None = None,
        connect_timeout: float = NRPE_BRIDGE_CONNECT_TIMEOUT,
        io_timeout: float = NRPE_BRIDGE_IO_TIMEOUT,
        version: int = NRPE_PACKET_VERSION_2,
        exchange_timeout: float | None = None,
    ):
        """
        Args:
            target: Agent address as ``host[:port]``
            commands: Commands to run, in order
            stream_factory: Opens one connected stream per call (defaults to TCP dialing of target)
            ssl_context: TLS context for the default TCP factory
            protocol: Packet codec (a fresh one when omitted)
            connect_timeout: Dial deadline in seconds
            io_timeout: Per read/write deadline in seconds
            version: NRPE packet version
            exchange_timeout: Overall deadline for one exchange

        Raises:
            ValueError: If target cannot be parsed and no stream_factory is given
        """
        self.target = target
        self.commands = tuple(commands)
        self.protocol = protocol if protocol is not None else NrpeProtocol()
        self.version = version
        self.exchange_timeout = exchange_timeout
        if stream_factory is None:
            host, port = split_target(target, DEFAULT_NRPE_PORT)
            stream_factory = tcp_stream_factory(
                host,
                port,
                connect_timeout=connect_timeout,
                io_timeout=io_timeout,
                ssl_context=ssl_context,
            )
        self.stream_factory = stream_factory

    async def scrape(self) -> list[MetricSample]:
        """Run every command once and return the resulting samples.

        A dial failure ends the batch and the result is ``nrpe_up 0`` alone,
        discarding samples of earlier commands. Any other failure only marks
        its own command as failed.
        """
        with correlation_context(get_correlation_id()):
            return await self._scrape()

    async def _scrape(self) -> list[MetricSample]:
        samples: list[MetricSample] = []
        scrape_start = time.perf_counter()

        logger.info(
            "Scrape started",
            extra={"target": self.target, "command_count": len(self.commands)},
        )

        for spec in self.commands:
            command_start = time.perf_counter()
            try:
                result = await self._run(spec)
            except DialError as e:
                logger.warning(
                    "Target unreachable, aborting scrape: %s",
                    e,
                    extra={"target": self.target, "command": spec.command},
                )
                registry.record_dial_error(self.target)
                registry.record_scrape("down", time.perf_counter() - scrape_start)
                return [_gauge(UP_METRIC, UP_HELP, 0)]
            except NrpeProtocolError as e:
                logger.warning(
                    "Command failed: %s",
                    e,
                    extra={"target": self.target, "command": spec.command, "error_type": type(e).__name__},
                )
                samples.append(_gauge(COMMAND_OK_METRIC, COMMAND_OK_HELP, 0, spec.command))
                continue

            samples.extend(self._command_samples(spec, result, time.perf_counter() - command_start))

        scrape_duration = time.perf_counter() - scrape_start
        samples.append(_gauge(SCRAPE_DURATION_METRIC, SCRAPE_DURATION_HELP, scrape_duration))
        samples.append(_gauge(UP_METRIC, UP_HELP, 1))
        registry.record_scrape("up", scrape_duration)

        logger.info(
            "Scrape finished",
            extra={
                "target": self.target,
                "sample_count": len(samples),
                "elapsed_ms": round(scrape_duration * 1000, 1),
            },
        )
        return samples

    async def _run(self, spec: CommandSpec) -> CommandResult:
        command = spec.to_command()
        # Oversize commands fail here, before any connection is opened
        self.protocol.validate_command(command)
        return await run_command(
            self.stream_factory,
            command,
            protocol=self.protocol,
            version=self.version,
            timeout=self.exchange_timeout,
            target=self.target,
        )

    def _command_samples(self, spec: CommandSpec, result: CommandResult, duration: float) -> list[MetricSample]:
        samples = [
            _gauge(COMMAND_OK_METRIC, COMMAND_OK_HELP, 1 if result.status is NrpeStatus.OK else 0, spec.command),
            _gauge(COMMAND_STATUS_METRIC, COMMAND_STATUS_HELP, int(result.status), spec.command),
            _gauge(COMMAND_DURATION_METRIC, COMMAND_DURATION_HELP, duration, spec.command),
        ]
        logger.debug(
            "Command result",
            extra={
                "target": self.target,
                "command": spec.command,
                "status": result.status.name,
                "output": result.output_text,
            },
        )
        if spec.performance:
            fields = parse_perfdata(result.output_text)
            samples.extend(derive_samples(fields, NamingConfig.from_command_spec(spec)))
        return samples
