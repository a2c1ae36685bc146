"""Concurrent fan-out of one call across a target set, and report rendering."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from thingctl.core.errors import ActionNotFoundError, TransportError
from thingctl.core.model import AggregateReport, Outcome, ProgressCallback, ProgressEvent, TargetSet
from thingctl.output import Output, banner
from thingctl.registries.base import Device

LOGGER = logging.getLogger(__name__)

DeviceCall = Callable[[Device, ProgressCallback], Awaitable[Any]]
ProgressHandler = Callable[[ProgressEvent], None]


async def _settle(
    device: Device,
    call: DeviceCall,
    on_progress: ProgressHandler | None,
) -> tuple[Outcome, TransportError | None]:
    settled = False

    def _progress(payload: Any) -> None:
        if settled:
            LOGGER.warning("Dropping progress from %s after it settled", device.id)
            return
        if on_progress is not None:
            on_progress(ProgressEvent(device=device, payload=payload))

    try:
        value = await call(device, _progress)
    except TransportError as exc:
        return Outcome(device=device, ok=False, reason=str(exc)), exc
    except Exception as exc:
        LOGGER.debug("Call on %s failed", device.id, exc_info=True)
        return Outcome(device=device, ok=False, reason=str(exc) or type(exc).__name__), None
    finally:
        settled = True
    return Outcome(device=device, ok=True, value=value), None


async def fan_out(
    targets: TargetSet,
    call: DeviceCall,
    *,
    on_progress: ProgressHandler | None = None,
) -> AggregateReport:
    """Run `call` on every device concurrently and wait for all of them to settle.

    Outcomes are reported in target-set order. A `TransportError` from any
    device is raised once every device has settled.
    """
    settled = await asyncio.gather(*(_settle(d, call, on_progress) for d in targets))
    for _, fault in settled:
        if fault is not None:
            raise fault
    return AggregateReport(outcomes=tuple(outcome for outcome, _ in settled))


async def invoke_action(
    targets: TargetSet,
    action: str,
    args: Sequence[str] = (),
    *,
    on_progress: ProgressHandler | None = None,
) -> AggregateReport:
    async def _call(device: Device, progress: ProgressCallback) -> Any:
        handler = device.actions.get(action)
        if handler is None:
            raise ActionNotFoundError(f"Device {device.id} has no action '{action}'")
        return await handler(list(args), progress)

    return await fan_out(targets, _call, on_progress=on_progress)


def progress_printer(out: Output) -> ProgressHandler:
    def _print(event: ProgressEvent) -> None:
        out.info(banner("PROGRESS", fg="black", bg="cyan"), event.device)
        with out.group():
            out.info(event.payload)

    return _print


def render_report(out: Output, report: AggregateReport) -> None:
    for outcome in report.outcomes:
        if outcome.ok:
            out.info(banner("SUCCESS", bg="green"), outcome.device)
            if outcome.value is not None:
                with out.group():
                    out.info(outcome.value)
        else:
            out.info(banner("ERROR", bg="red"), outcome.device)
            with out.group():
                out.info(outcome.reason)
