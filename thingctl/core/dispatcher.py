"""Routing of a parsed command line to metadata edits, listings or action calls."""

from __future__ import annotations

from collections.abc import Sequence

from thingctl.core import catalog
from thingctl.core.errors import ArgumentError, SelectionError, ThingctlError
from thingctl.core.invoke import fan_out, invoke_action, progress_printer, render_report
from thingctl.core.model import AggregateReport, TargetSet
from thingctl.core.selector import resolve_settled
from thingctl.core.settings import Settings
from thingctl.output import Output, banner, tag_summary
from thingctl.registries.base import Registry

_MISSING_ARGUMENT = {
    catalog.TAG: "No tag specified",
    catalog.REMOVE_TAG: "No tag specified",
    catalog.SET_NAME: "No name specified",
}


def _plural(count: int) -> str:
    return "device" if count == 1 else "devices"


class Dispatcher:
    def __init__(
        self,
        registry: Registry,
        out: Output | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.registry = registry
        self.out = out or Output()
        self.settings = settings or Settings()

    async def run(self, args: Sequence[str]) -> bool:
        """Resolve the selector in `args[0]` and dispatch the rest of the command."""
        if not args:
            return True
        targets = await resolve_settled(
            self.registry,
            args[0],
            attempts=self.settings.resolve_attempts,
            delay_s=self.settings.resolve_delay_s,
        )
        return await self.dispatch(targets, args)

    async def dispatch(self, targets: TargetSet, args: Sequence[str]) -> bool:
        try:
            if not targets:
                raise SelectionError(f"No devices matching {args[0]}")

            if len(args) > 1 and args[1] == catalog.METADATA:
                return await self._metadata(targets, args[2:])
            if len(args) > 1:
                return await self._action(targets, args[1], args[2:])

            self.print_devices(targets)
            return True
        except ThingctlError as exc:
            self.out.error(str(exc))
            return False

    async def _metadata(self, targets: TargetSet, args: Sequence[str]) -> bool:
        verb = args[0] if args else None

        if verb in catalog.MUTATION_VERBS:
            if len(args) < 2 or not args[1]:
                raise ArgumentError(_MISSING_ARGUMENT[verb])
            value = args[1]
            if verb == catalog.TAG:
                report = await fan_out(targets, lambda d, _: d.tag(value))
            elif verb == catalog.REMOVE_TAG:
                report = await fan_out(targets, lambda d, _: d.remove_tag(value))
            else:
                report = await fan_out(targets, lambda d, _: d.set_name(value))
            return self._report(report)

        if verb == catalog.ACTIONS:
            for device in targets:
                self.out.info(banner("ACTIONS", fg="black", bg="white"), device)
                with self.out.group():
                    names = sorted(device.actions)
                    self.out.info("\n".join(names) if names else "No actions")
            return True

        if verb is not None:
            raise ArgumentError(f"Unknown metadata command {verb}")

        for device in targets:
            self.out.info(banner("METADATA", fg="black", bg="white"), device)
            with self.out.group():
                self.out.info(device.definition())
        return True

    async def _action(self, targets: TargetSet, action: str, args: Sequence[str]) -> bool:
        self.out.info("Invoking", action, "on", str(len(targets)), _plural(len(targets)))
        report = await invoke_action(
            targets,
            action,
            args,
            on_progress=progress_printer(self.out),
        )
        return self._report(report)

    def _report(self, report: AggregateReport) -> bool:
        render_report(self.out, report)
        return report.ok or not self.settings.fail_on_device_error

    def print_devices(self, targets: TargetSet) -> None:
        table = self.out.table("Device", "Tags")
        for device in sorted(targets, key=lambda d: (d.name or d.id, d.id)):
            table.row(device, tag_summary(device.tags))
        table.print()

        self.out.info()
        self.out.info("Found", str(len(targets)), _plural(len(targets)))
