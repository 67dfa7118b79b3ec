"""Run the monitoring engine in the foreground."""
from __future__ import annotations

import logging
import threading

from django.core.management.base import BaseCommand, CommandError

from common.exceptions import PanelError
from hydropanel.runtime import get_runtime, reset_runtime

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Start monitoring sessions and block until interrupted."

    def add_arguments(self, parser):
        parser.add_argument(
            "--account",
            action="append",
            dest="accounts",
            default=[],
            help="Account number to monitor (repeatable). Defaults to every active account.",
        )
        parser.add_argument(
            "--interval",
            type=float,
            default=None,
            help="Seconds between reads (defaults to MONITOR_DEFAULT_INTERVAL).",
        )
        parser.add_argument(
            "--duration",
            type=float,
            default=None,
            help="Stop after this many seconds (runs until Ctrl+C when omitted).",
        )

    def handle(self, *args, **options):
        runtime = get_runtime()
        account_ids = options["accounts"] or [
            account.account_id
            for account in runtime.registry.list_accounts()
            if account.state.can_consume
        ]
        if not account_ids:
            raise CommandError("No accounts to monitor")

        started = 0
        for account_id in account_ids:
            try:
                runtime.monitor.start(account_id, options["interval"])
                started += 1
            except (PanelError, ValueError) as e:
                self.stderr.write(self.style.ERROR(f"{account_id}: {e}"))
        if not started:
            raise CommandError("No session could be started")

        self.stdout.write(self.style.SUCCESS(f"Monitoring {started} account(s). Press Ctrl+C to stop."))

        stop_event = threading.Event()
        try:
            stop_event.wait(options["duration"])
        except KeyboardInterrupt:
            logger.info("Monitoring interrupted by user")
        finally:
            for snapshot in runtime.monitor.sessions():
                self.stdout.write(
                    f"{snapshot.account_id}: {snapshot.state.value} "
                    f"last={snapshot.last_volume} failures={snapshot.consecutive_failures}"
                )
            reset_runtime()
