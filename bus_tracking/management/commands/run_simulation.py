import asyncio
import json

from django.core.management.base import BaseCommand

from bus_tracking.apps import get_hub


class Command(BaseCommand):
    help = "Run the bus position simulation without a web server."

    def add_arguments(self, parser):
        parser.add_argument(
            "--duration",
            type=float,
            default=None,
            help="Stop after this many seconds (default: run until interrupted).",
        )
        parser.add_argument(
            "--echo",
            action="store_true",
            help="Print every message a subscriber would receive.",
        )

    def handle(self, *args, **options):
        try:
            ticks = asyncio.run(self._simulate(options["duration"], options["echo"]))
        except KeyboardInterrupt:
            self.stdout.write("Interrupted.")
            return
        self.stdout.write(self.style.SUCCESS(f"Simulated {ticks} ticks."))

    async def _simulate(self, duration, echo):
        hub = get_hub()
        hub.route_cache.prefetch()
        hub.start()
        printer = None
        if echo:
            subscription = await hub.attach()
            printer = asyncio.create_task(self._print_messages(subscription))
        try:
            if duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(duration)
        finally:
            await hub.stop()
            if printer is not None:
                await printer
        return hub.tick_count

    async def _print_messages(self, subscription):
        async for message in subscription:
            self.stdout.write(json.dumps(message))
