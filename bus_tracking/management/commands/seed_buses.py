from django.core.management.base import BaseCommand

from bus_tracking.models import Bus

FLEET = [
    {"bus_number": "KBZ 101J Juja Express", "direction": "Juja-Nairobi"},
    {"bus_number": "KCA 214J Juja Shuttle", "direction": "Juja-Nairobi"},
    {"bus_number": "KCB 330N Thika Road", "direction": "Nairobi-Juja"},
    {"bus_number": "KCD 457N CBD Link", "direction": "Nairobi-Juja"},
    {"bus_number": "KCE 582J Juja Metro", "direction": ""},
    {"bus_number": "KCF 619N Ruiru Line", "direction": ""},
]


class Command(BaseCommand):
    help = "Create a demo fleet of buses on the Juja - Nairobi corridor."

    def add_arguments(self, parser):
        parser.add_argument(
            "--inactive",
            action="store_true",
            help="Create the buses without putting them in service.",
        )

    def handle(self, *args, **options):
        status = "inactive" if options["inactive"] else "active"
        created = 0
        for entry in FLEET:
            _, was_created = Bus.objects.update_or_create(
                bus_number=entry["bus_number"],
                defaults={"direction": entry["direction"], "status": status},
            )
            created += int(was_created)
        self.stdout.write(
            self.style.SUCCESS(f"{created} buses created, {len(FLEET) - created} updated ({status}).")
        )
