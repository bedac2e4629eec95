import logging

from django.core.management.base import BaseCommand
from django.db import transaction

from sightings.models import Bird, Location, Sighting

logger = logging.getLogger(__name__)

BIRDS = [
    ("Grackle", "Quiscalus Quiscula", "black"),
    ("Northern Cardinal", "Cardinalis Cardinalis", "red"),
    ("Blue Jay", "Cyanocitta Cristata", "blue"),
]

LOCATIONS = [
    (30.26715, -97.74306, "US"),
    (45.50169, -73.56726, "CA"),
]


class Command(BaseCommand):
    help = 'Create sample birds, locations and sightings'

    def add_arguments(self, parser):
        parser.add_argument('--flush', action='store_true', help='Delete existing records first')

    @transaction.atomic
    def handle(self, *args, **options):
        if options['flush']:
            Sighting.objects.all().delete()
            Bird.objects.all().delete()
            Location.objects.all().delete()

        birds = [Bird.objects.get_or_create(name=name, defaults={'species': species, 'color': color})[0]
                 for name, species, color in BIRDS]
        locations = [Location.objects.get_or_create(latitude=lat, longitude=lng, defaults={'country': country})[0]
                     for lat, lng, country in LOCATIONS]

        created = 0
        for i, bird in enumerate(birds):
            location = locations[i % len(locations)]
            _, was_created = Sighting.objects.get_or_create(bird=bird, location=location)
            created += was_created
        logger.info(f"Seeded {len(birds)} birds, {len(locations)} locations, {created} new sightings")
        self.stdout.write(self.style.SUCCESS(f'{created} sighting(s) created'))
