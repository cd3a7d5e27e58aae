# apps/clients/management/commands/seed_clients.py
from django.core.management.base import BaseCommand
from faker import Faker
import random

from apps.clients.repositories import ClientRepository

RELATIONS = ['Wife', 'Husband', 'Father', 'Mother', 'Children', 'Other']


class Command(BaseCommand):
    help = "Seed the document store with random clients and family members"

    def add_arguments(self, parser):
        parser.add_argument('--count', type=int, default=20, help='Number of clients to create')
        parser.add_argument('--max-family', type=int, default=3, help='Maximum family members per client')

    def handle(self, *args, **options):
        fake = Faker()
        count = options['count']
        max_family = options['max_family']
        repository = ClientRepository()

        cities = [fake.city() for _ in range(5)]
        locations = [fake.street_name() for _ in range(8)]

        self.stdout.write("Starting client seeding...")

        members_created = 0
        for _ in range(count):
            married = random.choice([True, False])
            client_id = repository.create({
                'name': fake.first_name(),
                'familyName': fake.last_name(),
                'dob': fake.date_of_birth(minimum_age=21, maximum_age=80).isoformat(),
                'number': fake.msisdn()[:10],
                'whatsappNumber': fake.msisdn()[:10] if random.choice([True, False]) else '',
                'email': fake.email(),
                'address': fake.street_address(),
                'birthCity': fake.city(),
                'maritalStatus': 'Yes' if married else 'No',
                'spouseName': fake.name() if married else '',
                'panCard': fake.bothify('?????####?').upper(),
                'aadhaarCard': fake.numerify('#### #### ####'),
                'city': random.choice(cities),
                'state': fake.state(),
                'location': random.choice(locations),
                'area': random.choice(['East', 'West', 'North', 'South', 'Central']),
            })

            for _ in range(random.randint(0, max_family)):
                repository.add_family_member(client_id, {
                    'relation': random.choice(RELATIONS),
                    'name': fake.name(),
                    'dob': fake.date_of_birth(maximum_age=80).isoformat(),
                    'birthCity': fake.city(),
                    'number': fake.msisdn()[:10],
                    'email': fake.email() if random.choice([True, False]) else '',
                })
                members_created += 1

        self.stdout.write(self.style.SUCCESS(
            f"Successfully created {count} clients with {members_created} family members!"
        ))
