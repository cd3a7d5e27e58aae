# apps/users/management/commands/set_admin.py
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError
from django.core.validators import validate_email

from apps.users.repositories import AdminRepository


class Command(BaseCommand):
    help = "Designate the Admin account by its email address"

    def add_arguments(self, parser):
        parser.add_argument('email', type=str, help='Email of the account that signs in as Admin')

    def handle(self, *args, **options):
        email = options['email'].strip()
        try:
            validate_email(email)
        except ValidationError as exc:
            raise CommandError(f'"{email}" is not a valid email address.') from exc

        repository = AdminRepository()
        previous = repository.get_email()
        repository.set_email(email)

        if previous and previous.lower() != email.lower():
            self.stdout.write(self.style.WARNING(f"Replaced Admin {previous}"))
        self.stdout.write(self.style.SUCCESS(f"Admin set to {email}"))
