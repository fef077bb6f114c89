from django.core.management.base import BaseCommand, CommandError

from api.models import AppUser, UserRole, UserStatus


class Command(BaseCommand):
    help = "Create an active admin account, or promote an existing one"
    #usage: python manage.py create_admin --email admin@example.com --password Secret123

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True)
        parser.add_argument('--password', required=True)
        parser.add_argument('--first-name', default='Admin')
        parser.add_argument('--last-name', default='User')

    def handle(self, *args, **options):
        email = options['email'].strip().lower()
        if len(options['password']) < 8:
            raise CommandError("Password must be at least 8 characters long")

        user, created = AppUser.objects.get_or_create(
            email=email,
            defaults={'first_name': options['first_name'], 'last_name': options['last_name']},
        )
        user.role = UserRole.ADMIN
        user.status = UserStatus.ACTIVE
        user.email_verified = True
        user.set_password(options['password'])
        user.save()

        action = "Created" if created else "Promoted"
        self.stdout.write(self.style.SUCCESS(f"{action} admin {email}"))
