from django.core.management.base import BaseCommand, CommandError

from tracker.models import User


class Command(BaseCommand):
    help = "Ensure an active HOD account exists with the given email and password (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument('--email', required=True)
        parser.add_argument('--password', required=True)
        parser.add_argument('--name', default='Head of Department')

    def handle(self, *args, **opts):
        email = opts['email'].strip().lower()
        if not email:
            raise CommandError('--email must not be empty')
        user, created = User.objects.get_or_create(
            email=email,
            defaults={'username': email, 'full_name': opts['name'], 'role': User.ROLE_HOD},
        )
        user.role = User.ROLE_HOD
        user.is_active = True
        user.set_password(opts['password'])
        user.save()
        verb = 'created' if created else 'updated'
        self.stdout.write(self.style.SUCCESS(f"HOD {email} {verb}"))
