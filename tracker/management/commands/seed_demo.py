"""
Create demo data for local development: one faculty member and one batch
of interns, each with a known password.  Running it again leaves
existing rows alone.
"""
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from tracker.models import Batch, BatchIntern, User

DEMO_PASSWORD = 'demo12345'
DEMO_BATCH = 'Demo Batch'


class Command(BaseCommand):
    help = 'Populate the database with a demo faculty member and batch'

    @transaction.atomic
    def handle(self, *args, **options):
        faculty, created = User.objects.get_or_create(
            email='faculty@demo.local',
            defaults={'username': 'faculty@demo.local', 'full_name': 'Demo Faculty', 'role': User.ROLE_FACULTY},
        )
        if created:
            faculty.set_password(DEMO_PASSWORD)
            faculty.save()
        self.stdout.write(f"faculty: {faculty.email} ({'created' if created else 'exists'})")

        batch, created = Batch.objects.get_or_create(
            name=DEMO_BATCH,
            defaults={'start_date': timezone.localdate() + timedelta(days=1)},
        )
        if not created:
            self.stdout.write(self.style.WARNING(f"batch '{DEMO_BATCH}' already exists"))
            return

        for i in range(1, settings.BATCH_SIZE + 1):
            email = f'intern{i}@demo.local'
            user, _ = User.objects.get_or_create(
                email=email,
                defaults={
                    'username': email,
                    'full_name': f'Demo Intern {i}',
                    'role': User.ROLE_INTERN,
                    'reg_no': f'PG-DEMO-{i:03d}',
                },
            )
            user.batch = batch
            user.set_password(DEMO_PASSWORD)
            user.save()
            BatchIntern.objects.create(
                batch=batch, user=user, full_name=user.full_name,
                email=email, reg_no=user.reg_no or '', position=i - 1,
            )
            self.stdout.write(f"intern: {email}")
        self.stdout.write(self.style.SUCCESS(f"Demo data ready; password for all accounts: {DEMO_PASSWORD}"))
