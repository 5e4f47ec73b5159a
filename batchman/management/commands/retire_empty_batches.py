"""
Management command to retire empty batches.

Usage:
    python manage.py retire_empty_batches
    python manage.py retire_empty_batches --dry-run
"""

from django.contrib.contenttypes.models import ContentType
from django.core.management.base import BaseCommand

from batchman import ledger
from batchman.models import Location, StockBatch


class Command(BaseCommand):
    """Retire active batches whose main-unit quantity is zero."""

    help = 'Retira lotes vazios (quantidade zero na unidade principal)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Mostra o que seria retirado sem executar'
        )

    def handle(self, *args, **options):
        groups = (
            StockBatch.objects.active()
            .values_list('content_type_id', 'object_id', 'location_id')
            .order_by()
            .distinct()
        )

        candidates = 0
        retired = 0
        for content_type_id, object_id, location_id in groups:
            model = ContentType.objects.get_for_id(content_type_id).model_class()
            product = model._default_manager.filter(pk=object_id).first() if model else None
            if product is None:
                self.stderr.write(f'Produto {content_type_id}:{object_id} não encontrado, ignorado')
                continue

            location = Location.objects.get(pk=location_id)
            if options['dry_run']:
                candidates += ledger.list_empty_batches(product, location).count()
            else:
                retired += ledger.retire_empty_batches(product, location)

        if options['dry_run']:
            self.stdout.write(f'{candidates} lote(s) seria(m) retirado(s)')
        else:
            self.stdout.write(
                self.style.SUCCESS(f'{retired} lote(s) retirado(s)')
            )
