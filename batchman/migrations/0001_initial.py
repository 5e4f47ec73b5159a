"""
Initial migration for Batchman models.
"""

from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Batchman models: Location, StockBatch, StockEntry, StockMove."""

    initial = True

    dependencies = [
        ('contenttypes', '0002_remove_content_type_name'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Location',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Identificador único (ex: loja-centro, deposito)', unique=True, verbose_name='Código')),
                ('name', models.CharField(help_text='Nome legível do local', max_length=100, verbose_name='Nome')),
                ('is_active', models.BooleanField(default=True, verbose_name='Ativo')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Local',
                'verbose_name_plural': 'Locais',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='StockBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('object_id', models.PositiveIntegerField(verbose_name='ID do Produto')),
                ('batch_number', models.CharField(max_length=64, verbose_name='Número do Lote')),
                ('production_date', models.DateField(default=django.utils.timezone.localdate, verbose_name='Data de Produção')),
                ('deleted', models.BooleanField(db_index=True, default=False, help_text='Lote esgotado e retirado de uso. Nunca é apagado.', verbose_name='Retirado')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True, verbose_name='Criado em')),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('content_type', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, to='contenttypes.contenttype', verbose_name='Tipo de Produto')),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='batchman.location', verbose_name='Local')),
            ],
            options={
                'verbose_name': 'Lote',
                'verbose_name_plural': 'Lotes',
                'ordering': ['-created_at', '-pk'],
                'indexes': [models.Index(fields=['content_type', 'object_id', 'location'], name='batchman_st_content_6b1f2e_idx')],
            },
        ),
        migrations.CreateModel(
            name='StockEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unit', models.CharField(max_length=32, verbose_name='Unidade')),
                ('quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=15, verbose_name='Quantidade')),
                ('price_per_unit', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, verbose_name='Preço por Unidade')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('batch', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='entries', to='batchman.stockbatch', verbose_name='Lote')),
            ],
            options={
                'verbose_name': 'Registro de Estoque',
                'verbose_name_plural': 'Registros de Estoque',
                'ordering': ['batch', 'pk'],
                'constraints': [models.UniqueConstraint(fields=('batch', 'unit'), name='unique_entry_unit_per_batch')],
            },
        ),
        migrations.CreateModel(
            name='StockMove',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.DecimalField(decimal_places=3, help_text='Positivo = entrada, Negativo = saída', max_digits=15, verbose_name='Variação')),
                ('kind', models.CharField(choices=[('receipt', 'Entrada'), ('reduction', 'Saída'), ('restoration', 'Devolução'), ('adjustment', 'Ajuste')], max_length=20, verbose_name='Tipo')),
                ('reference_id', models.PositiveIntegerField(blank=True, null=True, verbose_name='ID da Referência')),
                ('reason', models.CharField(help_text='Obrigatório. Ex: "Recebimento", "Venda #123"', max_length=255, verbose_name='Motivo')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadados')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Data/Hora')),
                ('entry', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='batchman.stockentry', verbose_name='Registro')),
                ('reference_type', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='contenttypes.contenttype', verbose_name='Tipo de Referência')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='Usuário')),
            ],
            options={
                'verbose_name': 'Movimento',
                'verbose_name_plural': 'Movimentos',
                'ordering': ['timestamp', 'pk'],
                'indexes': [models.Index(fields=['entry', 'timestamp'], name='batchman_st_entry_i_4c2d9a_idx')],
            },
        ),
    ]
