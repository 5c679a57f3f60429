import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Ingredient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200, unique=True)),
                ('unit', models.CharField(default='pcs', max_length=20)),
                ('reorder_level', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('cost_per_unit', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('current_stock_quantity', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='InventorySettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('consumption_strategy', models.CharField(choices=[('FIFO', 'First In, First Out'), ('FEFO', 'First Expired, First Out')], default='FEFO', max_length=10)),
                ('auto_expire_batches', models.BooleanField(default=True)),
                ('expiry_warning_days', models.PositiveIntegerField(default=7)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'inventory settings',
                'verbose_name_plural': 'inventory settings',
            },
        ),
        migrations.CreateModel(
            name='Supplier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=200)),
                ('phone', models.CharField(blank=True, default='', max_length=50)),
                ('rating', models.PositiveSmallIntegerField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='IngredientBatch',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('batch_number', models.CharField(max_length=100)),
                ('quantity_purchased', models.DecimalField(decimal_places=4, max_digits=15)),
                ('quantity_remaining', models.DecimalField(decimal_places=4, max_digits=15)),
                ('cost_per_unit', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('purchase_date', models.DateField()),
                ('manufacturing_date', models.DateField(blank=True, null=True)),
                ('expiry_date', models.DateField(blank=True, db_index=True, null=True)),
                ('status', models.CharField(choices=[('active', 'Active'), ('depleted', 'Depleted'), ('expired', 'Expired'), ('disposed', 'Disposed')], default='active', max_length=20)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ingredient_batches', to=settings.AUTH_USER_MODEL)),
                ('ingredient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='batches', to='inventory.ingredient')),
                ('supplier', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='batches', to='inventory.supplier')),
            ],
            options={
                'verbose_name_plural': 'ingredient batches',
                'indexes': [models.Index(fields=['ingredient', 'status'], name='batch_ingredient_status_idx')],
                'unique_together': {('ingredient', 'batch_number')},
            },
        ),
        migrations.CreateModel(
            name='WasteRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=4, max_digits=15)),
                ('reason', models.CharField(choices=[('Expired', 'Expired'), ('Spoiled', 'Spoiled / Contaminated'), ('Burnt', 'Burnt'), ('Returned', 'Returned'), ('Preparation Error', 'Preparation Error'), ('Lost', 'Lost'), ('Theft', 'Theft'), ('Damaged', 'Damaged'), ('Other', 'Other')], max_length=30)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='waste_records', to='inventory.ingredientbatch')),
                ('ingredient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='waste_records', to='inventory.ingredient')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ingredient_waste_records', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('movement_type', models.CharField(choices=[('Purchase', 'Purchase'), ('Consumption', 'Consumption'), ('Waste', 'Waste'), ('Adjustment', 'Adjustment')], db_index=True, max_length=20)),
                ('change_amount', models.DecimalField(decimal_places=4, max_digits=15)),
                ('quantity_before', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('quantity_after', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('cost_per_unit', models.DecimalField(decimal_places=4, default=0, max_digits=15)),
                ('reason', models.CharField(blank=True, default='', max_length=30)),
                ('reference_id', models.CharField(blank=True, db_index=True, default='', max_length=64)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('batch', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.ingredientbatch')),
                ('ingredient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.ingredient')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='ingredient_movements', to=settings.AUTH_USER_MODEL)),
                ('waste_record', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='movements', to='inventory.wasterecord')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [
                    models.Index(fields=['ingredient', 'created_at'], name='movement_ingredient_date_idx'),
                    models.Index(fields=['movement_type', 'created_at'], name='movement_type_date_idx'),
                ],
            },
        ),
    ]
