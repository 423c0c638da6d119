import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


STATUS_CHOICES = [
    ('pending', 'Pending'),
    ('confirmed', 'Confirmed'),
    ('completed', 'Completed'),
    ('expired', 'Expired'),
    ('canceled', 'Canceled'),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=STATUS_CHOICES, default='pending', max_length=20)),
                ('payment_method', models.CharField(choices=[('cardPayment', 'Card payment'), ('cashOnDelivery', 'Cash on delivery')], max_length=20)),
                ('total_price_cents', models.PositiveBigIntegerField()),
                ('pickup_time', models.DateTimeField(blank=True, null=True)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp', '-id'],
                'indexes': [
                    models.Index(fields=['customer', 'timestamp'], name='order_customer_ts_idx'),
                    models.Index(fields=['status', 'timestamp'], name='order_status_ts_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='OrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField()),
                ('product_id', models.PositiveBigIntegerField()),
                ('product_name', models.CharField(max_length=255)),
                ('unit_price_cents', models.PositiveIntegerField()),
                ('quantity', models.PositiveIntegerField()),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='orders.order')),
            ],
            options={
                'ordering': ['order', 'position'],
                'constraints': [
                    models.UniqueConstraint(fields=('order', 'position'), name='unique_order_item_position'),
                ],
            },
        ),
        migrations.CreateModel(
            name='TrackingEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sequence', models.PositiveIntegerField()),
                ('status', models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ('note', models.TextField(blank=True)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ('is_manual', models.BooleanField(default=False)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tracking_entries', to='orders.order')),
            ],
            options={
                'verbose_name_plural': 'Tracking Entries',
                'ordering': ['order', 'sequence'],
                'constraints': [
                    models.UniqueConstraint(fields=('order', 'sequence'), name='unique_tracking_sequence'),
                ],
            },
        ),
    ]
