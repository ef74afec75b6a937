import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PaymentOrder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_id', models.CharField(max_length=64, unique=True)),
                ('amount', models.PositiveIntegerField(help_text='Smallest currency unit (paise)')),
                ('currency', models.CharField(default='INR', max_length=3)),
                ('receipt', models.CharField(max_length=40)),
                ('notes', models.JSONField(blank=True, default=dict)),
                ('status', models.CharField(choices=[('created', 'Created'), ('paid', 'Paid'), ('failed', 'Failed')], db_index=True, default='created', max_length=12)),
                ('payment_id', models.CharField(blank=True, db_index=True, default='', max_length=64)),
                ('verification_source', models.CharField(blank=True, default='', max_length=16)),
                ('gateway_payload', models.JSONField(blank=True, null=True)),
                ('entitlement_pending', models.BooleanField(db_index=True, default=False)),
                ('entitlement_attempts', models.PositiveIntegerField(default=0)),
                ('entitlement_error', models.TextField(blank=True, default='')),
                ('entitled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('verified_at', models.DateTimeField(blank=True, null=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='payment_orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ('-created_at',),
                'indexes': [models.Index(fields=['user', '-created_at'], name='payments_user_created_idx')],
            },
        ),
    ]
