import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('nda', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AgreementStatusChange',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('from_status', models.CharField(blank=True, help_text='Status before the transition (blank on creation)', max_length=32)),
                ('to_status', models.CharField(max_length=32)),
                ('source', models.CharField(choices=[('user', 'User'), ('provider', 'Signature provider'), ('admin', 'Administrator'), ('system', 'System')], default='user', max_length=16)),
                ('note', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('actor', models.ForeignKey(blank=True, help_text='User who triggered the transition, if any', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='nda_status_changes', to=settings.AUTH_USER_MODEL)),
                ('agreement', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='status_changes', to='nda.ndaagreement')),
            ],
            options={
                'ordering': ['-created_at', '-id'],
                'indexes': [models.Index(fields=['agreement', '-created_at'], name='audit_change_agreement_idx')],
            },
        ),
    ]
