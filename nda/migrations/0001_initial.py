import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('projects', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='NdaAgreement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(choices=[('awaiting_entrepreneur', 'Awaiting Entrepreneur'), ('ready_for_signature', 'Ready for Signature'), ('invitation_sent', 'Invitation Sent'), ('signed', 'Signed'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], db_index=True, default='awaiting_entrepreneur', max_length=32)),
                ('company_signature_info', models.JSONField(blank=True, default=dict, help_text='Snapshot of the company signer taken at initiation')),
                ('entrepreneur_info', models.JSONField(blank=True, default=dict, help_text="Project owner's signer data, filled on completion")),
                ('document', models.FileField(blank=True, null=True, upload_to='nda/')),
                ('signed_at', models.DateTimeField(blank=True, null=True)),
                ('expires_at', models.DateTimeField(blank=True, help_text='Invitation deadline while pending, validity end once signed', null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancel_reason', models.CharField(blank=True, max_length=255)),
                ('sadiq_envelope_id', models.CharField(blank=True, max_length=128)),
                ('sadiq_reference_number', models.CharField(blank=True, db_index=True, max_length=128)),
                ('sadiq_document_id', models.CharField(blank=True, max_length=128)),
                ('envelope_status', models.CharField(blank=True, help_text='Raw status last reported by Sadiq', max_length=64)),
                ('completion_percentage', models.PositiveSmallIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('cancelled_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='cancelled_ndas', to=settings.AUTH_USER_MODEL)),
                ('company_user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='initiated_ndas', to=settings.AUTH_USER_MODEL)),
                ('project', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='nda_agreements', to='projects.project')),
            ],
            options={
                'ordering': ['-created_at'],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['cancelled', 'expired']), _negated=True), fields=('project', 'company_user'), name='unique_live_nda_per_project_company'),
                    models.CheckConstraint(condition=models.Q(models.Q(('signed_at__isnull', False), ('status', 'signed')), models.Q(models.Q(('status', 'signed'), _negated=True), ('signed_at__isnull', True)), _connector='OR'), name='nda_signed_at_iff_signed'),
                ],
            },
        ),
    ]
