from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('nda', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='ndaagreement',
            name='envelope_requested_at',
            field=models.DateTimeField(blank=True, help_text='Set while an envelope request to Sadiq is in flight', null=True),
        ),
    ]
