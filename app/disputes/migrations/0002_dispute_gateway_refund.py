from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("disputes", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="dispute",
            name="gateway_refunded_amount",
            field=models.DecimalField(blank=True, decimal_places=2, default=None, max_digits=12, null=True),
        ),
        migrations.AddField(
            model_name="dispute",
            name="gateway_refunded_at",
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
