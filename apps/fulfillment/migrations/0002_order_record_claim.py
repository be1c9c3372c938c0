from __future__ import annotations

from django.db import migrations, models


class Migration(migrations.Migration):
    dependencies = [
        ("fulfillment", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="orderfulfillmentrecord",
            name="claimed_until",
            field=models.DateTimeField(blank=True, null=True),
        ),
    ]
