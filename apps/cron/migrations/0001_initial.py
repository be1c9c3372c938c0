from __future__ import annotations

from django.db import migrations, models

import libs.idgen


def _id_field():
    return models.BigIntegerField(
        default=libs.idgen.generate_id,
        editable=False,
        primary_key=True,
        serialize=False,
    )


class Migration(migrations.Migration):
    initial = True

    dependencies: list = []

    operations = [
        migrations.CreateModel(
            name="CronLock",
            fields=[
                ("id", _id_field()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("job", models.CharField(max_length=64, unique=True)),
                ("locked_by", models.CharField(blank=True, max_length=64)),
                ("locked_until", models.DateTimeField()),
            ],
        ),
    ]
