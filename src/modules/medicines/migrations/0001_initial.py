from decimal import Decimal

import django.core.validators
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Medicine",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "deleted_at",
                    models.DateTimeField(blank=True, db_index=True, default=None, null=True),
                ),
                ("username", models.CharField(db_index=True, max_length=150)),
                ("name", models.CharField(max_length=255)),
                ("quantity", models.PositiveIntegerField(default=0)),
                (
                    "price",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=10,
                        validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                    ),
                ),
            ],
            options={
                "db_table": "medicines",
                "ordering": ["name"],
                "indexes": [
                    models.Index(fields=["username", "name"], name="medicines_shop_name_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(price__gte=0),
                        name="medicines_price_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=0),
                        name="medicines_quantity_non_negative",
                    ),
                ],
            },
        ),
    ]
