import django.core.validators
import django.db.models.deletion
import uuid6
from django.db import migrations, models

STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("PARTIALLY_ACCEPTED", "Partially accepted"),
    ("ACCEPTED", "Accepted"),
    ("CANCELLED", "Cancelled"),
    ("PARTIALLY_CANCELLED", "Partially cancelled"),
    ("COMPLETED", "Completed"),
]

OPERATION_CHOICES = [
    ("PLACE", "Place order"),
    ("ACCEPT_ALL", "Accept all"),
    ("CANCEL_ALL", "Cancel all"),
    ("PARTIAL_ACCEPT", "Partial accept"),
    ("PARTIAL_CANCEL", "Partial cancel"),
    ("ACCEPT_REST", "Accept rest"),
    ("CANCEL_REST", "Cancel rest"),
]

BUCKET_CHOICES = [
    ("PARTIAL_ACCEPTED", "Partially accepted"),
    ("ACCEPTED_REST", "Accepted rest"),
    ("PARTIAL_CANCELLED", "Partially cancelled"),
    ("CANCELLED_REST", "Cancelled rest"),
]


def _base_fields():
    return [
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
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("medicines", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=_base_fields()
            + [
                (
                    "deleted_at",
                    models.DateTimeField(blank=True, db_index=True, default=None, null=True),
                ),
                ("order_number", models.CharField(editable=False, max_length=20, unique=True)),
                ("username", models.CharField(db_index=True, max_length=150)),
                ("supplier_name", models.CharField(max_length=255)),
                (
                    "status",
                    models.CharField(choices=STATUS_CHOICES, default="PENDING", max_length=20),
                ),
                ("refund_received", models.BooleanField(default=False)),
                ("partial_refund_received", models.BooleanField(default=False)),
                ("full_refund_received", models.BooleanField(default=False)),
                ("notes", models.TextField(blank=True, default="")),
                ("version", models.PositiveIntegerField(default=1)),
            ],
            options={
                "db_table": "orders",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["username", "status"], name="orders_shop_status_idx"),
                    models.Index(fields=["-created_at"], name="orders_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderLine",
            fields=_base_fields()
            + [
                ("name", models.CharField(max_length=255)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                ("position", models.PositiveIntegerField(default=0)),
                (
                    "medicine",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_lines",
                        to="medicines.medicine",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_lines",
                "ordering": ["position", "created_at"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1),
                        name="order_lines_quantity_positive",
                    ),
                    models.UniqueConstraint(
                        fields=["order", "medicine"],
                        name="order_lines_unique_medicine",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationRequest",
            fields=_base_fields()
            + [
                ("operation", models.CharField(choices=OPERATION_CHOICES, max_length=20)),
                (
                    "idempotency_key",
                    models.CharField(blank=True, max_length=255, null=True, unique=True),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="requests",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_reconciliation_requests",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="ReconciliationEntry",
            fields=_base_fields()
            + [
                ("bucket", models.CharField(choices=BUCKET_CHOICES, max_length=20)),
                ("name", models.CharField(max_length=255)),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        validators=[django.core.validators.MinValueValidator(1)]
                    ),
                ),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "medicine",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reconciliation_entries",
                        to="medicines.medicine",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="entries",
                        to="orders.order",
                    ),
                ),
                (
                    "request",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="entries",
                        to="orders.reconciliationrequest",
                    ),
                ),
            ],
            options={
                "db_table": "order_reconciliation_entries",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["order", "bucket"], name="ore_order_bucket_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(quantity__gte=1),
                        name="ore_quantity_positive",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=_base_fields()
            + [
                (
                    "old_status",
                    models.CharField(blank=True, choices=STATUS_CHOICES, max_length=20, null=True),
                ),
                ("new_status", models.CharField(choices=STATUS_CHOICES, max_length=20)),
                ("operation", models.CharField(choices=OPERATION_CHOICES, max_length=20)),
                ("notes", models.TextField(blank=True, default="")),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "order_status_history",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(
                        fields=["order", "-created_at"],
                        name="osh_order_created_idx",
                    ),
                ],
            },
        ),
    ]
