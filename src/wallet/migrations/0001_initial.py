import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="WalletPass",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("pass_type_identifier", models.CharField(db_index=True, max_length=255)),
                ("serial_number", models.CharField(db_index=True, max_length=255)),
                (
                    "data",
                    models.JSONField(
                        blank=True,
                        default=dict,
                        help_text="Pass content, passed through to the pass file generator.",
                    ),
                ),
                (
                    "template_type",
                    models.CharField(
                        choices=[
                            ("boarding_pass", "Boarding Pass"),
                            ("coupon", "Coupon"),
                            ("generic", "Generic"),
                            ("event_ticket", "Event Ticket"),
                            ("store_card", "Store Card"),
                            ("loyalty_card", "Loyalty Card"),
                        ],
                        default="generic",
                        max_length=20,
                    ),
                ),
                (
                    "version_updated_at",
                    models.DateTimeField(
                        db_index=True,
                        default=django.utils.timezone.now,
                        help_text="Logical version of the pass. Advances on every mutation.",
                    ),
                ),
                ("created_by", models.CharField(blank=True, max_length=255, null=True)),
            ],
            options={
                "verbose_name": "Wallet Pass",
                "verbose_name_plural": "Wallet Passes",
                "constraints": [
                    models.UniqueConstraint(
                        fields=("pass_type_identifier", "serial_number"), name="unique_pass_type_serial"
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WalletPassRegistration",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                (
                    "device_library_identifier",
                    models.CharField(
                        db_index=True,
                        help_text="Unique identifier provided by the wallet app for this device.",
                        max_length=255,
                    ),
                ),
                ("pass_type_identifier", models.CharField(db_index=True, max_length=255)),
                ("serial_number", models.CharField(db_index=True, max_length=255)),
                (
                    "push_token",
                    models.CharField(help_text="Token used to send push notifications to this device.", max_length=64),
                ),
                ("registered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("last_notified_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Wallet Pass Registration",
                "verbose_name_plural": "Wallet Pass Registrations",
                "indexes": [
                    models.Index(
                        fields=["pass_type_identifier", "serial_number"], name="wallet_registration_pass_idx"
                    ),
                    models.Index(
                        fields=["device_library_identifier", "pass_type_identifier"],
                        name="wallet_registration_device_idx",
                    ),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("device_library_identifier", "pass_type_identifier", "serial_number"),
                        name="unique_device_pass_registration",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WalletPassLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("device_library_identifier", models.CharField(db_index=True, max_length=255)),
                ("message", models.TextField()),
                (
                    "level",
                    models.CharField(
                        choices=[("info", "Info"), ("error", "Error")], db_index=True, default="info", max_length=10
                    ),
                ),
                ("pass_type_identifier", models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ("serial_number", models.CharField(blank=True, db_index=True, max_length=255, null=True)),
                ("context", models.JSONField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "Wallet Pass Log",
                "verbose_name_plural": "Wallet Pass Logs",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["level", "-created_at"], name="wallet_log_level_created_idx"),
                ],
            },
        ),
    ]
