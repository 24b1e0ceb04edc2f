import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("apartments", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Booking",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("check_in_date", models.DateField()),
                ("check_out_date", models.DateField()),
                ("number_of_guests", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("payment_method", models.CharField(max_length=50)),
                (
                    "total_rent",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Rent fixed at creation or modification time.",
                        max_digits=12,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending owner approval"),
                            ("approved", "Approved"),
                            ("rejected", "Rejected"),
                            ("cancelled", "Cancelled"),
                            ("modified_pending", "Modification pending"),
                            ("modified_approved", "Modification approved"),
                            ("modified_rejected", "Modification rejected"),
                            ("completed", "Completed"),
                        ],
                        default="pending",
                        max_length=32,
                    ),
                ),
                ("previous_check_in_date", models.DateField(blank=True, null=True)),
                ("previous_check_out_date", models.DateField(blank=True, null=True)),
                ("previous_number_of_guests", models.PositiveSmallIntegerField(blank=True, null=True)),
                (
                    "previous_total_rent",
                    models.DecimalField(
                        blank=True,
                        decimal_places=2,
                        help_text="Values before the latest modification request, kept for audit.",
                        max_digits=12,
                        null=True,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "apartment",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to="apartments.apartment",
                    ),
                ),
                (
                    "tenant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="bookings",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "verbose_name": "Booking",
                "verbose_name_plural": "Bookings",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["apartment", "check_in_date", "check_out_date"],
                        name="booking_apartment_dates_idx",
                    ),
                    models.Index(fields=["tenant", "status"], name="booking_tenant_status_idx"),
                    models.Index(fields=["status"], name="booking_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("check_out_date__gt", models.F("check_in_date"))),
                        name="booking_valid_dates",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_rent__gte", 0)),
                        name="booking_rent_non_negative",
                    ),
                ],
            },
        ),
    ]
