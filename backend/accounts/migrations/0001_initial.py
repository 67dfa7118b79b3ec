from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("document", models.CharField(help_text="Taxpayer document (CPF)", max_length=32, unique=True)),
                ("name", models.CharField(max_length=128)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("phone", models.CharField(blank=True, max_length=32)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="WaterAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("number", models.CharField(max_length=64, unique=True)),
                ("address", models.CharField(blank=True, max_length=255)),
                (
                    "state",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("suspended", "Suspended"),
                            ("delinquent", "Delinquent"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="active",
                        max_length=16,
                    ),
                ),
                ("consumption_limit", models.FloatField(default=0.0, help_text="Alert threshold in m³ (0 disables)")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accounts",
                        to="accounts.customer",
                    ),
                ),
            ],
            options={"ordering": ["number"]},
        ),
        migrations.AddIndex(
            model_name="wateraccount",
            index=models.Index(fields=["state"], name="account_state_idx"),
        ),
        migrations.CreateModel(
            name="MeterLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("meter_id", models.PositiveIntegerField(help_text="Meter identifier (SHA)", unique=True)),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="meter_links",
                        to="accounts.wateraccount",
                    ),
                ),
            ],
            options={"ordering": ["account", "meter_id"]},
        ),
    ]
