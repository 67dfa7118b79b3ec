from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AlertRecord",
            fields=[
                ("id", models.PositiveBigIntegerField(primary_key=True, serialize=False)),
                ("account_id", models.CharField(db_index=True, max_length=64)),
                ("customer_document", models.CharField(max_length=32)),
                ("current_volume", models.FloatField()),
                ("limit_volume", models.FloatField()),
                ("raised_at", models.DateTimeField()),
                ("read", models.BooleanField(default=False)),
                ("email_enabled", models.BooleanField(default=False)),
                ("concessionaire_enabled", models.BooleanField(default=False)),
                ("message", models.TextField(blank=True)),
            ],
            options={"ordering": ["-raised_at", "-id"]},
        ),
        migrations.AddIndex(
            model_name="alertrecord",
            index=models.Index(fields=["read", "-raised_at"], name="alert_pending_idx"),
        ),
    ]
