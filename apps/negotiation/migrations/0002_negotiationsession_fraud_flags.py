from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("negotiation", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="negotiationsession",
            name="fraud_flags",
            field=models.JSONField(blank=True, default=list),
        ),
    ]
