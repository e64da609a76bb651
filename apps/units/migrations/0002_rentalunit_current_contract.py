from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("units", "0001_initial"),
        ("contracts", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="rentalunit",
            name="current_contract",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=models.SET_NULL,
                related_name="claimed_units",
                to="contracts.contract",
            ),
        ),
    ]
